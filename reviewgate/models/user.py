"""User model."""
from sqlalchemy import Column, String, DateTime, Uuid, text
from reviewgate.common.database import Base
from reviewgate.common.id_utils import generate_uuid7
from reviewgate.models.enums import UserRole


class User(Base):
    """Account of the external identity system (engineer, client or admin)."""
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=generate_uuid7)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.ENGINEER.value)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP"), onupdate=text("CURRENT_TIMESTAMP"))

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"
