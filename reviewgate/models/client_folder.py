"""Client folder and client upload models."""
from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, String, Uuid, text
from reviewgate.common.database import Base
from reviewgate.common.id_utils import generate_uuid7


class ClientFolder(Base):
    """Shared upload folder between an engineer and one client."""
    __tablename__ = "client_folders"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=generate_uuid7)
    owner_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    client_email = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    def __repr__(self):
        return f"<ClientFolder(id={self.id}, name={self.name})>"


class ClientUpload(Base):
    """File placed in a client folder.

    ``uploaded_by_identifier`` is the producer's user id, or the id of the
    client-folder access token that authorized a client upload.
    """
    __tablename__ = "client_uploads"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=generate_uuid7)
    folder_id = Column(Uuid(as_uuid=True), ForeignKey("client_folders.id", ondelete="CASCADE"), nullable=False, index=True)
    uploaded_by_type = Column(String(20), nullable=False)
    uploaded_by_identifier = Column(String(64), nullable=False)
    original_filename = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=False)
    storage_key = Column(String(500), nullable=False)
    mime_type = Column(String(100), nullable=True)
    size_bytes = Column(BigInteger, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    def __repr__(self):
        return f"<ClientUpload(id={self.id}, display_name={self.display_name})>"
