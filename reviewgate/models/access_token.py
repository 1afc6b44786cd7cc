"""Bearer access token model (the token store)."""
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, UniqueConstraint, Uuid
from reviewgate.common.clock import utc_now
from reviewgate.common.database import Base
from reviewgate.common.id_utils import generate_uuid7


class AccessToken(Base):
    """Issued bearer token, keyed by the digest of its secret.

    Rows are never deleted by the service; consumption and revocation are
    recorded as timestamps.
    """
    __tablename__ = "access_tokens"
    __table_args__ = (
        UniqueConstraint("kind", "secret_digest", name="uq_access_tokens_kind_digest"),
        Index("ix_access_tokens_kind_subject", "kind", "subject_id"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=generate_uuid7)
    kind = Column(String(32), nullable=False)
    subject_id = Column(Uuid(as_uuid=True), nullable=False)
    secret_digest = Column(String(64), nullable=False, index=True)  # SHA-256 hex
    issued_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    consumed_at = Column(DateTime(timezone=True), nullable=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    created_by_user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    def __repr__(self):
        return f"<AccessToken(id={self.id}, kind={self.kind}, subject_id={self.subject_id})>"
