"""Project comment model."""
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, String, Text, Uuid, text
from reviewgate.common.database import Base
from reviewgate.common.id_utils import generate_uuid7


class ProjectComment(Base):
    """Feedback on a project, optionally pinned to one version and a media position.

    Engineers are recorded by user id. Clients are recorded by the identity of
    the link that authorized them, plus the name they chose to sign with.
    """
    __tablename__ = "project_comments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=generate_uuid7)
    project_id = Column(Uuid(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    version_id = Column(Uuid(as_uuid=True), ForeignKey("project_versions.id", ondelete="CASCADE"), nullable=True)
    content = Column(Text, nullable=False)
    timestamp_seconds = Column(Float, nullable=True)  # position in the media
    author_type = Column(String(20), nullable=False)
    author_name = Column(String(120), nullable=False)
    author_user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    author_client_identifier = Column(String(160), nullable=True)
    is_post_approval = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    def __repr__(self):
        return f"<ProjectComment(id={self.id}, project_id={self.project_id}, author={self.author_name})>"
