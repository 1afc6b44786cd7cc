"""Project and project version models."""
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import relationship
from reviewgate.common.database import Base
from reviewgate.common.id_utils import generate_uuid7
from reviewgate.models.enums import ApprovalStatus


class Project(Base):
    """Media project owned by an engineer, reviewed by a client."""
    __tablename__ = "projects"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=generate_uuid7)
    owner_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    client_folder_id = Column(Uuid(as_uuid=True), ForeignKey("client_folders.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String(200), nullable=False)
    client_email = Column(String(255), nullable=True)

    # Static share link: only the digest of the current value is kept
    share_token_digest = Column(String(64), nullable=True, unique=True, index=True)
    share_token_rotated_at = Column(DateTime(timezone=True), nullable=True)

    # Revision / approval state
    revision_limit = Column(Integer, nullable=True)  # NULL means unlimited
    revisions_used = Column(Integer, nullable=False, default=0)
    approval_status = Column(String(20), nullable=False, default=ApprovalStatus.PENDING.value)
    approved_version_id = Column(Uuid(as_uuid=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(String(120), nullable=True)

    # Reminders
    reminders_enabled = Column(Boolean, nullable=False, default=False)
    reminder_stage = Column(Integer, nullable=False, default=0)
    last_reminder_sent_at = Column(DateTime(timezone=True), nullable=True)
    last_client_activity_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    versions = relationship(
        "ProjectVersion",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="ProjectVersion.version_number",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Project(id={self.id}, title={self.title}, status={self.approval_status})>"


class ProjectVersion(Base):
    """One accepted deliverable of a project."""
    __tablename__ = "project_versions"
    __table_args__ = (
        UniqueConstraint("project_id", "version_number", name="uq_project_versions_number"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=generate_uuid7)
    project_id = Column(Uuid(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    version_number = Column(Integer, nullable=False)
    storage_key = Column(String(500), nullable=False)
    original_filename = Column(String(255), nullable=False)
    created_by_user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_approved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    project = relationship("Project", back_populates="versions")

    def __repr__(self):
        return f"<ProjectVersion(id={self.id}, project_id={self.project_id}, number={self.version_number})>"
