"""Project repository for database operations."""
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update, delete, and_, or_

from reviewgate.models.enums import ApprovalStatus
from reviewgate.models.comment import ProjectComment
from reviewgate.models.project import Project, ProjectVersion
from .base import BaseRepository


class ProjectRepository(BaseRepository):
    """Repository for Project and ProjectVersion operations.

    Every state transition of the revision/approval machine is one
    conditional UPDATE; a row count of zero means the guard did not hold.
    """

    async def create(
        self,
        owner_id: UUID,
        title: str,
        revision_limit: int | None = None,
        client_folder_id: UUID | None = None,
        client_email: str | None = None,
        reminders_enabled: bool = False,
    ) -> Project:
        """Create a new project in the pending state.

        Raises:
            DatabaseConnectionException: If database connection fails
            DatabaseOperationException: If database operation fails
        """
        project = Project(
            owner_id=owner_id,
            title=title,
            revision_limit=revision_limit,
            revisions_used=0,
            approval_status=ApprovalStatus.PENDING.value,
            client_folder_id=client_folder_id,
            client_email=client_email,
            reminders_enabled=reminders_enabled,
            reminder_stage=0,
        )
        return await self._insert(project)

    async def get_by_id(self, project_id: UUID) -> Project | None:
        """Get project by ID, always reloading the row from the store."""
        result = await self._execute(
            select(Project)
            .where(Project.id == project_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_owner_id(self, project_id: UUID) -> UUID | None:
        result = await self._execute(select(Project.owner_id).where(Project.id == project_id))
        return result.scalar_one_or_none()

    async def get_access_binding(self, project_id: UUID) -> tuple[UUID, UUID | None] | None:
        """Return ``(owner_id, client_folder_id)`` for a project, or None if missing."""
        result = await self._execute(
            select(Project.owner_id, Project.client_folder_id).where(Project.id == project_id)
        )
        row = result.one_or_none()
        return tuple(row) if row is not None else None

    async def get_by_share_digest(self, share_token_digest: str) -> Project | None:
        result = await self._execute(
            select(Project)
            .where(Project.share_token_digest == share_token_digest)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def rotate_share_digest(
        self, project_id: UUID, share_token_digest: str, now: datetime
    ) -> bool:
        """Replace the share token digest; the previous value stops matching at once.

        Raises:
            DuplicateRecordException: If another project already holds this digest
        """
        project = await self.get_by_id(project_id)
        if project is None:
            return False
        project.share_token_digest = share_token_digest
        project.share_token_rotated_at = now
        await self._flush("Share token digest collision detected")
        return True

    async def update_fields(self, project_id: UUID, **values) -> Project | None:
        """Update plain project fields (title, client email, reminders, limit)."""
        project = await self.get_by_id(project_id)
        if project is None:
            return None
        for name, value in values.items():
            setattr(project, name, value)
        await self._flush()
        return project

    async def delete(self, project_id: UUID) -> bool:
        """Delete a project with its versions and comments.

        Returns:
            True if deleted, False if not found
        """
        await self._execute(delete(ProjectComment).where(ProjectComment.project_id == project_id))
        await self._execute(delete(ProjectVersion).where(ProjectVersion.project_id == project_id))
        result = await self._execute(
            delete(Project)
            .where(Project.id == project_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ----- Revision / approval transitions -----

    async def try_increment_revisions(self, project_id: UUID) -> bool:
        """Check-and-increment the revision counter in one statement.

        Returns:
            True if the project was pending and below its limit
        """
        result = await self._execute(
            update(Project)
            .where(
                and_(
                    Project.id == project_id,
                    Project.approval_status == ApprovalStatus.PENDING.value,
                    or_(
                        Project.revision_limit.is_(None),
                        Project.revisions_used < Project.revision_limit,
                    ),
                )
            )
            .values(revisions_used=Project.revisions_used + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def get_revisions_used(self, project_id: UUID) -> int | None:
        result = await self._execute(
            select(Project.revisions_used).where(Project.id == project_id)
        )
        return result.scalar_one_or_none()

    async def add_version(
        self,
        project_id: UUID,
        version_number: int,
        storage_key: str,
        original_filename: str,
        created_by_user_id: UUID | None,
    ) -> ProjectVersion:
        version = ProjectVersion(
            project_id=project_id,
            version_number=version_number,
            storage_key=storage_key,
            original_filename=original_filename,
            created_by_user_id=created_by_user_id,
            is_approved=False,
        )
        return await self._insert(version, "Version number already taken")

    async def get_version(self, version_id: UUID) -> ProjectVersion | None:
        result = await self._execute(
            select(ProjectVersion)
            .where(ProjectVersion.id == version_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_storage_keys(self, project_id: UUID) -> list[str]:
        result = await self._execute(
            select(ProjectVersion.storage_key).where(ProjectVersion.project_id == project_id)
        )
        return list(result.scalars().all())

    async def approve_if_pending(
        self, project_id: UUID, version_id: UUID, approved_by: str, now: datetime
    ) -> bool:
        """Move a pending project to approved, recording version, time and approver together."""
        result = await self._execute(
            update(Project)
            .where(
                and_(
                    Project.id == project_id,
                    Project.approval_status == ApprovalStatus.PENDING.value,
                )
            )
            .values(
                approval_status=ApprovalStatus.APPROVED.value,
                approved_version_id=version_id,
                approved_at=now,
                approved_by=approved_by,
                last_client_activity_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def mark_version_approved(self, project_id: UUID, version_id: UUID) -> None:
        """Flag exactly one version of the project as the approved one."""
        await self._execute(
            update(ProjectVersion)
            .where(ProjectVersion.project_id == project_id)
            .values(is_approved=False)
            .execution_options(synchronize_session=False)
        )
        await self._execute(
            update(ProjectVersion)
            .where(ProjectVersion.id == version_id)
            .values(is_approved=True)
            .execution_options(synchronize_session=False)
        )

    async def reopen_if_approved(self, project_id: UUID) -> bool:
        """Move an approved project back to pending; ``revisions_used`` is kept."""
        result = await self._execute(
            update(Project)
            .where(
                and_(
                    Project.id == project_id,
                    Project.approval_status == ApprovalStatus.APPROVED.value,
                )
            )
            .values(approval_status=ApprovalStatus.PENDING.value)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ----- Client activity / reminders -----

    async def touch_client_activity(self, project_id: UUID, now: datetime) -> None:
        await self._execute(
            update(Project)
            .where(Project.id == project_id)
            .values(last_client_activity_at=now, reminder_stage=0)
            .execution_options(synchronize_session=False)
        )

    async def list_reminder_candidates(
        self, inactive_before: datetime, last_sent_before: datetime, max_stage: int
    ) -> list[Project]:
        """Pending projects with reminders on whose client has gone quiet."""
        result = await self._execute(
            select(Project)
            .where(
                and_(
                    Project.reminders_enabled.is_(True),
                    Project.approval_status == ApprovalStatus.PENDING.value,
                    Project.client_email.is_not(None),
                    Project.reminder_stage < max_stage,
                    or_(
                        and_(
                            Project.last_client_activity_at.is_(None),
                            Project.created_at < inactive_before,
                        ),
                        Project.last_client_activity_at < inactive_before,
                    ),
                    or_(
                        Project.last_reminder_sent_at.is_(None),
                        Project.last_reminder_sent_at < last_sent_before,
                    ),
                )
            )
            .order_by(Project.created_at)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def claim_reminder(
        self, project_id: UUID, seen_stage: int, last_sent_before: datetime, now: datetime
    ) -> bool:
        """Advance the reminder stage only if nobody advanced it since ``seen_stage`` was read.

        Returns:
            True if this caller owns the reminder and should send it
        """
        result = await self._execute(
            update(Project)
            .where(
                and_(
                    Project.id == project_id,
                    Project.reminder_stage == seen_stage,
                    Project.approval_status == ApprovalStatus.PENDING.value,
                    or_(
                        Project.last_reminder_sent_at.is_(None),
                        Project.last_reminder_sent_at < last_sent_before,
                    ),
                )
            )
            .values(
                reminder_stage=Project.reminder_stage + 1,
                last_reminder_sent_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
