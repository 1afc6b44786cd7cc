"""Revision and approval state machine for projects."""
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from reviewgate.common.clock import utc_now
from reviewgate.common.exceptions import (
    NotFoundException,
    ProjectLockedException,
    RevisionLimitExceededException,
    ValidationException,
)
from reviewgate.domain.approval import can_submit_version, is_approved, revisions_remaining
from reviewgate.domain.schemas import RevisionStateResponse
from reviewgate.integrations.notifier import LoggingNotifier, Notifier, notify_safely
from reviewgate.models.project import Project, ProjectVersion
from reviewgate.repository.project_repository import ProjectRepository
from reviewgate.usecase.base import BaseUsecase

logger = logging.getLogger(__name__)


def build_revision_state(project: Project) -> RevisionStateResponse:
    """Read model of a project's revision/approval state."""
    return RevisionStateResponse(
        approval_status=project.approval_status,
        revision_limit=project.revision_limit,
        revisions_used=project.revisions_used,
        revisions_remaining=revisions_remaining(project.revision_limit, project.revisions_used),
        can_submit=can_submit_version(
            project.approval_status, project.revision_limit, project.revisions_used
        ),
        approved_version_id=project.approved_version_id,
        approved_at=project.approved_at,
        approved_by=project.approved_by,
    )


class RevisionUsecase(BaseUsecase):
    """Usecase for version submission, approval and reopening.

    Transitions:
        pending --submit_new_version--> pending (revisions_used + 1)
        pending --approve--> approved
        approved --reopen--> pending (revisions_used kept)
    """

    def __init__(self, session: AsyncSession, notifier: Notifier | None = None):
        super().__init__(session)
        self.project_repo = ProjectRepository(session)
        self.notifier = notifier or LoggingNotifier()

    async def submit_new_version(
        self,
        project_id: UUID,
        storage_key: str,
        original_filename: str,
        created_by: UUID | None = None,
    ) -> ProjectVersion:
        """Accept a new version if the project is pending and under its limit.

        The check and the increment are one conditional update, so concurrent
        submissions can never overshoot the limit.

        Raises:
            NotFoundException: If project not found
            ProjectLockedException: If the project is approved
            RevisionLimitExceededException: If the limit is reached
        """
        async with self.transaction():
            accepted = await self.project_repo.try_increment_revisions(project_id)

            if not accepted:
                project = await self.project_repo.get_by_id(project_id)
                if project is None:
                    raise NotFoundException("Project not found")
                if is_approved(project.approval_status):
                    raise ProjectLockedException()
                raise RevisionLimitExceededException(
                    f"Revision limit of {project.revision_limit} reached"
                )

            # The accepted revision is numbered by the counter it just advanced
            version_number = await self.project_repo.get_revisions_used(project_id)
            version = await self.project_repo.add_version(
                project_id=project_id,
                version_number=version_number,
                storage_key=storage_key,
                original_filename=original_filename,
                created_by_user_id=created_by,
            )

        logger.info("Project %s accepted version %s", project_id, version_number)
        return version

    async def approve(self, project_id: UUID, version_id: UUID, approved_by: str) -> Project:
        """Approve one version of a pending project.

        The approver is notified exactly once, after commit; a notifier failure
        does not undo the approval.

        Raises:
            NotFoundException: If project or version not found
            ProjectLockedException: If the project is already approved
        """
        now = utc_now()
        async with self.transaction():
            version = await self.project_repo.get_version(version_id)
            if version is None or version.project_id != project_id:
                raise NotFoundException("Version not found")

            approved = await self.project_repo.approve_if_pending(
                project_id, version_id, approved_by, now
            )
            if not approved:
                if await self.project_repo.get_owner_id(project_id) is None:
                    raise NotFoundException("Project not found")
                raise ProjectLockedException("Project is already approved")

            await self.project_repo.mark_version_approved(project_id, version_id)
            project = await self.project_repo.get_by_id(project_id)

        logger.info("Project %s approved version %s by %s", project_id, version.version_number, approved_by)
        await notify_safely(
            self.notifier.send_approval_notification,
            project.id,
            project.title,
            version.version_number,
            approved_by,
        )
        return project

    async def reopen(self, project_id: UUID) -> Project:
        """Return an approved project to pending without resetting its revision count.

        Raises:
            NotFoundException: If project not found
            ValidationException: If the project is not approved
        """
        async with self.transaction():
            reopened = await self.project_repo.reopen_if_approved(project_id)
            project = await self.project_repo.get_by_id(project_id)

        if project is None:
            raise NotFoundException("Project not found")
        if not reopened:
            raise ValidationException("Project is not approved")

        logger.info("Project %s reopened at %s revisions used", project_id, project.revisions_used)
        return project

    async def set_revision_limit(self, project_id: UUID, revision_limit: int | None) -> Project:
        """Change the revision limit; None removes it.

        Raises:
            NotFoundException: If project not found
            ValidationException: If the limit is negative
        """
        if revision_limit is not None and revision_limit < 0:
            raise ValidationException("Revision limit must be zero or greater")

        async with self.transaction():
            project = await self.project_repo.update_fields(project_id, revision_limit=revision_limit)

        if project is None:
            raise NotFoundException("Project not found")
        return project

    async def get_revision_state(self, project_id: UUID) -> RevisionStateResponse:
        """Get the revision/approval read model.

        Raises:
            NotFoundException: If project not found
        """
        async with self.transaction():
            project = await self.project_repo.get_by_id(project_id)

        if project is None:
            raise NotFoundException("Project not found")
        return build_revision_state(project)
