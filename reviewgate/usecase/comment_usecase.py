"""Comment usecase: feedback left on projects by engineers and clients."""
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from reviewgate.common.clock import utc_now
from reviewgate.common.exceptions import NotFoundException
from reviewgate.domain.approval import is_approved
from reviewgate.domain.principals import (
    Action,
    Decision,
    EffectiveRole,
    Principal,
    ResourceRef,
    ResourceType,
)
from reviewgate.domain.schemas import CommentCreateRequest, CommentListResponse, CommentResponse
from reviewgate.models.enums import CommentAuthorType
from reviewgate.repository.comment_repository import CommentRepository
from reviewgate.repository.project_repository import ProjectRepository
from reviewgate.repository.user_repository import UserRepository
from reviewgate.usecase.authorization_usecase import AuthorizationUsecase
from reviewgate.usecase.base import BaseUsecase

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_NAME = "Client"


class CommentUsecase(BaseUsecase):
    """Usecase for project comments.

    Commenting needs COMMENT on the project, reading needs VIEW, so share-token
    holders can read the thread but never add to it.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.comment_repo = CommentRepository(session)
        self.project_repo = ProjectRepository(session)
        self.user_repo = UserRepository(session)
        self.authz = AuthorizationUsecase(session)

    async def _authorize(self, principal: Principal, action: Action, project_id: UUID) -> Decision:
        decision = await self.authz.authorize(
            principal, action, ResourceRef(ResourceType.PROJECT, project_id)
        )
        return decision.require()

    async def add_comment(
        self, principal: Principal, project_id: UUID, request: CommentCreateRequest
    ) -> CommentResponse:
        """Add a comment attributed to whoever was authorized to leave it.

        Client comments count as client activity and reset the reminder stage.

        Raises:
            NotFoundException: If the project is gone or the version belongs elsewhere
        """
        decision = await self._authorize(principal, Action.COMMENT, project_id)
        now = utc_now()

        async with self.transaction():
            project = await self.project_repo.get_by_id(project_id)
            if project is None:
                raise NotFoundException("Project not found")

            if request.version_id is not None:
                version = await self.project_repo.get_version(request.version_id)
                if version is None or version.project_id != project_id:
                    raise NotFoundException("Version not found")

            if decision.effective_role == EffectiveRole.TOKEN_HOLDER:
                author = {
                    "author_type": CommentAuthorType.CLIENT.value,
                    "author_name": request.author_name or DEFAULT_CLIENT_NAME,
                    "author_client_identifier": decision.token.holder_identity,
                }
                await self.project_repo.touch_client_activity(project_id, now)
            else:
                user = await self.user_repo.get_by_id(decision.principal.user_id)
                author = {
                    "author_type": CommentAuthorType.ENGINEER.value,
                    "author_name": user.username if user else str(decision.principal.user_id),
                    "author_user_id": decision.principal.user_id,
                }

            comment = await self.comment_repo.create(
                project_id=project_id,
                content=request.content,
                version_id=request.version_id,
                timestamp_seconds=request.timestamp_seconds,
                is_post_approval=is_approved(project.approval_status),
                **author,
            )

        logger.info("Comment %s added to project %s by %s", comment.id, project_id, decision.actor_label())
        return CommentResponse.model_validate(comment)

    async def list_comments(
        self, principal: Principal, project_id: UUID, version_id: UUID | None = None
    ) -> CommentListResponse:
        await self._authorize(principal, Action.VIEW, project_id)
        async with self.transaction():
            comments = await self.comment_repo.list_for_project(project_id, version_id)

        items = [CommentResponse.model_validate(comment) for comment in comments]
        return CommentListResponse(comments=items, total=len(items))
