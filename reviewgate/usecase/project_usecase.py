"""Project usecase: project CRUD, versions, approval and review links."""
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from reviewgate.common.clock import utc_now
from reviewgate.common.config import settings
from reviewgate.common.exceptions import NotFoundException
from reviewgate.common.id_utils import generate_storage_key
from reviewgate.domain.principals import (
    Action,
    Decision,
    EffectiveRole,
    Principal,
    ResourceRef,
    ResourceType,
    SessionPrincipal,
)
from reviewgate.domain.schemas import (
    AccessTokenItem,
    AccessTokenListResponse,
    ClientProjectView,
    IssuedTokenResponse,
    ProjectCreateRequest,
    ProjectResponse,
    ProjectUpdateRequest,
    ProjectVersionResponse,
    RevisionStateResponse,
)
from reviewgate.integrations.blob_store import BlobStore, LocalBlobStore, delete_blobs_safely
from reviewgate.integrations.notifier import LoggingNotifier, Notifier
from reviewgate.models.enums import TokenKind
from reviewgate.models.project import Project
from reviewgate.repository.project_repository import ProjectRepository
from reviewgate.usecase.access_token_usecase import AccessTokenUsecase
from reviewgate.usecase.authorization_usecase import AuthorizationUsecase
from reviewgate.usecase.base import BaseUsecase
from reviewgate.usecase.revision_usecase import RevisionUsecase, build_revision_state

logger = logging.getLogger(__name__)


def review_url(project_id: UUID, secret: str) -> str:
    return f"{settings.app_url}/review/{project_id}?t={secret}"


def share_url(secret: str) -> str:
    return f"{settings.app_url}/share/project/{secret}"


class ProjectUsecase(BaseUsecase):
    """Usecase for project operations.

    Every public method authorizes the principal first; the decision carries
    the effective role that selects the owner or the client view.
    """

    def __init__(
        self,
        session: AsyncSession,
        notifier: Notifier | None = None,
        blob_store: BlobStore | None = None,
    ):
        super().__init__(session)
        self.project_repo = ProjectRepository(session)
        self.authz = AuthorizationUsecase(session)
        self.tokens = AccessTokenUsecase(session)
        self.revisions = RevisionUsecase(session, notifier or LoggingNotifier())
        self.blob_store = blob_store or LocalBlobStore()

    async def _authorize(self, principal: Principal, action: Action, project_id: UUID) -> Decision:
        decision = await self.authz.authorize(
            principal, action, ResourceRef(ResourceType.PROJECT, project_id)
        )
        return decision.require()

    async def _load(self, project_id: UUID) -> Project:
        async with self.transaction():
            project = await self.project_repo.get_by_id(project_id)
        if project is None:
            raise NotFoundException("Project not found")
        return project

    # ----- CRUD -----

    async def create_project(
        self, principal: SessionPrincipal, request: ProjectCreateRequest
    ) -> ProjectResponse:
        """Create a project owned by the caller.

        Raises:
            NotFoundException / ForbiddenException: If the linked client folder
                is missing or not managed by the caller
        """
        if request.client_folder_id is not None:
            decision = await self.authz.authorize(
                principal,
                Action.MANAGE,
                ResourceRef(ResourceType.CLIENT_FOLDER, request.client_folder_id),
            )
            decision.require()

        async with self.transaction():
            project = await self.project_repo.create(
                owner_id=principal.user_id,
                title=request.title,
                revision_limit=request.revision_limit,
                client_folder_id=request.client_folder_id,
                client_email=request.client_email,
                reminders_enabled=request.reminders_enabled,
            )
            project = await self.project_repo.get_by_id(project.id)

        logger.info("Created project %s for user %s", project.id, principal.user_id)
        return self.to_owner_view(project)

    async def get_project(
        self, principal: Principal, project_id: UUID
    ) -> ProjectResponse | ClientProjectView:
        """Get a project; token holders receive the reduced client view."""
        decision = await self._authorize(principal, Action.VIEW, project_id)

        if decision.effective_role == EffectiveRole.TOKEN_HOLDER:
            async with self.transaction():
                await self.project_repo.touch_client_activity(project_id, utc_now())
            return self.to_client_view(await self._load(project_id))

        return self.to_owner_view(await self._load(project_id))

    async def update_project(
        self, principal: Principal, project_id: UUID, request: ProjectUpdateRequest
    ) -> ProjectResponse:
        """Apply a partial update; ``revision_limit`` changes only when sent."""
        await self._authorize(principal, Action.MANAGE, project_id)

        values = request.model_dump(
            exclude_unset=True, exclude={"revision_limit"}, exclude_none=True
        )
        if values:
            async with self.transaction():
                await self.project_repo.update_fields(project_id, **values)

        if "revision_limit" in request.model_fields_set:
            await self.revisions.set_revision_limit(project_id, request.revision_limit)

        return self.to_owner_view(await self._load(project_id))

    async def delete_project(self, principal: Principal, project_id: UUID) -> None:
        """Delete a project; blobs are removed afterwards on a best-effort basis."""
        await self._authorize(principal, Action.MANAGE, project_id)

        async with self.transaction():
            storage_keys = await self.project_repo.list_storage_keys(project_id)
            deleted = await self.project_repo.delete(project_id)

        if not deleted:
            raise NotFoundException("Project not found")

        logger.info("Deleted project %s", project_id)
        await delete_blobs_safely(self.blob_store, storage_keys)

    # ----- Versions and approval -----

    async def submit_version(
        self,
        principal: Principal,
        project_id: UUID,
        filename: str,
        data: bytes,
    ) -> ProjectVersionResponse:
        """Store a new deliverable and count it as a revision.

        The blob is written first and removed again if the state machine
        refuses the revision.
        """
        decision = await self._authorize(principal, Action.MANAGE, project_id)

        storage_key = generate_storage_key(f"projects/{project_id}", filename)
        await self.blob_store.put(storage_key, data)
        try:
            version = await self.revisions.submit_new_version(
                project_id,
                storage_key=storage_key,
                original_filename=filename,
                created_by=decision.principal.user_id,
            )
        except Exception:
            await delete_blobs_safely(self.blob_store, [storage_key])
            raise

        return ProjectVersionResponse.model_validate(version)

    async def approve(
        self, principal: Principal, project_id: UUID, version_id: UUID
    ) -> RevisionStateResponse:
        """Approve a version as owner, administrator or review-link holder."""
        decision = await self._authorize(principal, Action.APPROVE, project_id)
        project = await self.revisions.approve(project_id, version_id, decision.actor_label())
        return build_revision_state(project)

    async def reopen(self, principal: Principal, project_id: UUID) -> RevisionStateResponse:
        await self._authorize(principal, Action.MANAGE, project_id)
        project = await self.revisions.reopen(project_id)
        return build_revision_state(project)

    # ----- Review links and share token -----

    async def create_review_link(
        self, principal: Principal, project_id: UUID
    ) -> IssuedTokenResponse:
        decision = await self._authorize(principal, Action.MANAGE, project_id)
        issued = await self.tokens.issue(
            TokenKind.PROJECT_REVIEW_LINK,
            project_id,
            created_by=decision.principal.user_id,
        )
        return IssuedTokenResponse(
            id=issued.token.id,
            kind=TokenKind.PROJECT_REVIEW_LINK,
            subject_id=project_id,
            token=issued.secret,
            url=review_url(project_id, issued.secret),
            issued_at=issued.token.issued_at,
            expires_at=issued.token.expires_at,
        )

    async def list_review_links(
        self, principal: Principal, project_id: UUID
    ) -> AccessTokenListResponse:
        await self._authorize(principal, Action.MANAGE, project_id)
        tokens = await self.tokens.list_for_subject(TokenKind.PROJECT_REVIEW_LINK, project_id)
        items = [AccessTokenItem.model_validate(token) for token in tokens]
        return AccessTokenListResponse(tokens=items, total=len(items))

    async def reset_share_token(
        self, principal: Principal, project_id: UUID
    ) -> IssuedTokenResponse:
        """Rotate the project's static share token; the old value is void immediately."""
        await self._authorize(principal, Action.MANAGE, project_id)
        secret = await self.tokens.reset_share_token(project_id)
        project = await self._load(project_id)
        return IssuedTokenResponse(
            id=None,
            kind=TokenKind.PROJECT_SHARE_TOKEN,
            subject_id=project_id,
            token=secret,
            url=share_url(secret),
            issued_at=project.share_token_rotated_at,
            expires_at=None,
        )

    async def validate_share_token(self, raw_secret: str) -> ClientProjectView:
        """Resolve a share token to the project it currently opens."""
        resolved = await self.tokens.resolve(TokenKind.PROJECT_SHARE_TOKEN, raw_secret)
        async with self.transaction():
            await self.project_repo.touch_client_activity(resolved.subject_id, utc_now())
        return self.to_client_view(await self._load(resolved.subject_id))

    # ----- Views -----

    @staticmethod
    def to_owner_view(project: Project) -> ProjectResponse:
        return ProjectResponse(
            id=project.id,
            owner_id=project.owner_id,
            title=project.title,
            client_folder_id=project.client_folder_id,
            client_email=project.client_email,
            reminders_enabled=project.reminders_enabled,
            has_share_link=project.share_token_digest is not None,
            revision=build_revision_state(project),
            versions=[ProjectVersionResponse.model_validate(v) for v in project.versions],
            created_at=project.created_at,
        )

    @staticmethod
    def to_client_view(project: Project) -> ClientProjectView:
        versions = [ProjectVersionResponse.model_validate(v) for v in project.versions]
        active_version_id = project.approved_version_id
        if active_version_id is None and versions:
            active_version_id = versions[-1].id
        return ClientProjectView(
            id=project.id,
            title=project.title,
            active_version_id=active_version_id,
            revision=build_revision_state(project),
            versions=versions,
        )
