"""Authorization engine combining session role, ownership and bearer tokens."""
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from reviewgate.common.exceptions import NotFoundException
from reviewgate.domain.principals import (
    Action,
    Anonymous,
    Decision,
    DenialReason,
    EffectiveRole,
    Principal,
    ResourceBinding,
    ResourceRef,
    ResourceType,
    SessionPrincipal,
    TokenHolder,
    grantable_kinds,
)
from reviewgate.models.client_folder import ClientUpload
from reviewgate.models.enums import UploaderType
from reviewgate.repository.client_folder_repository import ClientFolderRepository
from reviewgate.repository.project_repository import ProjectRepository
from reviewgate.usecase.access_token_usecase import AccessTokenUsecase
from reviewgate.usecase.base import BaseUsecase

logger = logging.getLogger(__name__)


class AuthorizationUsecase(BaseUsecase):
    """Decides whether a principal may perform an action on a resource.

    Ownership is always looked up from the resource row; callers never supply it.
    The engine does not retry: a denial is final for the request.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.project_repo = ProjectRepository(session)
        self.folder_repo = ClientFolderRepository(session)
        self.tokens = AccessTokenUsecase(session)

    async def authorize(
        self, principal: Principal, action: Action, resource: ResourceRef
    ) -> Decision:
        """Produce an allow/deny decision.

        Order: anonymous callers are unauthenticated; administrators and owners
        are allowed by session; token holders are allowed when a token of a kind
        granting ``action`` resolves bound to ``resource`` (or, for client
        folder links, to the folder the resource is filed in). Everything else
        is forbidden.

        Raises:
            StoreUnavailableException: If the store cannot be reached
        """
        if isinstance(principal, Anonymous):
            return Decision.deny(DenialReason.UNAUTHENTICATED, principal)

        binding = await self._load_binding(resource)
        if binding is None:
            # Token holders cannot tell a missing resource from a bad token
            reason = DenialReason.NOT_FOUND if isinstance(principal, SessionPrincipal) else DenialReason.FORBIDDEN
            return Decision.deny(reason, principal)

        if isinstance(principal, SessionPrincipal):
            if principal.is_admin:
                return Decision.allow(EffectiveRole.ADMIN, principal)
            if binding.owner_id == principal.user_id:
                return Decision.allow(EffectiveRole.OWNER, principal)
            logger.debug("User %s denied %s on %s %s", principal.user_id, action.value, resource.type.value, resource.id)
            return Decision.deny(DenialReason.FORBIDDEN, principal)

        if isinstance(principal, TokenHolder):
            for kind in grantable_kinds(resource.type, action):
                expected_subject_id = binding.expected_subject(kind, resource)
                if expected_subject_id is None:
                    continue
                try:
                    resolved = await self.tokens.resolve(
                        kind, principal.secret, expected_subject_id=expected_subject_id
                    )
                except NotFoundException:
                    continue
                return Decision.allow(EffectiveRole.TOKEN_HOLDER, principal, token=resolved)

        logger.debug("Bearer token denied %s on %s %s", action.value, resource.type.value, resource.id)
        return Decision.deny(DenialReason.FORBIDDEN, principal)

    async def authorize_upload_read(
        self, principal: Principal, upload_id: UUID
    ) -> tuple[Decision, ClientUpload | None]:
        """Authorize downloading one file: anyone who may list its folder may read it."""
        return await self._authorize_upload(principal, upload_id, Action.LIST_FILES)

    async def authorize_upload_mutation(
        self, principal: Principal, upload_id: UUID
    ) -> tuple[Decision, ClientUpload | None]:
        """Authorize renaming or deleting one file in a client folder.

        Token holders pass only for files uploaded under the same access token.

        Returns:
            Tuple of (decision, upload); upload is None when it does not exist
        """
        decision, upload = await self._authorize_upload(principal, upload_id, Action.MODIFY_FILE)
        if upload is None or not decision.allowed or decision.effective_role != EffectiveRole.TOKEN_HOLDER:
            return decision, upload

        if (
            upload.uploaded_by_type != UploaderType.CLIENT.value
            or upload.uploaded_by_identifier != decision.token.holder_identity
        ):
            logger.debug("Bearer token is not the author of upload %s", upload.id)
            return Decision.deny(DenialReason.FORBIDDEN, principal), upload

        return decision, upload

    async def _authorize_upload(
        self, principal: Principal, upload_id: UUID, action: Action
    ) -> tuple[Decision, ClientUpload | None]:
        if isinstance(principal, Anonymous):
            return Decision.deny(DenialReason.UNAUTHENTICATED, principal), None

        async with self.transaction():
            upload = await self.folder_repo.get_upload(upload_id)

        if upload is None:
            reason = DenialReason.NOT_FOUND if isinstance(principal, SessionPrincipal) else DenialReason.FORBIDDEN
            return Decision.deny(reason, principal), None

        decision = await self.authorize(
            principal, action, ResourceRef(ResourceType.CLIENT_FOLDER, upload.folder_id)
        )
        return decision, upload

    async def _load_binding(self, resource: ResourceRef) -> ResourceBinding | None:
        async with self.transaction():
            if resource.type == ResourceType.PROJECT:
                row = await self.project_repo.get_access_binding(resource.id)
                if row is None:
                    return None
                return ResourceBinding(owner_id=row[0], client_folder_id=row[1])
            owner_id = await self.folder_repo.get_owner_id(resource.id)
        if owner_id is None:
            return None
        return ResourceBinding(owner_id=owner_id, client_folder_id=resource.id)
