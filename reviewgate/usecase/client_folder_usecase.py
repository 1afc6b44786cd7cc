"""Client folder usecase: folders, access links and uploads."""
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

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
    ClientFolderCreateRequest,
    ClientFolderResponse,
    ClientUploadListResponse,
    ClientUploadResponse,
    IssuedTokenResponse,
)
from reviewgate.integrations.blob_store import BlobStore, LocalBlobStore, delete_blobs_safely
from reviewgate.integrations.notifier import LoggingNotifier, Notifier, notify_safely
from reviewgate.models.client_folder import ClientUpload
from reviewgate.models.enums import TokenKind, UploaderType
from reviewgate.repository.client_folder_repository import ClientFolderRepository
from reviewgate.usecase.access_token_usecase import AccessTokenUsecase
from reviewgate.usecase.authorization_usecase import AuthorizationUsecase
from reviewgate.usecase.base import BaseUsecase

logger = logging.getLogger(__name__)


def folder_url(folder_id: UUID, secret: str) -> str:
    return f"{settings.app_url}/review/folder/{folder_id}?t={secret}"


def can_modify(decision: Decision, upload: ClientUpload) -> bool:
    """Whether the decision's holder may rename or delete this particular file.

    Owners and administrators may change any file; a client-folder token
    holder only files uploaded under its own token.
    """
    if decision.effective_role != EffectiveRole.TOKEN_HOLDER:
        return True
    return (
        upload.uploaded_by_type == UploaderType.CLIENT.value
        and upload.uploaded_by_identifier == decision.token.holder_identity
    )


def to_upload_response(upload: ClientUpload, modifiable: bool) -> ClientUploadResponse:
    return ClientUploadResponse(
        id=upload.id,
        folder_id=upload.folder_id,
        uploaded_by_type=upload.uploaded_by_type,
        original_filename=upload.original_filename,
        display_name=upload.display_name,
        mime_type=upload.mime_type,
        size_bytes=upload.size_bytes,
        created_at=upload.created_at,
        can_modify=modifiable,
    )


class ClientFolderUsecase(BaseUsecase):
    """Usecase for client folder operations.

    A client holding the folder's access link may list every file in the
    folder but may only rename or delete the files it uploaded itself.
    """

    def __init__(
        self,
        session: AsyncSession,
        notifier: Notifier | None = None,
        blob_store: BlobStore | None = None,
    ):
        super().__init__(session)
        self.folder_repo = ClientFolderRepository(session)
        self.authz = AuthorizationUsecase(session)
        self.tokens = AccessTokenUsecase(session)
        self.notifier = notifier or LoggingNotifier()
        self.blob_store = blob_store or LocalBlobStore()

    async def _authorize(self, principal: Principal, action: Action, folder_id: UUID) -> Decision:
        decision = await self.authz.authorize(
            principal, action, ResourceRef(ResourceType.CLIENT_FOLDER, folder_id)
        )
        return decision.require()

    async def create_folder(
        self, principal: SessionPrincipal, request: ClientFolderCreateRequest
    ) -> ClientFolderResponse:
        async with self.transaction():
            folder = await self.folder_repo.create(
                owner_id=principal.user_id,
                name=request.name,
                client_email=request.client_email,
            )
        logger.info("Created client folder %s for user %s", folder.id, principal.user_id)
        return ClientFolderResponse.model_validate(folder)

    async def get_folder(self, principal: Principal, folder_id: UUID) -> ClientFolderResponse:
        await self._authorize(principal, Action.LIST_FILES, folder_id)
        async with self.transaction():
            folder = await self.folder_repo.get_by_id(folder_id)
        if folder is None:
            raise NotFoundException("Client folder not found")
        return ClientFolderResponse.model_validate(folder)

    async def create_access_link(
        self, principal: Principal, folder_id: UUID
    ) -> IssuedTokenResponse:
        """Issue a client-folder access link for the folder's client."""
        decision = await self._authorize(principal, Action.MANAGE, folder_id)
        issued = await self.tokens.issue(
            TokenKind.CLIENT_FOLDER_ACCESS,
            folder_id,
            created_by=decision.principal.user_id,
        )
        return IssuedTokenResponse(
            id=issued.token.id,
            kind=TokenKind.CLIENT_FOLDER_ACCESS,
            subject_id=folder_id,
            token=issued.secret,
            url=folder_url(folder_id, issued.secret),
            issued_at=issued.token.issued_at,
            expires_at=issued.token.expires_at,
        )

    async def list_access_links(
        self, principal: Principal, folder_id: UUID
    ) -> AccessTokenListResponse:
        await self._authorize(principal, Action.MANAGE, folder_id)
        tokens = await self.tokens.list_for_subject(TokenKind.CLIENT_FOLDER_ACCESS, folder_id)
        items = [AccessTokenItem.model_validate(token) for token in tokens]
        return AccessTokenListResponse(tokens=items, total=len(items))

    # ----- Uploads -----

    async def list_uploads(self, principal: Principal, folder_id: UUID) -> ClientUploadListResponse:
        """List every file in the folder, flagging which ones the caller may change."""
        decision = await self._authorize(principal, Action.LIST_FILES, folder_id)
        async with self.transaction():
            uploads = await self.folder_repo.list_uploads(folder_id)

        files = [to_upload_response(upload, can_modify(decision, upload)) for upload in uploads]
        return ClientUploadListResponse(files=files, total=len(files))

    async def upload_file(
        self,
        principal: Principal,
        folder_id: UUID,
        filename: str,
        data: bytes,
        mime_type: str | None = None,
    ) -> ClientUploadResponse:
        """Store a file in the folder.

        Client uploads are attributed to the access token that authorized them
        and notify the folder owner.
        """
        decision = await self._authorize(principal, Action.UPLOAD_FILE, folder_id)

        if decision.effective_role == EffectiveRole.TOKEN_HOLDER:
            uploaded_by_type = UploaderType.CLIENT
            uploaded_by_identifier = decision.token.holder_identity
        else:
            uploaded_by_type = UploaderType.PRODUCER
            uploaded_by_identifier = str(decision.principal.user_id)

        storage_key = generate_storage_key(f"clients/{folder_id}", filename)
        await self.blob_store.put(storage_key, data)
        try:
            async with self.transaction():
                upload = await self.folder_repo.create_upload(
                    folder_id=folder_id,
                    uploaded_by_type=uploaded_by_type.value,
                    uploaded_by_identifier=uploaded_by_identifier,
                    original_filename=filename,
                    storage_key=storage_key,
                    mime_type=mime_type,
                    size_bytes=len(data),
                )
                folder = await self.folder_repo.get_by_id(folder_id)
        except Exception:
            await delete_blobs_safely(self.blob_store, [storage_key])
            raise

        logger.info("Stored %s upload %s in folder %s", uploaded_by_type.value, upload.id, folder_id)
        if uploaded_by_type == UploaderType.CLIENT:
            await notify_safely(
                self.notifier.send_client_upload_notification,
                folder_id,
                folder.name,
                filename,
            )
        return to_upload_response(upload, True)

    async def download_upload(self, principal: Principal, upload_id: UUID) -> tuple[ClientUpload, bytes]:
        """Read one file; anyone who may list the folder may download any file in it.

        Raises:
            NotFoundException: If the upload or its stored content is missing
        """
        decision, upload = await self.authz.authorize_upload_read(principal, upload_id)
        decision.require()

        try:
            content = await self.blob_store.get(upload.storage_key)
        except FileNotFoundError:
            logger.warning("Upload %s has no stored content at %s", upload_id, upload.storage_key)
            raise NotFoundException("Upload content not found")
        return upload, content

    async def rename_upload(
        self, principal: Principal, upload_id: UUID, display_name: str
    ) -> ClientUploadResponse:
        decision, _ = await self.authz.authorize_upload_mutation(principal, upload_id)
        decision.require()

        async with self.transaction():
            upload = await self.folder_repo.rename_upload(upload_id, display_name)

        if upload is None:
            raise NotFoundException("Upload not found")
        return to_upload_response(upload, True)

    async def delete_upload(self, principal: Principal, upload_id: UUID) -> None:
        """Delete an upload record, then its blob on a best-effort basis."""
        decision, upload = await self.authz.authorize_upload_mutation(principal, upload_id)
        decision.require()

        async with self.transaction():
            deleted = await self.folder_repo.delete_upload(upload_id)

        if not deleted:
            raise NotFoundException("Upload not found")

        logger.info("Deleted upload %s from folder %s", upload_id, upload.folder_id)
        await delete_blobs_safely(self.blob_store, [upload.storage_key])
