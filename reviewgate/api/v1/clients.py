"""Client folder and upload API endpoints."""
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, File, Request, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from reviewgate.common.database import get_db
from reviewgate.common.responses import message_response, success_response
from reviewgate.common.rate_limit import limiter, RATE_LIMIT
from reviewgate.domain.schemas import ClientFolderCreateRequest, UploadRenameRequest
from reviewgate.usecase.client_folder_usecase import ClientFolderUsecase
from .dependencies import BlobStoreDep, CurrentPrincipal, CurrentSession, NotifierDep

router = APIRouter()


@router.post("/clients", response_model=dict, status_code=201)
@limiter.limit(RATE_LIMIT)
async def create_client_folder(
    request: Request,
    folder_request: ClientFolderCreateRequest,
    current_session: CurrentSession,
    session: AsyncSession = Depends(get_db),
):
    """Create a client folder owned by the current user."""
    usecase = ClientFolderUsecase(session)
    folder = await usecase.create_folder(current_session, folder_request)
    return success_response(folder.model_dump(mode="json"))


@router.get("/clients/{folder_id}", response_model=dict)
async def get_client_folder(
    folder_id: UUID,
    principal: CurrentPrincipal,
    session: AsyncSession = Depends(get_db),
):
    """Get a client folder (owner, administrator or access-link holder)."""
    usecase = ClientFolderUsecase(session)
    folder = await usecase.get_folder(principal, folder_id)
    return success_response(folder.model_dump(mode="json"))


@router.post("/clients/{folder_id}/access-links", response_model=dict, status_code=201)
@limiter.limit(RATE_LIMIT)
async def create_access_link(
    request: Request,
    folder_id: UUID,
    principal: CurrentPrincipal,
    session: AsyncSession = Depends(get_db),
):
    """Issue a client access link (includes the secret, shown only once)."""
    usecase = ClientFolderUsecase(session)
    link = await usecase.create_access_link(principal, folder_id)
    return success_response(link.model_dump(mode="json"))


@router.get("/clients/{folder_id}/access-links", response_model=dict)
async def list_access_links(
    folder_id: UUID,
    principal: CurrentPrincipal,
    session: AsyncSession = Depends(get_db),
):
    """List live client access links (metadata only)."""
    usecase = ClientFolderUsecase(session)
    links = await usecase.list_access_links(principal, folder_id)
    return success_response(links.model_dump(mode="json"))


@router.get("/clients/{folder_id}/uploads", response_model=dict)
async def list_uploads(
    folder_id: UUID,
    principal: CurrentPrincipal,
    session: AsyncSession = Depends(get_db),
):
    """List every file in the folder."""
    usecase = ClientFolderUsecase(session)
    uploads = await usecase.list_uploads(principal, folder_id)
    return success_response(uploads.model_dump(mode="json"))


@router.post("/clients/{folder_id}/uploads", response_model=dict, status_code=201)
@limiter.limit(RATE_LIMIT)
async def upload_file(
    request: Request,
    folder_id: UUID,
    principal: CurrentPrincipal,
    notifier: NotifierDep,
    blob_store: BlobStoreDep,
    file: UploadFile = File(...),
    session: AsyncSession = Depends(get_db),
):
    """Upload a file into the folder.

    Uploads made with an access link are attributed to that link and
    notify the folder owner.
    """
    usecase = ClientFolderUsecase(session, notifier=notifier, blob_store=blob_store)
    content = await file.read()
    upload = await usecase.upload_file(
        principal,
        folder_id,
        filename=file.filename or "upload.bin",
        data=content,
        mime_type=file.content_type,
    )
    return success_response(upload.model_dump(mode="json"))


@router.get("/uploads/{upload_id}/download")
async def download_upload(
    upload_id: UUID,
    principal: CurrentPrincipal,
    blob_store: BlobStoreDep,
    session: AsyncSession = Depends(get_db),
):
    """Download a file (owner, administrator or access-link holder of its folder)."""
    usecase = ClientFolderUsecase(session, blob_store=blob_store)
    upload, content = await usecase.download_upload(principal, upload_id)
    return Response(
        content=content,
        media_type=upload.mime_type or "application/octet-stream",
        headers={"Content-Disposition": f"attachment; filename=\"{quote(upload.display_name)}\""},
    )


@router.patch("/uploads/{upload_id}", response_model=dict)
async def rename_upload(
    upload_id: UUID,
    rename_request: UploadRenameRequest,
    principal: CurrentPrincipal,
    session: AsyncSession = Depends(get_db),
):
    """Rename a file; access-link holders may rename only their own uploads."""
    usecase = ClientFolderUsecase(session)
    upload = await usecase.rename_upload(principal, upload_id, rename_request.display_name)
    return success_response(upload.model_dump(mode="json"))


@router.delete("/uploads/{upload_id}", response_model=dict)
async def delete_upload(
    upload_id: UUID,
    principal: CurrentPrincipal,
    blob_store: BlobStoreDep,
    session: AsyncSession = Depends(get_db),
):
    """Delete a file; access-link holders may delete only their own uploads."""
    usecase = ClientFolderUsecase(session, blob_store=blob_store)
    await usecase.delete_upload(principal, upload_id)
    return message_response("Upload deleted")
