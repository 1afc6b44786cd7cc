"""Project API endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from reviewgate.common.database import get_db
from reviewgate.common.responses import message_response, success_response
from reviewgate.common.rate_limit import limiter, RATE_LIMIT, TOKEN_VALIDATION_LIMIT
from reviewgate.domain.schemas import (
    ApproveRequest,
    CommentCreateRequest,
    ProjectCreateRequest,
    ProjectUpdateRequest,
    ShareTokenValidateRequest,
)
from reviewgate.usecase.comment_usecase import CommentUsecase
from reviewgate.usecase.project_usecase import ProjectUsecase
from .dependencies import BlobStoreDep, CurrentPrincipal, CurrentSession, NotifierDep

router = APIRouter()


@router.post("/projects", response_model=dict, status_code=201)
@limiter.limit(RATE_LIMIT)
async def create_project(
    request: Request,
    project_request: ProjectCreateRequest,
    current_session: CurrentSession,
    session: AsyncSession = Depends(get_db),
):
    """Create a project owned by the current user."""
    usecase = ProjectUsecase(session)
    project = await usecase.create_project(current_session, project_request)
    return success_response(project.model_dump(mode="json"))


@router.post("/projects/share/validate", response_model=dict)
@limiter.limit(TOKEN_VALIDATION_LIMIT)
async def validate_share_token(
    request: Request,
    validate_request: ShareTokenValidateRequest,
    session: AsyncSession = Depends(get_db),
):
    """Resolve a share token to the reduced project view.

    Unknown or rotated tokens answer 404.
    """
    usecase = ProjectUsecase(session)
    project = await usecase.validate_share_token(validate_request.token)
    return success_response(project.model_dump(mode="json"))


@router.get("/projects/{project_id}", response_model=dict)
async def get_project(
    project_id: UUID,
    principal: CurrentPrincipal,
    session: AsyncSession = Depends(get_db),
):
    """Get a project.

    Owners and administrators get the full view; link holders (review link,
    share token, or the access link of the client folder the project is filed
    in) get the client view.
    """
    usecase = ProjectUsecase(session)
    project = await usecase.get_project(principal, project_id)
    return success_response(project.model_dump(mode="json"))


@router.patch("/projects/{project_id}", response_model=dict)
async def update_project(
    project_id: UUID,
    update_request: ProjectUpdateRequest,
    principal: CurrentPrincipal,
    session: AsyncSession = Depends(get_db),
):
    """Update title, client email, reminders or the revision limit."""
    usecase = ProjectUsecase(session)
    project = await usecase.update_project(principal, project_id, update_request)
    return success_response(project.model_dump(mode="json"))


@router.delete("/projects/{project_id}", response_model=dict)
async def delete_project(
    project_id: UUID,
    principal: CurrentPrincipal,
    blob_store: BlobStoreDep,
    session: AsyncSession = Depends(get_db),
):
    """Delete a project and, best effort, its stored versions."""
    usecase = ProjectUsecase(session, blob_store=blob_store)
    await usecase.delete_project(principal, project_id)
    return message_response("Project deleted")


@router.post("/projects/{project_id}/versions", response_model=dict, status_code=201)
@limiter.limit(RATE_LIMIT)
async def submit_version(
    request: Request,
    project_id: UUID,
    principal: CurrentPrincipal,
    blob_store: BlobStoreDep,
    file: UploadFile = File(...),
    session: AsyncSession = Depends(get_db),
):
    """Upload a new version of the deliverable.

    Returns:
        Success response with the version; 409 when the revision limit is
        reached and 423 while the project is approved
    """
    usecase = ProjectUsecase(session, blob_store=blob_store)
    content = await file.read()
    version = await usecase.submit_version(
        principal,
        project_id,
        filename=file.filename or "upload.bin",
        data=content,
    )
    return success_response(version.model_dump(mode="json"))


@router.post("/projects/{project_id}/approve", response_model=dict)
@limiter.limit(RATE_LIMIT)
async def approve_project(
    request: Request,
    project_id: UUID,
    approve_request: ApproveRequest,
    principal: CurrentPrincipal,
    notifier: NotifierDep,
    session: AsyncSession = Depends(get_db),
):
    """Approve a version (owner, administrator or review-link holder)."""
    usecase = ProjectUsecase(session, notifier=notifier)
    state = await usecase.approve(principal, project_id, approve_request.version_id)
    return success_response(state.model_dump(mode="json"))


@router.post("/projects/{project_id}/reopen", response_model=dict)
async def reopen_project(
    project_id: UUID,
    principal: CurrentPrincipal,
    session: AsyncSession = Depends(get_db),
):
    """Return an approved project to pending; used revisions are kept."""
    usecase = ProjectUsecase(session)
    state = await usecase.reopen(principal, project_id)
    return success_response(state.model_dump(mode="json"))


@router.post("/projects/{project_id}/review-links", response_model=dict, status_code=201)
@limiter.limit(RATE_LIMIT)
async def create_review_link(
    request: Request,
    project_id: UUID,
    principal: CurrentPrincipal,
    session: AsyncSession = Depends(get_db),
):
    """Issue a review link (includes the secret, shown only once)."""
    usecase = ProjectUsecase(session)
    link = await usecase.create_review_link(principal, project_id)
    return success_response(link.model_dump(mode="json"))


@router.get("/projects/{project_id}/review-links", response_model=dict)
async def list_review_links(
    project_id: UUID,
    principal: CurrentPrincipal,
    session: AsyncSession = Depends(get_db),
):
    """List live review links (metadata only)."""
    usecase = ProjectUsecase(session)
    links = await usecase.list_review_links(principal, project_id)
    return success_response(links.model_dump(mode="json"))


@router.post("/projects/{project_id}/share/reset", response_model=dict)
@limiter.limit(RATE_LIMIT)
async def reset_share_token(
    request: Request,
    project_id: UUID,
    principal: CurrentPrincipal,
    session: AsyncSession = Depends(get_db),
):
    """Rotate the static share link; the previous link stops working at once."""
    usecase = ProjectUsecase(session)
    link = await usecase.reset_share_token(principal, project_id)
    return success_response(link.model_dump(mode="json"))


@router.post("/projects/{project_id}/comments", response_model=dict, status_code=201)
@limiter.limit(RATE_LIMIT)
async def add_comment(
    request: Request,
    project_id: UUID,
    comment_request: CommentCreateRequest,
    principal: CurrentPrincipal,
    session: AsyncSession = Depends(get_db),
):
    """Comment on a project (owner, administrator, review-link or folder-link holder)."""
    usecase = CommentUsecase(session)
    comment = await usecase.add_comment(principal, project_id, comment_request)
    return success_response(comment.model_dump(mode="json"))


@router.get("/projects/{project_id}/comments", response_model=dict)
async def list_comments(
    project_id: UUID,
    principal: CurrentPrincipal,
    version_id: UUID | None = Query(default=None),
    session: AsyncSession = Depends(get_db),
):
    """List comments in media order, optionally narrowed to one version."""
    usecase = CommentUsecase(session)
    comments = await usecase.list_comments(principal, project_id, version_id)
    return success_response(comments.model_dump(mode="json"))
