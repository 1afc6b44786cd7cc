"""Bearer token management API endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from reviewgate.common.database import get_db
from reviewgate.common.responses import success_response
from reviewgate.domain.schemas import AccessTokenItem
from reviewgate.usecase.access_token_usecase import AccessTokenUsecase
from .dependencies import CurrentSession

router = APIRouter()


@router.delete("/tokens/{token_id}", response_model=dict)
async def revoke_token(
    token_id: UUID,
    current_session: CurrentSession,
    session: AsyncSession = Depends(get_db),
):
    """Revoke a token.

    Args:
        token_id: Token UUID
        current_session: Issuer, owner of the bound record, or administrator
        session: Database session

    Returns:
        Success response with revoked token details
    """
    usecase = AccessTokenUsecase(session)
    token = await usecase.revoke(token_id, current_session)
    return success_response(AccessTokenItem.model_validate(token).model_dump(mode="json"))
