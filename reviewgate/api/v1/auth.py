"""Authentication API endpoints."""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from reviewgate.common.database import get_db
from reviewgate.common.responses import message_response, success_response
from reviewgate.common.rate_limit import limiter, RATE_LIMIT, FORGOT_PASSWORD_LIMIT, TOKEN_VALIDATION_LIMIT
from reviewgate.domain.schemas import (
    ForgotPasswordRequest,
    ResetPasswordRequest,
    UserRegisterRequest,
    UserLoginRequest,
)
from reviewgate.usecase.auth_usecase import AuthUsecase
from reviewgate.usecase.password_reset_usecase import PasswordResetUsecase
from .dependencies import NotifierDep

router = APIRouter()

FORGOT_PASSWORD_MESSAGE = "If an account exists for that email, a reset link has been sent"


@router.post("/auth/register", response_model=dict)
@limiter.limit(RATE_LIMIT)
async def register(
    request: Request,
    user_request: UserRegisterRequest,
    session: AsyncSession = Depends(get_db),
):
    """Register a new user.

    Args:
        request: FastAPI Request object (for rate limiting)
        user_request: User registration request
        session: Database session

    Returns:
        Success response with user info
    """
    usecase = AuthUsecase(session)
    user = await usecase.register(user_request)
    return success_response(user.model_dump(mode="json"))


@router.post("/auth/login", response_model=dict)
@limiter.limit(RATE_LIMIT)
async def login(
    request: Request,
    login_request: UserLoginRequest,
    session: AsyncSession = Depends(get_db),
):
    """Login and get a session token."""
    usecase = AuthUsecase(session)
    token = await usecase.login(login_request)
    return success_response(token.model_dump())


@router.post("/auth/forgot-password", response_model=dict)
@limiter.limit(FORGOT_PASSWORD_LIMIT)
async def forgot_password(
    request: Request,
    forgot_request: ForgotPasswordRequest,
    notifier: NotifierDep,
    session: AsyncSession = Depends(get_db),
):
    """Request a password reset link.

    Always answers with the same message so the endpoint never reveals which
    emails have accounts.
    """
    usecase = PasswordResetUsecase(session, notifier)
    await usecase.request_reset(forgot_request.email)
    return message_response(FORGOT_PASSWORD_MESSAGE)


@router.post("/auth/reset-password", response_model=dict)
@limiter.limit(TOKEN_VALIDATION_LIMIT)
async def reset_password(
    request: Request,
    reset_request: ResetPasswordRequest,
    session: AsyncSession = Depends(get_db),
):
    """Redeem a password reset token.

    Returns:
        Success message; 404 for unknown links, 410 for expired ones and
        409 for links that were already used
    """
    usecase = PasswordResetUsecase(session)
    await usecase.reset_password(reset_request.email, reset_request.token, reset_request.password)
    return message_response("Password has been reset")
