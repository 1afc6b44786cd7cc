"""Authentication usecase for the identity fixture (register, login, session check)."""
import logging

import jwt
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from reviewgate.common.exceptions import (
    UnauthorizedException,
    ValidationException,
    InvalidSessionException,
    SessionExpiredException,
)
from reviewgate.domain.auth_service import (
    hash_password,
    verify_password,
    needs_rehash,
    create_access_token,
    extract_user_id_from_token,
)
from reviewgate.domain.principals import SessionPrincipal
from reviewgate.domain.schemas import (
    UserRegisterRequest,
    UserLoginRequest,
    SessionTokenResponse,
    UserResponse,
)
from reviewgate.models.enums import UserRole
from reviewgate.repository.user_repository import UserRepository
from reviewgate.repository.exceptions import DuplicateRecordException
from reviewgate.usecase.base import BaseUsecase

logger = logging.getLogger(__name__)


class AuthUsecase(BaseUsecase):
    """Usecase for authentication operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.user_repo = UserRepository(session)

    async def register(self, request: UserRegisterRequest) -> UserResponse:
        """Register a new user.

        Args:
            request: User registration request

        Returns:
            UserResponse with created user info

        Raises:
            ValidationException: If username or email already exists
            StoreUnavailableException: If database connection fails
        """
        # Hash password (no DB operation)
        password_hash = hash_password(request.password)

        try:
            async with self.transaction():
                user = await self.user_repo.create(
                    username=request.username,
                    email=request.email,
                    password_hash=password_hash,
                    role=request.role.value,
                )
        except DuplicateRecordException as e:
            raise ValidationException(e.message)

        logger.info("Registered %s user %s", user.role, user.id)
        return UserResponse.model_validate(user)

    async def login(self, request: UserLoginRequest) -> SessionTokenResponse:
        """Authenticate user and return a session token.

        Raises:
            UnauthorizedException: If credentials are invalid
        """
        async with self.transaction():
            user = await self.user_repo.get_by_username(request.username)

        # Verify credentials (no DB operations)
        if not user or not verify_password(request.password, user.password_hash):
            raise UnauthorizedException("Invalid username or password")

        if needs_rehash(user.password_hash):
            async with self.transaction():
                await self.user_repo.update_password(user.id, hash_password(request.password))

        return SessionTokenResponse(access_token=create_access_token(user.id))

    async def authenticate_jwt(self, jwt_token: str) -> SessionPrincipal:
        """Resolve a session token to its principal.

        The role is read from the user record, never from the token.

        Raises:
            SessionExpiredException: If token has expired
            InvalidSessionException: If token is invalid or user not found
        """
        try:
            user_id = extract_user_id_from_token(jwt_token)
        except jwt.ExpiredSignatureError:
            raise SessionExpiredException()
        except (jwt.InvalidTokenError, ValidationError):
            raise InvalidSessionException()

        async with self.transaction():
            user = await self.user_repo.get_by_id(user_id)

        if not user:
            # User was deleted after the token was issued
            raise InvalidSessionException()

        return SessionPrincipal(user_id=user.id, role=UserRole(user.role))
