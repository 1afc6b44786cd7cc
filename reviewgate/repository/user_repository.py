"""User repository for database operations."""
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError, DBAPIError

from reviewgate.models.user import User
from .base import BaseRepository
from .exceptions import (
    DuplicateRecordException,
    DatabaseConnectionException,
    DatabaseOperationException,
)


class UserRepository(BaseRepository):
    """Repository for User model operations."""

    async def create(self, username: str, email: str, password_hash: str, role: str) -> User:
        """Create a new user.

        Args:
            username: Username
            email: Email address
            password_hash: Hashed password
            role: Identity role (engineer, client or admin)

        Returns:
            Created User object

        Raises:
            DuplicateRecordException: If username or email already exists
            DatabaseConnectionException: If database connection fails
            DatabaseOperationException: If database operation fails
        """
        try:
            user = User(
                username=username,
                email=email,
                password_hash=password_hash,
                role=role,
            )
            self.session.add(user)
            await self.session.flush()
            await self.session.refresh(user)
            return user
        except IntegrityError as e:
            error_msg = str(e.orig).lower()
            if "unique" in error_msg or "duplicate" in error_msg:
                if "username" in error_msg:
                    raise DuplicateRecordException(f"Username '{username}' already exists")
                elif "email" in error_msg:
                    raise DuplicateRecordException(f"Email '{email}' already exists")
                raise DuplicateRecordException("User already exists")
            raise DatabaseOperationException("Failed to create user", detail=str(e.orig))
        except OperationalError as e:
            raise DatabaseConnectionException(detail=str(e.orig))
        except DBAPIError as e:
            raise DatabaseOperationException(detail=str(e.orig))

    async def get_by_id(self, user_id: UUID) -> User | None:
        """Get user by ID.

        Args:
            user_id: User UUID

        Returns:
            User object if found, None otherwise
        """
        result = await self._execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> User | None:
        result = await self._execute(
            select(User).where(User.username == username).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email (case-insensitive)."""
        result = await self._execute(
            select(User).where(User.email.ilike(email)).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def update_password(self, user_id: UUID, new_password_hash: str) -> bool:
        """Update user's password.

        Returns:
            True if the user exists and was updated
        """
        result = await self._execute(
            update(User)
            .where(User.id == user_id)
            .values(password_hash=new_password_hash)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
