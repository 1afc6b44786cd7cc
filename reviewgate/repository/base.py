"""Shared plumbing for repositories."""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, OperationalError, DBAPIError

from .exceptions import (
    DuplicateRecordException,
    DatabaseConnectionException,
    DatabaseOperationException,
)


class BaseRepository:
    """Base class holding the session and the driver-error translation."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _execute(self, statement):
        """Execute a statement, translating driver errors.

        Raises:
            DatabaseConnectionException: If the connection fails or the store is locked
            DatabaseOperationException: If the statement fails
        """
        try:
            return await self.session.execute(statement)
        except OperationalError as e:
            raise DatabaseConnectionException(detail=str(e.orig))
        except DBAPIError as e:
            raise DatabaseOperationException(detail=str(e.orig))

    async def _insert(self, instance, duplicate_message: str = "Record already exists"):
        """Add and flush a new row, returning it refreshed.

        Raises:
            DuplicateRecordException: If a unique constraint is violated
            DatabaseConnectionException: If database connection fails
            DatabaseOperationException: If database operation fails
        """
        try:
            self.session.add(instance)
            await self.session.flush()
            await self.session.refresh(instance)
            return instance
        except IntegrityError as e:
            error_msg = str(e.orig).lower()
            if "unique" in error_msg or "duplicate" in error_msg:
                raise DuplicateRecordException(duplicate_message, detail=str(e.orig))
            raise DatabaseOperationException("Failed to create record", detail=str(e.orig))
        except OperationalError as e:
            raise DatabaseConnectionException(detail=str(e.orig))
        except DBAPIError as e:
            raise DatabaseOperationException(detail=str(e.orig))

    async def _flush(self, duplicate_message: str = "Record already exists") -> None:
        """Flush pending changes to loaded rows."""
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise DuplicateRecordException(duplicate_message, detail=str(e.orig))
        except OperationalError as e:
            raise DatabaseConnectionException(detail=str(e.orig))
        except DBAPIError as e:
            raise DatabaseOperationException(detail=str(e.orig))
