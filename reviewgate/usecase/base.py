"""Shared transaction handling for usecases."""
import asyncio
import logging
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from reviewgate.common.config import settings
from reviewgate.common.exceptions import InternalServerException, StoreUnavailableException
from reviewgate.repository.exceptions import (
    DatabaseConnectionException,
    DatabaseOperationException,
)

logger = logging.getLogger(__name__)


class BaseUsecase:
    """Base class for usecases that own their transactions."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def transaction(self):
        """Open a transaction bounded by ``settings.store_timeout_seconds``.

        Commits on success and rolls back on any exception. Store timeouts and
        connection failures surface as ``StoreUnavailableException`` so callers
        can retry; they are never reported as a missing record.

        Raises:
            StoreUnavailableException: If the store times out or is unreachable
            InternalServerException: If a statement fails
        """
        try:
            async with asyncio.timeout(settings.store_timeout_seconds):
                async with self.session.begin():
                    yield
        except TimeoutError:
            logger.warning("Store operation timed out after %ss", settings.store_timeout_seconds)
            raise StoreUnavailableException()
        except DatabaseConnectionException as e:
            logger.warning("Store unavailable: %s", e.detail)
            raise StoreUnavailableException()
        except DatabaseOperationException as e:
            logger.error("Store operation failed: %s", e.detail)
            raise InternalServerException()
