"""Password reset flow built on single-use bearer tokens."""
import logging
from urllib.parse import urlencode

from sqlalchemy.ext.asyncio import AsyncSession

from reviewgate.common.clock import utc_now
from reviewgate.common.config import settings
from reviewgate.common.exceptions import AlreadyUsedException, NotFoundException
from reviewgate.domain.auth_service import hash_password
from reviewgate.integrations.notifier import LoggingNotifier, Notifier, notify_safely
from reviewgate.models.enums import TokenKind
from reviewgate.repository.access_token_repository import AccessTokenRepository
from reviewgate.repository.user_repository import UserRepository
from reviewgate.usecase.access_token_usecase import AccessTokenUsecase, INVALID_TOKEN_MESSAGE
from reviewgate.usecase.base import BaseUsecase

logger = logging.getLogger(__name__)


class PasswordResetUsecase(BaseUsecase):
    """Usecase for requesting and redeeming password reset links."""

    def __init__(self, session: AsyncSession, notifier: Notifier | None = None):
        super().__init__(session)
        self.user_repo = UserRepository(session)
        self.token_repo = AccessTokenRepository(session)
        self.tokens = AccessTokenUsecase(session)
        self.notifier = notifier or LoggingNotifier()

    async def request_reset(self, email: str) -> None:
        """Issue a reset link and mail it.

        Returns normally whether or not the address belongs to an account, so
        the response cannot be used to discover accounts. Issuing replaces
        every earlier reset link of the user.
        """
        async with self.transaction():
            user = await self.user_repo.get_by_email(email)

        if user is None:
            logger.info("Password reset requested for unknown address")
            return

        issued = await self.tokens.issue(TokenKind.PASSWORD_RESET, user.id)
        query = urlencode({"email": user.email, "token": issued.secret})
        reset_url = f"{settings.app_url}/reset-password?{query}"
        await notify_safely(self.notifier.send_password_reset, user.email, reset_url)

    async def reset_password(self, email: str, raw_secret: str, new_password: str) -> None:
        """Redeem a reset token and set the new password.

        Burning the token and storing the new hash commit together, so a store
        failure leaves the link usable for a retry.

        Raises:
            NotFoundException: If the token is unknown, used, revoked or for another account
            ExpiredException: If the token has expired
            AlreadyUsedException: If a concurrent redemption won the race
        """
        async with self.transaction():
            user = await self.user_repo.get_by_email(email)

        if user is None:
            raise NotFoundException(INVALID_TOKEN_MESSAGE)

        resolved = await self.tokens.resolve(
            TokenKind.PASSWORD_RESET, raw_secret, expected_subject_id=user.id
        )
        new_hash = hash_password(new_password)

        async with self.transaction():
            consumed = await self.token_repo.consume_if_unused(resolved.token_id, utc_now())
            if not consumed:
                raise AlreadyUsedException("This link has already been used")
            await self.user_repo.update_password(user.id, new_hash)

        logger.info("Password reset completed for user %s", user.id)
