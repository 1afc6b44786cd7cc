"""Review reminder sweep for projects awaiting client feedback."""
import logging
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from reviewgate.common.clock import utc_now
from reviewgate.common.config import settings
from reviewgate.integrations.notifier import LoggingNotifier, Notifier, notify_safely
from reviewgate.models.enums import TokenKind
from reviewgate.repository.project_repository import ProjectRepository
from reviewgate.usecase.access_token_usecase import AccessTokenUsecase
from reviewgate.usecase.base import BaseUsecase
from reviewgate.usecase.project_usecase import review_url

logger = logging.getLogger(__name__)


class ReminderUsecase(BaseUsecase):
    """Sends staged reminders with a fresh review link to quiet clients."""

    def __init__(self, session: AsyncSession, notifier: Notifier | None = None):
        super().__init__(session)
        self.project_repo = ProjectRepository(session)
        self.tokens = AccessTokenUsecase(session)
        self.notifier = notifier or LoggingNotifier()

    async def run_sweep(self, now: datetime | None = None) -> int:
        """Remind every eligible project once.

        Eligible: reminders enabled, pending, has a client email, below the
        final reminder stage, client inactive for ``reminder_inactivity_days``
        and no reminder within ``reminder_min_interval_hours``.

        Returns:
            Number of projects reminded
        """
        now = now or utc_now()
        last_sent_before = now - timedelta(hours=settings.reminder_min_interval_hours)
        async with self.transaction():
            candidates = await self.project_repo.list_reminder_candidates(
                inactive_before=now - timedelta(days=settings.reminder_inactivity_days),
                last_sent_before=last_sent_before,
                max_stage=settings.reminder_max_stage,
            )

        processed = 0
        for project in candidates:
            seen_stage = project.reminder_stage
            async with self.transaction():
                claimed = await self.project_repo.claim_reminder(
                    project.id, seen_stage, last_sent_before, now
                )
            if not claimed:
                logger.info("Reminder for project %s already sent by another sweep", project.id)
                continue

            issued = await self.tokens.issue(TokenKind.PROJECT_REVIEW_LINK, project.id)
            await notify_safely(
                self.notifier.send_reminder,
                project.client_email,
                project.id,
                project.title,
                review_url(project.id, issued.secret),
                seen_stage + 1,
            )
            processed += 1

        logger.info("Reminder sweep processed %s project(s)", processed)
        return processed
