"""Notification dispatch.

The mail dispatcher is an external collaborator. ``LoggingNotifier`` is the
shipped implementation: it records that a message would go out but never
writes links, since they carry raw bearer secrets.
"""
import logging
from abc import ABC, abstractmethod
from uuid import UUID

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Outbound notifications triggered by state transitions."""

    @abstractmethod
    async def send_approval_notification(
        self, project_id: UUID, project_title: str, version_number: int, approved_by: str
    ) -> None:
        pass

    @abstractmethod
    async def send_reminder(
        self, to: str, project_id: UUID, project_title: str, review_url: str, stage: int
    ) -> None:
        pass

    @abstractmethod
    async def send_password_reset(self, to: str, reset_url: str) -> None:
        pass

    @abstractmethod
    async def send_client_upload_notification(
        self, folder_id: UUID, folder_name: str, filename: str
    ) -> None:
        pass


class LoggingNotifier(Notifier):
    """Notifier that only writes to the application log."""

    async def send_approval_notification(
        self, project_id: UUID, project_title: str, version_number: int, approved_by: str
    ) -> None:
        logger.info(
            "Approval notification: project=%s version=%s approved_by=%s",
            project_id, version_number, approved_by,
        )

    async def send_reminder(
        self, to: str, project_id: UUID, project_title: str, review_url: str, stage: int
    ) -> None:
        logger.info("Reminder %s for project=%s queued for delivery", stage, project_id)

    async def send_password_reset(self, to: str, reset_url: str) -> None:
        logger.info("Password reset email queued for delivery")

    async def send_client_upload_notification(
        self, folder_id: UUID, folder_name: str, filename: str
    ) -> None:
        logger.info("Client upload notification: folder=%s", folder_id)


async def notify_safely(send, *args, **kwargs) -> bool:
    """Invoke a notifier method, logging and swallowing any failure.

    Returns:
        True if the notifier returned normally
    """
    try:
        await send(*args, **kwargs)
        return True
    except Exception:
        logger.exception("Notification %s failed", getattr(send, "__name__", send))
        return False


_notifier: Notifier = LoggingNotifier()


def get_notifier() -> Notifier:
    """Dependency for getting the configured notifier."""
    return _notifier
