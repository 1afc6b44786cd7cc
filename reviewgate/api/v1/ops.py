"""Operational API endpoints (scheduled jobs)."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from reviewgate.common.database import get_db
from reviewgate.common.exceptions import ForbiddenException
from reviewgate.common.responses import success_response
from reviewgate.domain.schemas import ReminderSweepResponse
from reviewgate.usecase.reminder_usecase import ReminderUsecase
from .dependencies import CurrentSession, NotifierDep

router = APIRouter()


@router.post("/ops/reminders", response_model=dict)
async def run_reminders(
    current_session: CurrentSession,
    notifier: NotifierDep,
    session: AsyncSession = Depends(get_db),
):
    """Run the review reminder sweep (administrators only, called by a scheduler)."""
    if not current_session.is_admin:
        raise ForbiddenException("Administrator role required")

    usecase = ReminderUsecase(session, notifier)
    processed = await usecase.run_sweep()
    return success_response(ReminderSweepResponse(processed=processed).model_dump())
