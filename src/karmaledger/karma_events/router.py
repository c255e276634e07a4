"""Karma event endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from karmaledger.auth.dependencies import get_current_user
from karmaledger.container import KarmaServices
from karmaledger.dashboard.service import karma_score_summary
from karmaledger.database import get_session
from karmaledger.db.models import User
from karmaledger.dependencies import get_services
from karmaledger.karma_events.schemas import CreateKarmaEventRequest, KarmaEventResponse, KarmaScoreResponse
from karmaledger.karma_events.service import list_user_events

router = APIRouter(prefix="/api/v1/karma-events", tags=["Karma Events"])


@router.post("", response_model=KarmaEventResponse, status_code=201)
async def create_karma_event(
    body: CreateKarmaEventRequest,
    user: User = Depends(get_current_user),
    services: KarmaServices = Depends(get_services),
):
    """Log a karma event. Feedback is generated in the background."""
    return await services.feedback.create_event(user.id, body.action, body.reflection, body.occurred_at)


@router.get("/me", response_model=list[KarmaEventResponse])
async def my_karma_events(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """The current user's events, newest first."""
    return await list_user_events(db, user.id)


@router.get("/me/score", response_model=KarmaScoreResponse)
async def my_karma_score(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Overall normalized karma score."""
    return await karma_score_summary(db, user.id)
