"""Dashboard endpoints: suggestions, scores, leaderboard, badges."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from karmaledger.auth.dependencies import get_current_user
from karmaledger.container import KarmaServices
from karmaledger.dashboard.schemas import (
    BadgeResponse,
    LeaderboardEntry,
    SuggestionResponse,
    TriggerSuggestionsResponse,
    UserBadgeResponse,
    WeeklyScoreEntry,
)
from karmaledger.dashboard.service import weekly_karma_scores, weekly_leaderboard
from karmaledger.database import get_session
from karmaledger.db.models import User
from karmaledger.dependencies import get_services
from karmaledger.gamification.badge_service import list_badges, list_user_badges
from karmaledger.suggestions.service import list_suggestions, mark_suggestion_used

router = APIRouter(prefix="/api/v1/dashboard", tags=["Dashboard"])


# ── Suggestions ──


@router.post("/trigger-suggestions", response_model=TriggerSuggestionsResponse, status_code=202)
async def trigger_suggestions(
    user: User = Depends(get_current_user),
    services: KarmaServices = Depends(get_services),
):
    """Queue weekly suggestion generation for the current user."""
    return await services.suggestions.trigger(user.id)


@router.get("/suggestions", response_model=list[SuggestionResponse])
async def suggestions(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return await list_suggestions(db, user.id)


@router.patch("/suggestions/{suggestion_id}/mark-used", response_model=SuggestionResponse)
async def suggestion_mark_used(
    suggestion_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    suggestion = await mark_suggestion_used(db, user.id, suggestion_id)
    await db.commit()
    return suggestion


# ── Scores & leaderboard ──


@router.get("/karma-scores", response_model=list[WeeklyScoreEntry])
async def karma_scores(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Normalized score per personal week since joining."""
    return await weekly_karma_scores(db, user.id)


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
async def leaderboard(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    services: KarmaServices = Depends(get_services),
):
    """Top users of the current calendar week."""
    return await weekly_leaderboard(db, services.bus, size=services.settings.leaderboard_size)


# ── Badges ──


@router.get("/badges", response_model=list[BadgeResponse])
async def badges(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return await list_badges(db)


@router.get("/badges/me", response_model=list[UserBadgeResponse])
async def my_badges(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return await list_user_badges(db, user.id)
