"""Pydantic response models for dashboard endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


# --- Suggestions ---


class SuggestionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    suggestion_text: str
    week: int
    used: bool
    created_at: datetime


class TriggerSuggestionsResponse(BaseModel):
    user_id: int
    week: int
    queued: bool


# --- Scores ---


class WeeklyScoreEntry(BaseModel):
    week: int
    score: str


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    username: str
    score: int
    event_count: int


# --- Badges ---


class BadgeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    description: str
    icon: str
    is_active: bool


class UserBadgeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    badge_id: int
    awarded_at: datetime
    badge: BadgeResponse
