"""Pydantic request/response models for karma event endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CreateKarmaEventRequest(BaseModel):
    action: str = Field(max_length=500)
    reflection: str | None = None
    occurred_at: datetime | None = None


class KarmaEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    action: str
    reflection: str | None
    intensity: int | None
    feedback: str | None
    feedback_generated: bool
    feedback_status: str
    feedback_attempts: int
    occurred_at: datetime
    created_at: datetime


class KarmaScoreResponse(BaseModel):
    total_percentage: str
    scored_events: int
