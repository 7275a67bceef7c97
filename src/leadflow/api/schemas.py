# src/leadflow/api/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel
from pydantic import ConfigDict


# --------------------------------------------
# Requests
# --------------------------------------------

class LeadIdRequest(BaseModel):
    """
    Body for the single-lead endpoints.

    lead_id stays untyped here so a malformed value reaches our own
    validation and comes back as a 400 instead of a 422.
    """
    model_config = ConfigDict(extra="allow")

    lead_id: Any = None


class ApproveRequest(BaseModel):
    approved: bool = True


# --------------------------------------------
# Matching
# --------------------------------------------

class RegenerateAllResponse(BaseModel):
    matches_created: int


class RegenerateLeadResponse(BaseModel):
    matches_count: int


class MatchItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: UUID
    lead_id: UUID
    listing_id: UUID
    score: int
    reasons: list[str]
    approved: bool
    highly_suitable: bool
    created_at: datetime


# --------------------------------------------
# Escalation
# --------------------------------------------

class BatchResponse(BaseModel):
    total_leads: int
    processed: int
    scheduled: int
    moved_to_lost: int
    failed: int = 0


class EvaluateResponse(BaseModel):
    """Either a lost transition, or the follow-up that was scheduled."""
    model_config = ConfigDict(extra="allow")

    action: Literal["moved_to_lost", "rescheduled"]
    days_since_contact: int | None = None
    next_followup_date: str | None = None
    next_followup_time: str | None = None
    interval_days: int | None = None


# --------------------------------------------
# Reminders
# --------------------------------------------

class ReminderResponse(BaseModel):
    leads_checked: int
    notifications_created: int
