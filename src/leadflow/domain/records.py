from datetime import date, datetime, time, timezone
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

# Property categories shared by leads and listings
Category = Literal["apartment", "villa", "townhouse", "commercial", "land"]

LeadStatus = Literal[
    "new",
    "contacted",
    "reached",
    "qualified",
    "interested",
    "site_visit_scheduled",
    "site_visit_rescheduled",
    "site_visit_completed",
    "not_interested",
    "converted",
    "lost",
    "junk",
    "rnr_swo",
]

ActivityType = Literal["call", "email", "meeting", "note", "audit"]


def utcnow() -> datetime:
    """Naive UTC timestamp, the convention used for every stored datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _clean_tags(v: list[str] | None) -> list[str]:
    if not v:
        return []
    return [str(t).strip() for t in v if t is not None and str(t).strip()]


class Lead(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str = ""

    location: str | None = None
    category: Category | None = None
    budget_min: float | None = None
    budget_max: float | None = None
    tags: list[str] = Field(default_factory=list)

    status: LeadStatus = "new"
    created_at: datetime = Field(default_factory=utcnow)
    last_contacted_at: datetime | None = None

    next_followup_date: date | None = None
    next_followup_time: time | None = None

    lost_reason: str | None = None
    assigned_to: str | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v):
        return _clean_tags(v)


class Listing(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str = ""

    location: str | None = None
    category: Category | None = None

    # Legacy single price, or a price band
    price: float | None = None
    price_min: float | None = None
    price_max: float | None = None

    tags: list[str] = Field(default_factory=list)
    is_active: bool = True

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v):
        return _clean_tags(v)


class Match(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    lead_id: UUID
    listing_id: UUID
    score: int = Field(..., ge=0, le=100)
    reasons: list[str] = Field(default_factory=list)
    approved: bool = False
    highly_suitable: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class ActivityEntry(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    lead_id: UUID | None = None
    activity_type: ActivityType = "note"
    notes: str
    actor: str = "system"
    completed_at: datetime = Field(default_factory=utcnow)


class Notification(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    lead_id: UUID
    recipient_id: str
    type: str = "follow_up_reminder"
    title: str
    message: str
    created_at: datetime = Field(default_factory=utcnow)
