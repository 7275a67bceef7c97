# src/leadflow/adapters/sql_repo.py
from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, Iterable, Sequence
from uuid import UUID, uuid4

from sqlalchemy import DateTime, UniqueConstraint, delete, update
from sqlalchemy.engine import Engine
from sqlmodel import JSON, Column, Field, Session, SQLModel, col, create_engine, select

from leadflow.domain.errors import LeadNotEligibleError, LeadNotFoundError, MatchNotFoundError
from leadflow.domain.records import ActivityEntry, Lead, Listing, Match, Notification, utcnow


def make_engine(uri: str) -> Engine:
    connect_args: dict[str, Any] = {}
    if uri.startswith("sqlite"):
        # the escalation batch writes from worker threads
        connect_args["check_same_thread"] = False
    engine = create_engine(uri, echo=False, connect_args=connect_args)
    SQLModel.metadata.create_all(engine)
    return engine


# ---------- Leads ----------

class LeadRow(SQLModel, table=True):
    __tablename__ = "leads"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)

    name: str = ""
    location: str | None = None
    category: str | None = Field(default=None, index=True)
    budget_min: float | None = None
    budget_max: float | None = None
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON))

    status: str = Field(default="new", index=True)
    last_contacted_at: datetime | None = Field(default=None, index=True, sa_type=DateTime)
    next_followup_date: date | None = Field(default=None, index=True)
    next_followup_time: time | None = None

    lost_reason: str | None = None
    assigned_to: str | None = Field(default=None, index=True)


def _lead_from_row(r: LeadRow) -> Lead:
    return Lead.model_validate(r.model_dump())


class SqlLeadRepository:
    def __init__(self, uri: str = "sqlite:///leadflow.db", engine: Engine | None = None):
        self.engine = engine or make_engine(uri)

    def upsert_many(self, items: Iterable[Lead]) -> int:
        written = 0
        with Session(self.engine) as session:
            for lead in items:
                data = lead.model_dump()
                row = session.get(LeadRow, lead.id)
                if row:
                    for k, v in data.items():
                        setattr(row, k, v)
                    row.updated_at = utcnow()
                else:
                    row = LeadRow(**data)
                session.add(row)
                written += 1
            session.commit()
        return written

    def get(self, lead_id: UUID) -> Lead | None:
        with Session(self.engine) as session:
            row = session.get(LeadRow, lead_id)
            return _lead_from_row(row) if row else None

    def list_by_status(self, statuses: Sequence[str]) -> list[Lead]:
        if not statuses:
            return []
        with Session(self.engine) as session:
            stmt = (
                select(LeadRow)
                .where(col(LeadRow.status).in_(list(statuses)))
                .order_by(LeadRow.created_at, LeadRow.id)
            )
            return [_lead_from_row(r) for r in session.exec(stmt)]

    def list_followups_due(self, on_date: date) -> list[Lead]:
        with Session(self.engine) as session:
            stmt = (
                select(LeadRow)
                .where(LeadRow.next_followup_date == on_date)
                .order_by(LeadRow.created_at, LeadRow.id)
            )
            return [_lead_from_row(r) for r in session.exec(stmt)]

    def apply_transition(
        self,
        *,
        lead_id: UUID,
        changes: dict[str, Any],
        activity: ActivityEntry,
        expected_status: str | None = None,
    ) -> Lead:
        for k in changes:
            if k not in LeadRow.model_fields:
                raise ValueError(f"unknown lead field: {k}")

        with Session(self.engine) as session:
            # the status guard is part of the UPDATE itself, so a concurrent
            # transition that got there first makes this one match no row
            stmt = update(LeadRow).where(col(LeadRow.id) == lead_id)
            if expected_status is not None:
                stmt = stmt.where(col(LeadRow.status) == expected_status)
            result = session.execute(stmt.values(**changes, updated_at=utcnow()))

            if result.rowcount == 0:
                session.rollback()
                row = session.get(LeadRow, lead_id)
                if not row:
                    raise LeadNotFoundError(lead_id)
                raise LeadNotEligibleError(lead_id, row.status, expected_status)

            session.add(ActivityRow(**activity.model_dump()))
            # lead + activity land together or not at all
            session.commit()
            return _lead_from_row(session.get(LeadRow, lead_id))


# ---------- Listings ----------

class ListingRow(SQLModel, table=True):
    __tablename__ = "listings"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    ts: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)

    name: str = ""
    location: str | None = None
    category: str | None = Field(default=None, index=True)

    price: float | None = Field(default=None, index=True)
    price_min: float | None = None
    price_max: float | None = None

    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    is_active: bool = Field(default=True, index=True)


class SqlListingRepository:
    def __init__(self, uri: str = "sqlite:///leadflow.db", engine: Engine | None = None):
        self.engine = engine or make_engine(uri)

    def upsert_many(self, items: Iterable[Listing]) -> int:
        written = 0
        with Session(self.engine) as session:
            for listing in items:
                data = listing.model_dump()
                row = session.get(ListingRow, listing.id)
                if row:
                    for k, v in data.items():
                        setattr(row, k, v)
                else:
                    row = ListingRow(**data)
                session.add(row)
                written += 1
            session.commit()
        return written

    def list_active(self) -> list[Listing]:
        with Session(self.engine) as session:
            stmt = (
                select(ListingRow)
                .where(ListingRow.is_active == True)  # noqa: E712
                .order_by(ListingRow.ts, ListingRow.id)
            )
            return [Listing.model_validate(r.model_dump()) for r in session.exec(stmt)]


# ---------- Matches ----------

class MatchRow(SQLModel, table=True):
    __tablename__ = "matches"
    __table_args__ = (UniqueConstraint("lead_id", "listing_id", name="uq_match_pair"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)

    lead_id: UUID = Field(index=True)
    listing_id: UUID = Field(index=True)

    score: int = Field(index=True)
    reasons: list[str] = Field(default_factory=list, sa_column=Column(JSON))

    approved: bool = Field(default=False)
    highly_suitable: bool = Field(default=False)


def _match_from_row(r: MatchRow) -> Match:
    return Match.model_validate(r.model_dump())


class SqlMatchRepository:
    """
    Match storage. replace_* commit the delete and the insert separately;
    sync_* run as a single transaction.
    """

    def __init__(self, uri: str = "sqlite:///leadflow.db", engine: Engine | None = None):
        self.engine = engine or make_engine(uri)

    # legacy wipe-and-insert

    def _replace(self, matches: Sequence[Match], lead_id: UUID | None) -> int:
        with Session(self.engine) as session:
            stmt = delete(MatchRow)
            if lead_id is not None:
                stmt = stmt.where(MatchRow.lead_id == lead_id)
            session.execute(stmt)
            session.commit()

        if not matches:
            return 0

        with Session(self.engine) as session:
            session.add_all([MatchRow(**m.model_dump()) for m in matches])
            session.commit()
        return len(matches)

    def replace_all(self, matches: Sequence[Match]) -> int:
        return self._replace(matches, None)

    def replace_for_lead(self, lead_id: UUID, matches: Sequence[Match]) -> int:
        return self._replace(matches, lead_id)

    # upsert + delete disappeared pairs

    def _sync(self, matches: Sequence[Match], lead_id: UUID | None) -> int:
        with Session(self.engine) as session:
            stmt = select(MatchRow)
            if lead_id is not None:
                stmt = stmt.where(MatchRow.lead_id == lead_id)
            existing = {(r.lead_id, r.listing_id): r for r in session.exec(stmt)}

            wanted: set[tuple[UUID, UUID]] = set()
            for m in matches:
                key = (m.lead_id, m.listing_id)
                wanted.add(key)
                row = existing.get(key)
                if row:
                    row.score = m.score
                    row.reasons = list(m.reasons)
                    row.highly_suitable = m.highly_suitable
                    session.add(row)
                else:
                    session.add(MatchRow(**m.model_dump()))

            for key, row in existing.items():
                if key not in wanted:
                    session.delete(row)

            session.commit()
        return len(matches)

    def sync_all(self, matches: Sequence[Match]) -> int:
        return self._sync(matches, None)

    def sync_for_lead(self, lead_id: UUID, matches: Sequence[Match]) -> int:
        return self._sync(matches, lead_id)

    def list_all(self) -> list[Match]:
        with Session(self.engine) as session:
            stmt = select(MatchRow).order_by(MatchRow.lead_id, MatchRow.score.desc(), MatchRow.listing_id)
            return [_match_from_row(r) for r in session.exec(stmt)]

    def list_for_lead(self, lead_id: UUID) -> list[Match]:
        with Session(self.engine) as session:
            stmt = (
                select(MatchRow)
                .where(MatchRow.lead_id == lead_id)
                .order_by(MatchRow.score.desc(), MatchRow.listing_id)
            )
            return [_match_from_row(r) for r in session.exec(stmt)]

    def set_approved(self, match_id: UUID, approved: bool) -> Match:
        with Session(self.engine) as session:
            row = session.get(MatchRow, match_id)
            if not row:
                raise MatchNotFoundError(match_id)
            row.approved = bool(approved)
            session.add(row)
            session.commit()
            session.refresh(row)
            return _match_from_row(row)


# ---------- Activity log ----------

class ActivityRow(SQLModel, table=True):
    __tablename__ = "activities"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    lead_id: UUID | None = Field(default=None, index=True)

    activity_type: str = Field(default="note")
    notes: str
    actor: str = Field(default="system", index=True)
    completed_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)


class SqlActivityLog:
    """Append-only. Nothing in the automation core reads it back."""

    def __init__(self, uri: str = "sqlite:///leadflow.db", engine: Engine | None = None):
        self.engine = engine or make_engine(uri)

    def append(self, entry: ActivityEntry) -> None:
        with Session(self.engine) as session:
            session.add(ActivityRow(**entry.model_dump()))
            session.commit()

    def list_for_lead(self, lead_id: UUID | None) -> list[ActivityEntry]:
        with Session(self.engine) as session:
            if lead_id is None:
                stmt = select(ActivityRow).where(col(ActivityRow.lead_id).is_(None))
            else:
                stmt = select(ActivityRow).where(ActivityRow.lead_id == lead_id)
            stmt = stmt.order_by(ActivityRow.completed_at, ActivityRow.id)
            return [ActivityEntry.model_validate(r.model_dump()) for r in session.exec(stmt)]


# ---------- Notifications ----------

class NotificationRow(SQLModel, table=True):
    __tablename__ = "notifications"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, index=True, sa_type=DateTime)

    lead_id: UUID = Field(index=True)
    recipient_id: str = Field(index=True)
    type: str = Field(default="follow_up_reminder")
    title: str
    message: str


class SqlNotificationRepository:
    def __init__(self, uri: str = "sqlite:///leadflow.db", engine: Engine | None = None):
        self.engine = engine or make_engine(uri)

    def add_many(self, items: Sequence[Notification]) -> int:
        with Session(self.engine) as session:
            session.add_all([NotificationRow(**n.model_dump()) for n in items])
            session.commit()
        return len(items)

    def list_for_recipient(self, recipient_id: str) -> list[Notification]:
        with Session(self.engine) as session:
            stmt = (
                select(NotificationRow)
                .where(NotificationRow.recipient_id == recipient_id)
                .order_by(NotificationRow.created_at, NotificationRow.id)
            )
            return [Notification.model_validate(r.model_dump()) for r in session.exec(stmt)]
