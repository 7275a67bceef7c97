from __future__ import annotations

import threading
from datetime import date
from typing import Any, Iterable, Sequence
from uuid import UUID

from leadflow.domain.errors import LeadNotEligibleError, LeadNotFoundError, MatchNotFoundError
from leadflow.domain.records import ActivityEntry, Lead, Listing, Match, Notification


class InMemoryActivityLog:
    def __init__(self) -> None:
        self._items: list[ActivityEntry] = []
        self._lock = threading.Lock()

    def append(self, entry: ActivityEntry) -> None:
        with self._lock:
            self._items.append(entry.model_copy())

    def list_for_lead(self, lead_id: UUID | None) -> list[ActivityEntry]:
        with self._lock:
            return [e.model_copy() for e in self._items if e.lead_id == lead_id]

    def all(self) -> list[ActivityEntry]:
        with self._lock:
            return list(self._items)


class InMemoryLeadRepository:
    def __init__(self, activity: InMemoryActivityLog | None = None) -> None:
        self._items: dict[UUID, Lead] = {}
        self._lock = threading.Lock()
        self.activity = activity or InMemoryActivityLog()

    def upsert_many(self, items: Iterable[Lead]) -> int:
        written = 0
        with self._lock:
            for lead in items:
                self._items[lead.id] = lead.model_copy(deep=True)
                written += 1
        return written

    def get(self, lead_id: UUID) -> Lead | None:
        with self._lock:
            lead = self._items.get(lead_id)
            return lead.model_copy(deep=True) if lead else None

    def list_by_status(self, statuses: Sequence[str]) -> list[Lead]:
        wanted = set(statuses)
        with self._lock:
            rows = [l for l in self._items.values() if l.status in wanted]
        rows.sort(key=lambda l: (l.created_at, str(l.id)))
        return [l.model_copy(deep=True) for l in rows]

    def list_followups_due(self, on_date: date) -> list[Lead]:
        with self._lock:
            rows = [l for l in self._items.values() if l.next_followup_date == on_date]
        rows.sort(key=lambda l: (l.created_at, str(l.id)))
        return [l.model_copy(deep=True) for l in rows]

    def apply_transition(
        self,
        *,
        lead_id: UUID,
        changes: dict[str, Any],
        activity: ActivityEntry,
        expected_status: str | None = None,
    ) -> Lead:
        with self._lock:
            lead = self._items.get(lead_id)
            if lead is None:
                raise LeadNotFoundError(lead_id)
            if expected_status is not None and lead.status != expected_status:
                raise LeadNotEligibleError(lead_id, lead.status, expected_status)
            for k in changes:
                if k not in Lead.model_fields:
                    raise ValueError(f"unknown lead field: {k}")
            updated = lead.model_copy(update=changes, deep=True)
            self.activity.append(activity)
            self._items[lead_id] = updated
            return updated.model_copy(deep=True)


class InMemoryListingRepository:
    def __init__(self) -> None:
        self._items: dict[UUID, Listing] = {}

    def upsert_many(self, items: Iterable[Listing]) -> int:
        written = 0
        for listing in items:
            self._items[listing.id] = listing.model_copy(deep=True)
            written += 1
        return written

    def list_active(self) -> list[Listing]:
        return [l.model_copy(deep=True) for l in self._items.values() if l.is_active]


class InMemoryMatchRepository:
    """Keyed by (lead_id, listing_id), so a pair can only be stored once."""

    def __init__(self) -> None:
        self._items: dict[tuple[UUID, UUID], Match] = {}
        self._lock = threading.Lock()

    def _delete_scope(self, lead_id: UUID | None) -> None:
        if lead_id is None:
            self._items.clear()
        else:
            for key in [k for k in self._items if k[0] == lead_id]:
                del self._items[key]

    def _insert(self, matches: Sequence[Match]) -> None:
        staged: dict[tuple[UUID, UUID], Match] = {}
        for m in matches:
            key = (m.lead_id, m.listing_id)
            if key in self._items or key in staged:
                raise ValueError(f"duplicate match pair: {key}")
            staged[key] = m.model_copy(deep=True)
        self._items.update(staged)

    def replace_all(self, matches: Sequence[Match]) -> int:
        with self._lock:
            self._delete_scope(None)
        with self._lock:
            self._insert(matches)
        return len(matches)

    def replace_for_lead(self, lead_id: UUID, matches: Sequence[Match]) -> int:
        with self._lock:
            self._delete_scope(lead_id)
        with self._lock:
            self._insert(matches)
        return len(matches)

    def _sync(self, matches: Sequence[Match], lead_id: UUID | None) -> int:
        with self._lock:
            existing = {
                k: v for k, v in self._items.items() if lead_id is None or k[0] == lead_id
            }
            fresh: dict[tuple[UUID, UUID], Match] = {}
            for m in matches:
                key = (m.lead_id, m.listing_id)
                old = existing.get(key)
                if old is not None:
                    fresh[key] = old.model_copy(
                        update={
                            "score": m.score,
                            "reasons": list(m.reasons),
                            "highly_suitable": m.highly_suitable,
                        }
                    )
                else:
                    fresh[key] = m.model_copy(deep=True)
            for key in existing:
                del self._items[key]
            self._items.update(fresh)
        return len(matches)

    def sync_all(self, matches: Sequence[Match]) -> int:
        return self._sync(matches, None)

    def sync_for_lead(self, lead_id: UUID, matches: Sequence[Match]) -> int:
        return self._sync(matches, lead_id)

    def list_all(self) -> list[Match]:
        with self._lock:
            rows = list(self._items.values())
        rows.sort(key=lambda m: (str(m.lead_id), -m.score, str(m.listing_id)))
        return [m.model_copy(deep=True) for m in rows]

    def list_for_lead(self, lead_id: UUID) -> list[Match]:
        return [m for m in self.list_all() if m.lead_id == lead_id]

    def set_approved(self, match_id: UUID, approved: bool) -> Match:
        with self._lock:
            for key, m in self._items.items():
                if m.id == match_id:
                    updated = m.model_copy(update={"approved": bool(approved)})
                    self._items[key] = updated
                    return updated.model_copy()
        raise MatchNotFoundError(match_id)


class InMemoryNotificationRepository:
    def __init__(self) -> None:
        self._items: list[Notification] = []

    def add_many(self, items: Sequence[Notification]) -> int:
        self._items.extend(n.model_copy() for n in items)
        return len(items)

    def all(self) -> list[Notification]:
        return list(self._items)
