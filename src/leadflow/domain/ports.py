# src/leadflow/domain/ports.py
from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Protocol, Sequence
from uuid import UUID

from leadflow.domain.records import ActivityEntry, Lead, Listing, Match, Notification


# ----------------------------
# Leads
# ----------------------------

class LeadRepository(Protocol):
    def upsert_many(self, items: Iterable[Lead]) -> int:
        ...

    def get(self, lead_id: UUID) -> Lead | None:
        ...

    def list_by_status(self, statuses: Sequence[str]) -> list[Lead]:
        ...

    def list_followups_due(self, on_date: date) -> list[Lead]:
        ...

    def apply_transition(
        self,
        *,
        lead_id: UUID,
        changes: dict[str, Any],
        activity: ActivityEntry,
        expected_status: str | None = None,
    ) -> Lead:
        """Write the lead changes and the activity entry atomically.

        With expected_status set, the write only happens if the stored lead
        still has that status; otherwise LeadNotEligibleError is raised and
        nothing is written.
        """
        ...


# ----------------------------
# Listings
# ----------------------------

class ListingRepository(Protocol):
    def upsert_many(self, items: Iterable[Listing]) -> int:
        ...

    def list_active(self) -> list[Listing]:
        ...


# ----------------------------
# Matches
# ----------------------------

class MatchRepository(Protocol):
    def replace_all(self, matches: Sequence[Match]) -> int:
        ...

    def replace_for_lead(self, lead_id: UUID, matches: Sequence[Match]) -> int:
        ...

    def sync_all(self, matches: Sequence[Match]) -> int:
        ...

    def sync_for_lead(self, lead_id: UUID, matches: Sequence[Match]) -> int:
        ...

    def list_all(self) -> list[Match]:
        ...

    def list_for_lead(self, lead_id: UUID) -> list[Match]:
        ...

    def set_approved(self, match_id: UUID, approved: bool) -> Match:
        ...


# ----------------------------
# Activity log + notifications (collaborators)
# ----------------------------

class ActivityLog(Protocol):
    def append(self, entry: ActivityEntry) -> None:
        ...

    def list_for_lead(self, lead_id: UUID | None) -> list[ActivityEntry]:
        ...


class NotificationRepository(Protocol):
    def add_many(self, items: Sequence[Notification]) -> int:
        ...
