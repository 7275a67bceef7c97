# src/leadflow/services/match_persister.py
from __future__ import annotations

from typing import Literal, Sequence
from uuid import UUID

from leadflow.adapters.logging_utils import get_logger
from leadflow.domain.ports import MatchRepository
from leadflow.services.matching import MatchCandidate

logger = get_logger(__name__)

PersistStrategy = Literal["diff", "replace"]


class MatchPersister:
    """
    Sole writer of match rows.

    Strategies:
      - "replace": delete everything in scope, then insert. Delete and insert
        commit separately: readers can see an empty scope in between, and a
        failed insert leaves the scope empty. Approved flags are dropped.
      - "diff": upsert the qualifying pairs (approved flags survive) and
        delete only pairs that no longer qualify, in one transaction.

    Concurrent writers over the same scope are last-writer-wins; there is
    no locking.
    """

    def __init__(self, repo: MatchRepository, strategy: PersistStrategy = "diff") -> None:
        if strategy not in ("diff", "replace"):
            raise ValueError(f"unknown match persist strategy: {strategy}")
        self.repo = repo
        self.strategy = strategy

    def persist_all(self, candidates: Sequence[MatchCandidate]) -> int:
        _check_unique(candidates)
        matches = [c.to_match() for c in candidates]
        if self.strategy == "replace":
            written = self.repo.replace_all(matches)
        else:
            written = self.repo.sync_all(matches)

        logger.info(
            "matches_persisted",
            extra={"context": {"scope": "all", "strategy": self.strategy, "count": written}},
        )
        return written

    def persist_for_lead(self, lead_id: UUID, candidates: Sequence[MatchCandidate]) -> int:
        _check_unique(candidates)
        stray = [c for c in candidates if c.lead_id != lead_id]
        if stray:
            raise ValueError(f"candidate set for lead {lead_id} contains other leads")

        matches = [c.to_match() for c in candidates]
        if self.strategy == "replace":
            written = self.repo.replace_for_lead(lead_id, matches)
        else:
            written = self.repo.sync_for_lead(lead_id, matches)

        logger.info(
            "matches_persisted",
            extra={
                "context": {
                    "scope": "lead",
                    "lead_id": str(lead_id),
                    "strategy": self.strategy,
                    "count": written,
                }
            },
        )
        return written


def _check_unique(candidates: Sequence[MatchCandidate]) -> None:
    seen: set[tuple[UUID, UUID]] = set()
    for c in candidates:
        if c.key in seen:
            raise ValueError(f"duplicate match pair: {c.lead_id} / {c.listing_id}")
        seen.add(c.key)
