# src/leadflow/services/matching.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence
from uuid import UUID

from leadflow.domain.records import Lead, Listing, Match
from leadflow.domain.weights import WeightProfile
from leadflow.services.scoring import score_pair


@dataclass(frozen=True)
class MatchCandidate:
    lead_id: UUID
    listing_id: UUID
    score: int
    reasons: tuple[str, ...]
    highly_suitable: bool = False

    @property
    def key(self) -> tuple[UUID, UUID]:
        return (self.lead_id, self.listing_id)

    def to_match(self) -> Match:
        return Match(
            lead_id=self.lead_id,
            listing_id=self.listing_id,
            score=self.score,
            reasons=list(self.reasons),
            highly_suitable=self.highly_suitable,
        )


def _candidate(lead: Lead, listing: Listing, profile: WeightProfile) -> MatchCandidate:
    ps = score_pair(lead, listing, profile)
    return MatchCandidate(
        lead_id=lead.id,
        listing_id=listing.id,
        score=ps.score,
        reasons=tuple(ps.reasons),
    )


def _active(listings: Iterable[Listing]) -> list[Listing]:
    return [l for l in listings if l.is_active]


def build_full_match_set(
    leads: Sequence[Lead],
    listings: Sequence[Listing],
    *,
    profile: WeightProfile,
    min_score: int,
    active_statuses: Sequence[str] | None = None,
) -> list[MatchCandidate]:
    """
    Score every eligible lead against every active listing and keep the
    pairs at or above min_score. No per-lead cap.

    The result is sorted by (lead id, score desc, listing id) so the same
    input always yields the same list.
    """
    statuses = set(active_statuses) if active_statuses is not None else None
    pool = _active(listings)

    out: list[MatchCandidate] = []
    for lead in leads:
        if statuses is not None and lead.status not in statuses:
            continue
        for listing in pool:
            cand = _candidate(lead, listing, profile)
            if cand.score >= min_score:
                out.append(cand)

    out.sort(key=lambda c: (str(c.lead_id), -c.score, str(c.listing_id)))
    return out


def build_lead_match_set(
    lead: Lead,
    listings: Sequence[Listing],
    *,
    profile: WeightProfile,
    min_score: int,
    top_k: int,
    highly_suitable_at: int,
) -> list[MatchCandidate]:
    """
    Top-k listings for a single lead, best first. Equal scores are ordered
    by listing id.
    """
    scored = [_candidate(lead, listing, profile) for listing in _active(listings)]
    kept = [c for c in scored if c.score >= min_score]
    kept.sort(key=lambda c: (-c.score, str(c.listing_id)))

    return [
        MatchCandidate(
            lead_id=c.lead_id,
            listing_id=c.listing_id,
            score=c.score,
            reasons=c.reasons,
            highly_suitable=c.score >= highly_suitable_at,
        )
        for c in kept[:top_k]
    ]
