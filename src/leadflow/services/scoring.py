from __future__ import annotations

from dataclasses import dataclass, field

from leadflow.domain.records import Lead, Listing
from leadflow.domain.weights import WeightProfile
from leadflow.services.features import SubScore, compare


@dataclass(frozen=True)
class PairScore:
    score: int
    reasons: list[str]
    sub_scores: list[SubScore] = field(default_factory=list)

    def breakdown(self) -> dict[str, float]:
        return {s.feature: s.points for s in self.sub_scores}


def total_score(sub_scores: list[SubScore]) -> int:
    raw = sum(s.points for s in sub_scores)
    return int(round(max(0.0, min(raw, 100.0))))


def score_pair(lead: Lead, listing: Listing, profile: WeightProfile) -> PairScore:
    """
    Score one (lead, listing) pair on a 0..100 scale.

    Reasons are reported only for features that contributed points, in
    location -> category -> budget -> tags order. Ties between pairs are
    left to the caller.
    """
    subs = compare(lead, listing, profile)
    reasons = [s.reason for s in subs if s.points > 0 and s.reason]
    return PairScore(score=total_score(subs), reasons=reasons, sub_scores=subs)
