# src/leadflow/services/features.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from leadflow.domain.records import Lead, Listing
from leadflow.domain.weights import WeightProfile

Feature = Literal["location", "category", "budget", "tags"]

# evaluation order is also the order reasons are reported in
FEATURE_ORDER: tuple[Feature, ...] = ("location", "category", "budget", "tags")


@dataclass(frozen=True)
class SubScore:
    feature: Feature
    points: float
    reason: str | None = None


def _clamp(points: float, cap: float) -> float:
    return max(0.0, min(float(points), float(cap)))


def _norm(text: str | None) -> str:
    return (text or "").strip().lower()


def _positive(v: float | None) -> float | None:
    if v is None:
        return None
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    return f if f > 0 else None


# ---------------------------------------------------------------------------
# Location
# ---------------------------------------------------------------------------

def compare_location(lead: Lead, listing: Listing, profile: WeightProfile) -> SubScore:
    lead_loc = _norm(lead.location)
    listing_loc = _norm(listing.location)
    if not lead_loc or not listing_loc:
        return SubScore("location", 0.0)

    exact = lead_loc == listing_loc
    if exact:
        points = profile.location
    elif lead_loc in listing_loc or listing_loc in lead_loc:
        points = profile.location * profile.location_partial_ratio
    else:
        return SubScore("location", 0.0)

    # a profile that does not discount substrings reports both cases the same way
    if profile.location_partial_ratio >= 1.0:
        reason = "Location match"
    else:
        reason = "Exact location match" if exact else "Partial location match"
    return SubScore("location", _clamp(points, profile.location), reason)


# ---------------------------------------------------------------------------
# Category
# ---------------------------------------------------------------------------

def _adjacent(a: str, b: str, profile: WeightProfile) -> bool:
    for x, y in profile.adjacent_categories:
        if {a, b} == {x, y}:
            return True
    return False


def compare_category(lead: Lead, listing: Listing, profile: WeightProfile) -> SubScore:
    a = _norm(lead.category)
    b = _norm(listing.category)
    if not a or not b:
        return SubScore("category", 0.0)

    if a == b:
        reason = "Property type match" if profile.adjacent_category_ratio <= 0 else "Property type matches"
        return SubScore("category", _clamp(profile.category, profile.category), reason)

    if profile.adjacent_category_ratio > 0 and _adjacent(a, b, profile):
        points = profile.category * profile.adjacent_category_ratio
        return SubScore("category", _clamp(points, profile.category), "Similar property type")

    return SubScore("category", 0.0)


# ---------------------------------------------------------------------------
# Budget
# ---------------------------------------------------------------------------

def _listing_range(listing: Listing) -> tuple[float, float] | None:
    lo = _positive(listing.price_min)
    hi = _positive(listing.price_max)
    if lo is not None and hi is not None:
        return (min(lo, hi), max(lo, hi))
    return None


def compare_budget_point(lead: Lead, listing: Listing, profile: WeightProfile) -> SubScore:
    """
    Point containment: is the listing price inside the lead's budget?

    Missing budget ends default to 0 and +inf, but at least one end must be
    set. A listing that only carries a price band earns full weight when the
    band overlaps the budget.
    """
    bmin = _positive(lead.budget_min)
    bmax = _positive(lead.budget_max)
    if bmin is None and bmax is None:
        return SubScore("budget", 0.0)

    lo = bmin if bmin is not None else 0.0
    hi = bmax if bmax is not None else float("inf")

    price = _positive(listing.price)
    if price is None:
        band = _listing_range(listing)
        if band is not None and lo <= band[1] and hi >= band[0]:
            return SubScore("budget", _clamp(profile.budget, profile.budget), "Budget ranges overlap")
        return SubScore("budget", 0.0)

    if lo <= price <= hi:
        return SubScore("budget", _clamp(profile.budget, profile.budget), "Within budget")

    near = profile.budget * profile.budget_near_miss_ratio
    if price < lo and (lo - price) / lo <= profile.budget_near_miss_pct:
        return SubScore("budget", _clamp(near, profile.budget), "Slightly below budget")
    if price > hi and (price - hi) / hi <= profile.budget_near_miss_pct:
        return SubScore("budget", _clamp(near, profile.budget), "Slightly above budget")

    return SubScore("budget", 0.0)


def compare_budget_midpoint(lead: Lead, listing: Listing, profile: WeightProfile) -> SubScore:
    """
    Midpoint distance: relative gap between the centre of the lead's budget
    and the centre of the listing's price band (a bare price is a zero-width band).
    """
    bmin = _positive(lead.budget_min)
    bmax = _positive(lead.budget_max)
    if bmin is None or bmax is None:
        return SubScore("budget", 0.0)

    band = _listing_range(listing)
    if band is None:
        price = _positive(listing.price)
        if price is None:
            return SubScore("budget", 0.0)
        band = (price, price)

    lead_mid = (bmin + bmax) / 2.0
    listing_mid = (band[0] + band[1]) / 2.0
    gap = abs(lead_mid - listing_mid) / lead_mid

    for i, (max_gap, share) in enumerate(profile.budget_midpoint_tiers):
        if gap <= max_gap:
            if i == 0:
                reason = "Budget aligns perfectly"
            else:
                reason = f"Budget within {round(max_gap * 100)}% of preference"
            return SubScore("budget", _clamp(profile.budget * share, profile.budget), reason)

    return SubScore("budget", 0.0)


def compare_budget(lead: Lead, listing: Listing, profile: WeightProfile) -> SubScore:
    if profile.budget_method == "midpoint":
        return compare_budget_midpoint(lead, listing, profile)
    return compare_budget_point(lead, listing, profile)


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------

def compare_tags(lead: Lead, listing: Listing, profile: WeightProfile) -> SubScore:
    if profile.tag_bonus <= 0:
        return SubScore("tags", 0.0)

    for tag in listing.tags:
        t = tag.lower()
        if any(k in t for k in profile.tag_keywords):
            return SubScore(
                "tags",
                _clamp(profile.tag_bonus, profile.tag_bonus),
                f"Investment potential: {tag}",
            )
    return SubScore("tags", 0.0)


def compare(lead: Lead, listing: Listing, profile: WeightProfile) -> list[SubScore]:
    """All sub-scores for one pair, in FEATURE_ORDER."""
    return [
        compare_location(lead, listing, profile),
        compare_category(lead, listing, profile),
        compare_budget(lead, listing, profile),
        compare_tags(lead, listing, profile),
    ]
