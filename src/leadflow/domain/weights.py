# src/leadflow/domain/weights.py
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

BudgetMethod = Literal["point", "midpoint"]


class WeightProfile(BaseModel):
    """
    Weight table for one matching call site.

    The full-dataset and single-lead call sites score the same pair
    differently (different location/category weights, different budget
    algorithms, a tag bonus on one side only). Both tables are kept as
    separately configurable profiles instead of being merged into one.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str

    location: float = Field(..., ge=0)
    # share of the location weight awarded for substring containment
    location_partial_ratio: float = Field(1.0, ge=0, le=1)

    category: float = Field(..., ge=0)
    # share of the category weight awarded for an adjacent category pair
    adjacent_category_ratio: float = Field(0.0, ge=0, le=1)
    adjacent_categories: tuple[tuple[str, str], ...] = (("apartment", "villa"),)

    budget: float = Field(..., ge=0)
    budget_method: BudgetMethod = "point"
    # point method: share awarded when the price misses the range by <= near_miss_pct
    budget_near_miss_ratio: float = Field(0.5, ge=0, le=1)
    budget_near_miss_pct: float = Field(0.20, ge=0)
    # midpoint method: (max relative midpoint gap, share of weight), checked in order
    budget_midpoint_tiers: tuple[tuple[float, float], ...] = (
        (0.10, 1.0),
        (0.20, 0.8),
        (0.30, 0.6),
        (0.40, 0.4),
    )

    tag_bonus: float = Field(0.0, ge=0)
    tag_keywords: tuple[str, ...] = ("investment", "roi")

    def with_overrides(self, overrides: dict[str, Any] | None) -> "WeightProfile":
        if not overrides:
            return self
        data = self.model_dump()
        data.update(overrides)
        return WeightProfile.model_validate(data)


FULL_DATASET_PROFILE = WeightProfile(
    name="full_dataset",
    location=40,
    location_partial_ratio=1.0,
    category=20,
    adjacent_category_ratio=0.0,
    budget=40,
    budget_method="point",
    tag_bonus=0,
)

SINGLE_LEAD_PROFILE = WeightProfile(
    name="single_lead",
    location=30,
    location_partial_ratio=0.8,
    category=20,
    adjacent_category_ratio=0.5,
    budget=40,
    budget_method="midpoint",
    tag_bonus=10,
)


def load_profiles(cfg) -> dict[str, WeightProfile]:
    """Named profiles with any settings overrides applied."""
    return {
        FULL_DATASET_PROFILE.name: FULL_DATASET_PROFILE.with_overrides(
            getattr(cfg, "MATCH_WEIGHTS_FULL", None)
        ),
        SINGLE_LEAD_PROFILE.name: SINGLE_LEAD_PROFILE.with_overrides(
            getattr(cfg, "MATCH_WEIGHTS_SINGLE", None)
        ),
    }
