# src/leadflow/services/match_engine.py
from __future__ import annotations

from typing import Any

from leadflow.adapters.config import AppConfig, config as default_config
from leadflow.adapters.logging_utils import get_logger
from leadflow.domain.errors import LeadNotFoundError
from leadflow.domain.ports import ActivityLog, LeadRepository, ListingRepository, MatchRepository
from leadflow.domain.records import ActivityEntry
from leadflow.domain.weights import FULL_DATASET_PROFILE, SINGLE_LEAD_PROFILE, load_profiles
from leadflow.services.match_persister import MatchPersister
from leadflow.services.matching import build_full_match_set, build_lead_match_set
from leadflow.services.validation import parse_lead_id

logger = get_logger(__name__)


class MatchEngine:
    """Regenerates match rows for the whole dataset or for one lead."""

    def __init__(
        self,
        *,
        leads: LeadRepository,
        listings: ListingRepository,
        matches: MatchRepository,
        activity: ActivityLog | None = None,
        cfg: AppConfig | None = None,
    ) -> None:
        self.cfg = cfg or default_config
        self.leads = leads
        self.listings = listings
        self.matches = matches
        self.activity = activity

        profiles = load_profiles(self.cfg)
        self.full_profile = profiles[FULL_DATASET_PROFILE.name]
        self.single_profile = profiles[SINGLE_LEAD_PROFILE.name]
        self.persister = MatchPersister(matches, strategy=self.cfg.MATCH_PERSIST_STRATEGY)

    def regenerate_all(self) -> dict[str, Any]:
        statuses = list(self.cfg.MATCH_ACTIVE_STATUSES)
        leads = self.leads.list_by_status(statuses)
        listings = self.listings.list_active()

        logger.info(
            "match_regeneration_started",
            extra={"context": {"leads": len(leads), "listings": len(listings)}},
        )

        candidates = build_full_match_set(
            leads,
            listings,
            profile=self.full_profile,
            min_score=self.cfg.MATCH_MIN_SCORE,
            active_statuses=statuses,
        )
        created = self.persister.persist_all(candidates)

        if self.activity is not None:
            self.activity.append(
                ActivityEntry(
                    lead_id=None,
                    activity_type="audit",
                    notes=f"System regenerated matchings: {created} matches",
                    actor=self.cfg.SYSTEM_ACTOR,
                )
            )

        return {"matches_created": created}

    def regenerate_for_lead(self, lead_id: Any) -> dict[str, Any]:
        lid = parse_lead_id(lead_id)
        lead = self.leads.get(lid)
        if lead is None:
            raise LeadNotFoundError(lid)

        candidates = build_lead_match_set(
            lead,
            self.listings.list_active(),
            profile=self.single_profile,
            min_score=self.cfg.MATCH_MIN_SCORE,
            top_k=self.cfg.MATCH_TOP_K,
            highly_suitable_at=self.cfg.MATCH_HIGHLY_SUITABLE_SCORE,
        )
        count = self.persister.persist_for_lead(lid, candidates)
        return {"matches_count": count}
