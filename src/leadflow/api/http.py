# src/leadflow/api/http.py
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any
from uuid import UUID

from fastapi import Depends, FastAPI, HTTPException

from leadflow.adapters.config import AppConfig, config
from leadflow.adapters.logging_utils import get_logger
from leadflow.adapters.sql_repo import (
    SqlActivityLog,
    SqlLeadRepository,
    SqlListingRepository,
    SqlMatchRepository,
    SqlNotificationRepository,
    make_engine,
)
from leadflow.domain.errors import (
    InvalidLeadIdError,
    LeadNotEligibleError,
    LeadNotFoundError,
    MatchNotFoundError,
)
from leadflow.domain.ports import (
    ActivityLog,
    LeadRepository,
    ListingRepository,
    MatchRepository,
    NotificationRepository,
)
from leadflow.domain.records import utcnow
from leadflow.services.batch import run_escalation_batch
from leadflow.services.escalation import EscalationEngine
from leadflow.services.match_engine import MatchEngine
from leadflow.services.reminders import create_followup_reminders
from leadflow.services.validation import parse_lead_id
from .schemas import (
    ApproveRequest,
    BatchResponse,
    EvaluateResponse,
    LeadIdRequest,
    MatchItem,
    RegenerateAllResponse,
    RegenerateLeadResponse,
    ReminderResponse,
)

logger = get_logger(__name__)

app = FastAPI(title="leadflow")


@dataclass
class Services:
    cfg: AppConfig
    leads: LeadRepository
    listings: ListingRepository
    matches: MatchRepository
    activity: ActivityLog
    notifications: NotificationRepository

    def match_engine(self) -> MatchEngine:
        return MatchEngine(
            leads=self.leads,
            listings=self.listings,
            matches=self.matches,
            activity=self.activity,
            cfg=self.cfg,
        )

    def escalation_engine(self) -> EscalationEngine:
        return EscalationEngine(leads=self.leads, cfg=self.cfg)


@lru_cache(maxsize=1)
def get_services() -> Services:
    engine = make_engine(config.DB_URI)
    return Services(
        cfg=config,
        leads=SqlLeadRepository(engine=engine),
        listings=SqlListingRepository(engine=engine),
        matches=SqlMatchRepository(engine=engine),
        activity=SqlActivityLog(engine=engine),
        notifications=SqlNotificationRepository(engine=engine),
    )


def _lead_id_or_400(value: Any) -> UUID:
    try:
        return parse_lead_id(value)
    except InvalidLeadIdError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


# -----------------------------
# MATCHES
# -----------------------------
@app.post("/matches/regenerate", response_model=RegenerateAllResponse)
def regenerate_all_matches(svc: Services = Depends(get_services)) -> RegenerateAllResponse:
    """
    Recompute the whole match table.

    A persistence failure is reported as a 500; with the "replace" strategy
    the table may be left empty in that case.
    """
    try:
        out = svc.match_engine().regenerate_all()
    except Exception as e:
        logger.exception("regenerate_all_failed")
        raise HTTPException(status_code=500, detail=f"match regeneration failed: {e}") from e
    return RegenerateAllResponse(**out)


@app.post("/matches/regenerate-for-lead", response_model=RegenerateLeadResponse)
def regenerate_matches_for_lead(
    body: LeadIdRequest,
    svc: Services = Depends(get_services),
) -> RegenerateLeadResponse:
    lead_id = _lead_id_or_400(body.lead_id)
    try:
        out = svc.match_engine().regenerate_for_lead(lead_id)
    except LeadNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        logger.exception("regenerate_for_lead_failed", extra={"context": {"lead_id": str(lead_id)}})
        raise HTTPException(status_code=500, detail=f"match regeneration failed: {e}") from e
    return RegenerateLeadResponse(**out)


@app.get("/leads/{lead_id}/matches", response_model=list[MatchItem])
def list_lead_matches(lead_id: str, svc: Services = Depends(get_services)) -> list[MatchItem]:
    lid = _lead_id_or_400(lead_id)
    if svc.leads.get(lid) is None:
        raise HTTPException(status_code=404, detail=f"Lead not found: {lid}")
    return [MatchItem(**m.model_dump()) for m in svc.matches.list_for_lead(lid)]


@app.post("/matches/{match_id}/approve", response_model=MatchItem)
def approve_match(
    match_id: UUID,
    body: ApproveRequest,
    svc: Services = Depends(get_services),
) -> MatchItem:
    try:
        m = svc.matches.set_approved(match_id, body.approved)
    except MatchNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return MatchItem(**m.model_dump())


# -----------------------------
# ESCALATION
# -----------------------------
@app.post("/escalation/run-batch", response_model=BatchResponse)
def run_batch(svc: Services = Depends(get_services)) -> BatchResponse:
    try:
        summary = run_escalation_batch(svc.escalation_engine(), now=utcnow())
    except Exception as e:
        logger.exception("escalation_batch_failed")
        raise HTTPException(status_code=500, detail=f"escalation batch failed: {e}") from e

    return BatchResponse(
        total_leads=summary.total_considered,
        processed=summary.processed,
        scheduled=summary.rescheduled,
        moved_to_lost=summary.moved_to_lost,
        failed=summary.failed,
    )


@app.post("/escalation/evaluate", response_model=EvaluateResponse, response_model_exclude_none=True)
def evaluate_lead(body: LeadIdRequest, svc: Services = Depends(get_services)) -> EvaluateResponse:
    lead_id = _lead_id_or_400(body.lead_id)
    try:
        decision = svc.escalation_engine().evaluate(lead_id, now=utcnow())
    except LeadNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except LeadNotEligibleError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except Exception as e:
        logger.exception("escalation_evaluate_failed", extra={"context": {"lead_id": str(lead_id)}})
        raise HTTPException(status_code=500, detail=f"escalation failed: {e}") from e
    return EvaluateResponse(**decision.as_response())


# -----------------------------
# FOLLOW-UP REMINDERS
# -----------------------------
@app.post("/follow-ups/reminders", response_model=ReminderResponse)
def follow_up_reminders(svc: Services = Depends(get_services)) -> ReminderResponse:
    out = create_followup_reminders(
        leads=svc.leads,
        notifications=svc.notifications,
        today=utcnow().date(),
        manager_ids=svc.cfg.REMINDER_MANAGER_IDS,
        default_time=svc.cfg.REMINDER_DEFAULT_TIME,
    )
    return ReminderResponse(**out)
