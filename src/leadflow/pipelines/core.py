# src/leadflow/pipelines/core.py

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from loguru import logger

from leadflow.adapters.config import AppConfig, config
from leadflow.adapters.sql_repo import (
    SqlActivityLog,
    SqlLeadRepository,
    SqlListingRepository,
    SqlMatchRepository,
    SqlNotificationRepository,
    make_engine,
)
from leadflow.domain.records import utcnow
from leadflow.services.batch import run_escalation_batch
from leadflow.services.escalation import EscalationEngine
from leadflow.services.match_engine import MatchEngine
from leadflow.services.reminders import create_followup_reminders


# Each entry point below is one self-contained unit of work meant to be fired
# by cron or a task queue. Nothing is kept in memory between runs; what has to
# happen "today" is recomputed from the stored timestamps every time.


def _match_engine(cfg: AppConfig) -> MatchEngine:
    engine = make_engine(cfg.DB_URI)
    return MatchEngine(
        leads=SqlLeadRepository(engine=engine),
        listings=SqlListingRepository(engine=engine),
        matches=SqlMatchRepository(engine=engine),
        activity=SqlActivityLog(engine=engine),
        cfg=cfg,
    )


def _escalation_engine(cfg: AppConfig) -> EscalationEngine:
    return EscalationEngine(leads=SqlLeadRepository(cfg.DB_URI), cfg=cfg)


# ---------------------------
# 1. MATCHING
# ---------------------------

def regenerate_matches(cfg: AppConfig = config) -> Dict[str, Any]:
    logger.info("Regenerating all matches", strategy=cfg.MATCH_PERSIST_STRATEGY, db=cfg.DB_URI)
    out = _match_engine(cfg).regenerate_all()
    logger.info("Match regeneration completed", **out)
    return out


def regenerate_lead_matches(lead_id: str, cfg: AppConfig = config) -> Dict[str, Any]:
    logger.info("Regenerating matches for lead", lead_id=lead_id)
    out = _match_engine(cfg).regenerate_for_lead(lead_id)
    logger.info("Lead match regeneration completed", lead_id=lead_id, **out)
    return out


# ---------------------------
# 2. ESCALATION
# ---------------------------

def run_escalation(
    cfg: AppConfig = config,
    now: datetime | None = None,
    workers: int | None = None,
) -> Dict[str, Any]:
    now = now or utcnow()
    logger.info("Starting RNR/SWO escalation batch", today=now.date().isoformat())
    summary = run_escalation_batch(_escalation_engine(cfg), now=now, workers=workers)
    out = summary.as_dict()
    if summary.failed:
        logger.warning("Escalation batch finished with failures", failed=summary.failed)
    logger.info("Escalation batch completed", **{k: v for k, v in out.items() if k != "failed_lead_ids"})
    return out


def evaluate_lead(lead_id: str, cfg: AppConfig = config) -> Dict[str, Any]:
    decision = _escalation_engine(cfg).evaluate(lead_id)
    out = decision.as_response()
    logger.info("Lead escalation evaluated", lead_id=lead_id, action=decision.action)
    return out


# ---------------------------
# 3. FOLLOW-UP REMINDERS
# ---------------------------

def follow_up_reminders(cfg: AppConfig = config, now: datetime | None = None) -> Dict[str, Any]:
    now = now or utcnow()
    engine = make_engine(cfg.DB_URI)
    out = create_followup_reminders(
        leads=SqlLeadRepository(engine=engine),
        notifications=SqlNotificationRepository(engine=engine),
        today=now.date(),
        manager_ids=cfg.REMINDER_MANAGER_IDS,
        default_time=cfg.REMINDER_DEFAULT_TIME,
    )
    logger.info("Follow-up reminders created", **out)
    return out
