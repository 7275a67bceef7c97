# src/leadflow/services/batch.py
from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field
from datetime import date, datetime

from leadflow.adapters.logging_utils import get_logger
from leadflow.domain.records import Lead, utcnow
from leadflow.services.escalation import EscalationDecision, EscalationEngine

logger = get_logger(__name__)


@dataclass
class BatchSummary:
    total_considered: int = 0
    processed: int = 0
    rescheduled: int = 0
    moved_to_lost: int = 0
    failed: int = 0
    failed_lead_ids: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return asdict(self)


def is_due(lead: Lead, today: date, *, catch_up_overdue: bool = False) -> bool:
    if lead.next_followup_date == today:
        return True
    if catch_up_overdue:
        return lead.next_followup_date is None or lead.next_followup_date < today
    return False


def run_escalation_batch(
    engine: EscalationEngine,
    *,
    now: datetime | None = None,
    workers: int | None = None,
) -> BatchSummary:
    """
    Evaluate every no-response lead whose follow-up is due today.

    Each lead runs in its own unit of work: a failure is logged with the
    lead id, counted, and never stops the rest of the batch. A failed lead
    keeps its stored state because the engine writes lead + activity in
    one transaction.
    """
    cfg = engine.cfg
    now = now or utcnow()
    today = now.date()

    candidates = engine.leads.list_by_status([cfg.NO_RESPONSE_STATUS])
    due = [
        lead for lead in candidates
        if is_due(lead, today, catch_up_overdue=cfg.ESCALATION_CATCH_UP_OVERDUE)
    ]

    summary = BatchSummary(total_considered=len(candidates))

    cpu = os.cpu_count() or 4
    n = workers if workers is not None else cfg.BATCH_WORKERS
    n = max(1, min(int(n), 64, cpu * 4))

    logger.info(
        "escalation_batch_started",
        extra={"context": {"total": len(candidates), "due": len(due), "workers": n, "today": today.isoformat()}},
    )

    results: list[EscalationDecision] = []
    with ThreadPoolExecutor(max_workers=n) as ex:
        futures = {ex.submit(engine.evaluate, lead.id, now): lead.id for lead in due}
        for fut in as_completed(futures):
            lead_id = futures[fut]
            try:
                results.append(fut.result())
            except Exception:
                summary.failed += 1
                summary.failed_lead_ids.append(str(lead_id))
                logger.exception(
                    "escalation_lead_failed",
                    extra={"context": {"lead_id": str(lead_id)}},
                )

    for decision in results:
        summary.processed += 1
        if decision.action == "moved_to_lost":
            summary.moved_to_lost += 1
        else:
            summary.rescheduled += 1

    summary.failed_lead_ids.sort()

    logger.info(
        "escalation_batch_finished",
        extra={
            "context": {
                "processed": summary.processed,
                "rescheduled": summary.rescheduled,
                "moved_to_lost": summary.moved_to_lost,
                "failed": summary.failed,
            }
        },
    )
    return summary
