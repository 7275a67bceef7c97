# src/leadflow/services/escalation.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Literal

from leadflow.adapters.config import AppConfig, config as default_config
from leadflow.adapters.logging_utils import get_logger
from leadflow.domain.errors import LeadNotEligibleError, LeadNotFoundError
from leadflow.domain.escalation import (
    DEFAULT_BUCKETS,
    EscalationBucket,
    bucket_for,
    elapsed_days,
    reference_time,
)
from leadflow.domain.ports import LeadRepository
from leadflow.domain.records import ActivityEntry, Lead, utcnow
from leadflow.services.validation import parse_lead_id

logger = get_logger(__name__)

Action = Literal["moved_to_lost", "rescheduled"]


@dataclass(frozen=True)
class EscalationDecision:
    action: Action
    days_since_contact: int
    bucket: str
    interval_days: int | None = None
    next_followup_date: date | None = None
    next_followup_time: time | None = None

    def as_response(self) -> dict[str, Any]:
        if self.action == "moved_to_lost":
            return {"action": "moved_to_lost", "days_since_contact": self.days_since_contact}
        return {
            "action": "rescheduled",
            "next_followup_date": self.next_followup_date.isoformat() if self.next_followup_date else None,
            "next_followup_time": self.next_followup_time.isoformat() if self.next_followup_time else None,
            "days_since_contact": self.days_since_contact,
            "interval_days": self.interval_days,
        }


def decide_transition(
    *,
    last_contacted_at: datetime | None,
    created_at: datetime,
    now: datetime,
    followup_time: time,
    buckets: tuple[EscalationBucket, ...] = DEFAULT_BUCKETS,
) -> EscalationDecision:
    """
    Pure escalation decision for a no-response lead.

    Depends only on the contact reference time, now and the bucket table.
    """
    days = elapsed_days(reference_time(last_contacted_at, created_at), now)
    bucket = bucket_for(days, buckets)

    if bucket.is_terminal:
        return EscalationDecision(action="moved_to_lost", days_since_contact=days, bucket=bucket.name)

    interval = int(bucket.interval_days or 0)
    return EscalationDecision(
        action="rescheduled",
        days_since_contact=days,
        bucket=bucket.name,
        interval_days=interval,
        next_followup_date=now.date() + timedelta(days=interval),
        next_followup_time=followup_time,
    )


class EscalationEngine:
    """
    Applies escalation decisions to stored leads.

    Only leads in the no-response status are eligible; a lead that has
    already been moved to lost (or anything else) is rejected.
    """

    def __init__(
        self,
        *,
        leads: LeadRepository,
        cfg: AppConfig | None = None,
        buckets: tuple[EscalationBucket, ...] = DEFAULT_BUCKETS,
    ) -> None:
        self.cfg = cfg or default_config
        self.leads = leads
        self.buckets = buckets
        self.followup_time = time.fromisoformat(self.cfg.FOLLOWUP_TIME)

    def decide(self, lead: Lead, now: datetime) -> EscalationDecision:
        if lead.status != self.cfg.NO_RESPONSE_STATUS:
            raise LeadNotEligibleError(lead.id, lead.status, self.cfg.NO_RESPONSE_STATUS)
        return decide_transition(
            last_contacted_at=lead.last_contacted_at,
            created_at=lead.created_at,
            now=now,
            followup_time=self.followup_time,
            buckets=self.buckets,
        )

    def evaluate(self, lead_id: Any, now: datetime | None = None) -> EscalationDecision:
        lid = parse_lead_id(lead_id)
        now = now or utcnow()

        lead = self.leads.get(lid)
        if lead is None:
            raise LeadNotFoundError(lid)

        decision = self.decide(lead, now)

        if decision.action == "moved_to_lost":
            changes: dict[str, Any] = {
                "status": self.cfg.LOST_STATUS,
                "lost_reason": self.cfg.LOST_REASON,
            }
            notes = (
                "System auto-moved lead to Lost status after 45+ days in RNR/SWO "
                f"without engagement (Day {decision.days_since_contact})"
            )
        else:
            changes = {
                "next_followup_date": decision.next_followup_date,
                "next_followup_time": decision.next_followup_time,
            }
            d = decision.next_followup_date
            notes = (
                f"System auto-scheduled follow-up for {d:%d/%m/%Y} at "
                f"{decision.next_followup_time:%H:%M:%S} "
                f"(RNR/SWO - Day {decision.days_since_contact}, "
                f"Interval: {decision.interval_days} days)"
            )

        self.leads.apply_transition(
            lead_id=lid,
            changes=changes,
            activity=ActivityEntry(
                lead_id=lid,
                activity_type="note",
                notes=notes,
                actor=self.cfg.SYSTEM_ACTOR,
                completed_at=now,
            ),
            # another run may have moved the lead since it was read
            expected_status=self.cfg.NO_RESPONSE_STATUS,
        )

        logger.info(
            "escalation_applied",
            extra={
                "context": {
                    "lead_id": str(lid),
                    "action": decision.action,
                    "bucket": decision.bucket,
                    "days_since_contact": decision.days_since_contact,
                    "interval_days": decision.interval_days,
                }
            },
        )
        return decision
