from __future__ import annotations

from datetime import date
from typing import Any, Sequence

from leadflow.adapters.logging_utils import get_logger
from leadflow.domain.ports import LeadRepository, NotificationRepository
from leadflow.domain.records import Lead, Notification

logger = get_logger(__name__)

REMINDER_TITLE = "Follow-Up Reminder"


def _message(lead: Lead, default_time: str) -> str:
    due_time = lead.next_followup_time.strftime("%H:%M") if lead.next_followup_time else default_time
    return f"Lead: {lead.name}\nFollow-Up Due: {lead.next_followup_date}, {due_time}"


def build_reminders(
    leads: Sequence[Lead],
    *,
    manager_ids: Sequence[str],
    default_time: str = "09:00",
) -> list[Notification]:
    """One reminder for the assignee and one per manager, for each assigned lead."""
    out: list[Notification] = []
    for lead in leads:
        if not lead.assigned_to:
            continue
        message = _message(lead, default_time)
        recipients = [lead.assigned_to, *[m for m in manager_ids if m != lead.assigned_to]]
        for rid in recipients:
            out.append(
                Notification(
                    lead_id=lead.id,
                    recipient_id=rid,
                    type="follow_up_reminder",
                    title=REMINDER_TITLE,
                    message=message,
                )
            )
    return out


def create_followup_reminders(
    *,
    leads: LeadRepository,
    notifications: NotificationRepository,
    today: date,
    manager_ids: Sequence[str] = (),
    default_time: str = "09:00",
) -> dict[str, Any]:
    """Store reminder notifications for follow-ups due today. Delivery happens elsewhere."""
    due = [l for l in leads.list_followups_due(today) if l.assigned_to]
    items = build_reminders(due, manager_ids=manager_ids, default_time=default_time)
    created = notifications.add_many(items) if items else 0

    logger.info(
        "followup_reminders_created",
        extra={"context": {"leads_checked": len(due), "notifications_created": created}},
    )
    return {"leads_checked": len(due), "notifications_created": created}
