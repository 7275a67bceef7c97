from datetime import timedelta

import pytest

from leadflow.adapters.config import AppConfig
from leadflow.adapters.memory_repo import InMemoryLeadRepository
from leadflow.services.batch import is_due, run_escalation_batch
from leadflow.services.escalation import EscalationEngine
from factories.leads import NOW, TODAY, make_lead, rnr_lead, uid


def _mixed_leads():
    return [
        rnr_lead(5, id=uid(1)),                                          # fast -> rescheduled
        rnr_lead(20, id=uid(2)),                                         # medium -> rescheduled
        rnr_lead(50, id=uid(3)),                                         # terminal
        rnr_lead(10, id=uid(4), next_followup_date=TODAY + timedelta(days=2)),   # not due
        rnr_lead(10, id=uid(5), next_followup_date=TODAY - timedelta(days=1)),   # overdue, skipped by default
        rnr_lead(10, id=uid(6), next_followup_date=None),                # never scheduled
        make_lead(id=uid(7), status="lost", next_followup_date=TODAY),   # terminal already
        make_lead(id=uid(8), status="interested", next_followup_date=TODAY),
    ]


@pytest.mark.parametrize("workers", [1, 4])
def test_batch_counts(lead_repo, workers):
    lead_repo.upsert_many(_mixed_leads())
    engine = EscalationEngine(leads=lead_repo, cfg=AppConfig())

    summary = run_escalation_batch(engine, now=NOW, workers=workers)

    assert summary.total_considered == 6
    assert summary.processed == 3
    assert summary.rescheduled == 2
    assert summary.moved_to_lost == 1
    assert summary.failed == 0

    assert lead_repo.get(uid(3)).status == "lost"
    assert lead_repo.get(uid(1)).next_followup_date == TODAY + timedelta(days=3)
    assert lead_repo.get(uid(2)).next_followup_date == TODAY + timedelta(days=5)
    # not due today: untouched
    assert lead_repo.get(uid(4)).next_followup_date == TODAY + timedelta(days=2)
    assert lead_repo.get(uid(5)).next_followup_date == TODAY - timedelta(days=1)


def test_lost_leads_are_excluded_from_later_runs(lead_repo, activity):
    lead_repo.upsert_many([rnr_lead(50, id=uid(3))])
    engine = EscalationEngine(leads=lead_repo, cfg=AppConfig())

    first = run_escalation_batch(engine, now=NOW, workers=1)
    second = run_escalation_batch(engine, now=NOW, workers=1)

    assert first.moved_to_lost == 1
    assert second.total_considered == 0
    assert second.processed == 0
    assert len(activity.list_for_lead(uid(3))) == 1


def test_catch_up_overdue_picks_up_stranded_leads(lead_repo):
    lead_repo.upsert_many(_mixed_leads())
    engine = EscalationEngine(leads=lead_repo, cfg=AppConfig(ESCALATION_CATCH_UP_OVERDUE=True))

    summary = run_escalation_batch(engine, now=NOW, workers=2)

    assert summary.processed == 5
    assert lead_repo.get(uid(5)).next_followup_date == TODAY + timedelta(days=3)
    assert lead_repo.get(uid(6)).next_followup_date == TODAY + timedelta(days=3)


class _FlakyLeadRepository(InMemoryLeadRepository):
    """Rejects writes for one lead, the way a dropped connection would."""

    def __init__(self, bad_id, activity=None):
        super().__init__(activity)
        self.bad_id = bad_id

    def apply_transition(self, *, lead_id, **kwargs):
        if lead_id == self.bad_id:
            raise ConnectionError("write rejected")
        return super().apply_transition(lead_id=lead_id, **kwargs)


@pytest.mark.parametrize("workers", [1, 3])
def test_one_failing_lead_does_not_abort_batch(activity, workers):
    repo = _FlakyLeadRepository(uid(2), activity)
    repo.upsert_many(_mixed_leads())
    engine = EscalationEngine(leads=repo, cfg=AppConfig())

    summary = run_escalation_batch(engine, now=NOW, workers=workers)

    assert summary.failed == 1
    assert summary.failed_lead_ids == [str(uid(2))]
    assert summary.processed == 2
    assert summary.rescheduled == 1
    assert summary.moved_to_lost == 1

    # failed lead keeps its stored state and gets no activity entry
    untouched = repo.get(uid(2))
    assert untouched.status == "rnr_swo"
    assert untouched.next_followup_date == TODAY
    assert activity.list_for_lead(uid(2)) == []


def test_is_due():
    lead = rnr_lead(3, next_followup_date=TODAY)
    assert is_due(lead, TODAY)
    assert not is_due(lead, TODAY + timedelta(days=1))
    assert is_due(lead, TODAY + timedelta(days=1), catch_up_overdue=True)
    assert not is_due(rnr_lead(3, next_followup_date=TODAY + timedelta(days=1)), TODAY, catch_up_overdue=True)
