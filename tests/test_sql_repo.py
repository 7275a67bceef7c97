# tests/test_sql_repo.py
from datetime import time, timedelta

import pytest

from leadflow.adapters.sql_repo import SqlLeadRepository
from leadflow.domain.errors import LeadNotEligibleError, LeadNotFoundError, MatchNotFoundError
from leadflow.domain.records import ActivityEntry
from leadflow.services.batch import run_escalation_batch
from leadflow.services.escalation import EscalationEngine
from leadflow.services.match_engine import MatchEngine
from leadflow.services.matching import MatchCandidate
from factories.leads import NOW, TODAY, make_lead, make_listing, rnr_lead, uid


def test_lead_roundtrip_and_status_filter(sql_services):
    repo = sql_services.leads
    repo.upsert_many(
        [
            make_lead(id=uid(1), status="new", tags=["nri", "investor"]),
            rnr_lead(10, id=uid(2)),
            make_lead(id=uid(3), status="lost"),
        ]
    )

    lead = repo.get(uid(1))
    assert lead is not None
    assert lead.tags == ["nri", "investor"]
    assert lead.budget_min == 5_000_000

    assert [l.id for l in repo.list_by_status(["rnr_swo"])] == [uid(2)]
    assert repo.get(uid(99)) is None


def test_apply_transition_writes_lead_and_activity_together(sql_services):
    repo = sql_services.leads
    repo.upsert_many([rnr_lead(10, id=uid(2))])

    updated = repo.apply_transition(
        lead_id=uid(2),
        changes={"next_followup_date": TODAY + timedelta(days=3), "next_followup_time": time(10, 0)},
        activity=ActivityEntry(lead_id=uid(2), notes="scheduled", actor="system"),
    )

    assert updated.next_followup_date == TODAY + timedelta(days=3)
    assert repo.get(uid(2)).next_followup_time == time(10, 0)
    assert [e.notes for e in sql_services.activity.list_for_lead(uid(2))] == ["scheduled"]


def test_apply_transition_rejects_unknown_field_without_writing(sql_services):
    repo = sql_services.leads
    repo.upsert_many([rnr_lead(10, id=uid(2))])

    with pytest.raises(ValueError):
        repo.apply_transition(
            lead_id=uid(2),
            changes={"status": "lost", "not_a_column": 1},
            activity=ActivityEntry(lead_id=uid(2), notes="x"),
        )

    assert repo.get(uid(2)).status == "rnr_swo"
    assert sql_services.activity.list_for_lead(uid(2)) == []

    with pytest.raises(LeadNotFoundError):
        repo.apply_transition(lead_id=uid(99), changes={}, activity=ActivityEntry(notes="x"))


def test_match_sync_preserves_approval_and_replace_drops_it(sql_services):
    repo = sql_services.matches
    first = [
        MatchCandidate(uid(1), uid(10), 90, ("a",)).to_match(),
        MatchCandidate(uid(1), uid(11), 60, ("b",)).to_match(),
    ]
    repo.sync_all(first)
    approved = repo.set_approved(first[0].id, True)
    assert approved.approved is True

    # same pairs again, one score changed, one pair gone
    repo.sync_all([MatchCandidate(uid(1), uid(10), 85, ("a2",)).to_match()])
    rows = repo.list_all()
    assert len(rows) == 1
    assert rows[0].id == first[0].id
    assert rows[0].approved is True
    assert rows[0].score == 85
    assert rows[0].reasons == ["a2"]

    repo.replace_all([MatchCandidate(uid(1), uid(10), 85, ("a2",)).to_match()])
    rows = repo.list_all()
    assert len(rows) == 1
    assert rows[0].approved is False


def test_replace_for_lead_is_scoped(sql_services):
    repo = sql_services.matches
    repo.replace_all(
        [
            MatchCandidate(uid(1), uid(10), 90, ()).to_match(),
            MatchCandidate(uid(2), uid(10), 70, ()).to_match(),
        ]
    )
    repo.replace_for_lead(uid(1), [])

    assert repo.list_for_lead(uid(1)) == []
    assert len(repo.list_for_lead(uid(2))) == 1


def test_set_approved_unknown_match(sql_services):
    with pytest.raises(MatchNotFoundError):
        sql_services.matches.set_approved(uid(404), True)


def test_match_engine_over_sql(sql_services):
    sql_services.leads.upsert_many([make_lead(id=uid(1))])
    sql_services.listings.upsert_many(
        [make_listing(id=uid(10)), make_listing(id=uid(11), is_active=False)]
    )
    engine = sql_services.match_engine()

    assert engine.regenerate_all() == {"matches_created": 1}
    assert engine.regenerate_all() == {"matches_created": 1}
    rows = sql_services.matches.list_all()
    assert [(m.lead_id, m.listing_id, m.score) for m in rows] == [(uid(1), uid(10), 100)]
    assert [e.actor for e in sql_services.activity.list_for_lead(None)] == ["system", "system"]


@pytest.mark.parametrize("workers", [1, 4])
def test_escalation_batch_over_sql(sql_services, workers):
    sql_services.leads.upsert_many(
        [rnr_lead(5, id=uid(1)), rnr_lead(46, id=uid(2)), rnr_lead(33, id=uid(3))]
    )
    engine = EscalationEngine(leads=sql_services.leads, cfg=sql_services.cfg)

    summary = run_escalation_batch(engine, now=NOW, workers=workers)

    assert (summary.processed, summary.rescheduled, summary.moved_to_lost) == (3, 2, 1)
    assert sql_services.leads.get(uid(2)).status == "lost"
    assert sql_services.leads.get(uid(3)).next_followup_date == TODAY + timedelta(days=7)


def test_datetimes_roundtrip(sql_services):
    contacted = NOW - timedelta(days=3, hours=4, minutes=5)
    sql_services.leads.upsert_many([make_lead(id=uid(1), created_at=NOW, last_contacted_at=contacted)])
    sql_services.activity.append(ActivityEntry(lead_id=uid(1), notes="call", completed_at=NOW))
    sql_services.matches.sync_all([MatchCandidate(uid(1), uid(10), 90, ()).to_match()])

    lead = sql_services.leads.get(uid(1))
    assert lead.created_at == NOW
    assert lead.last_contacted_at == contacted
    assert sql_services.activity.list_for_lead(uid(1))[0].completed_at == NOW
    assert sql_services.matches.list_all()[0].created_at.tzinfo is None


def test_apply_transition_status_guard(sql_services):
    repo = sql_services.leads
    repo.upsert_many([rnr_lead(44, id=uid(2))])
    repo.apply_transition(
        lead_id=uid(2),
        changes={"status": "lost"},
        activity=ActivityEntry(lead_id=uid(2), notes="lost"),
        expected_status="rnr_swo",
    )

    with pytest.raises(LeadNotEligibleError):
        repo.apply_transition(
            lead_id=uid(2),
            changes={"next_followup_date": TODAY + timedelta(days=7)},
            activity=ActivityEntry(lead_id=uid(2), notes="rescheduled"),
            expected_status="rnr_swo",
        )

    stored = repo.get(uid(2))
    assert stored.status == "lost"
    assert stored.next_followup_date == TODAY
    assert [e.notes for e in sql_services.activity.list_for_lead(uid(2))] == ["lost"]

    with pytest.raises(LeadNotFoundError):
        repo.apply_transition(
            lead_id=uid(99), changes={}, activity=ActivityEntry(notes="x"), expected_status="rnr_swo"
        )


class _InterleavingSqlLeadRepository(SqlLeadRepository):
    interleave = None

    def apply_transition(self, **kwargs):
        hook, self.interleave = self.interleave, None
        if hook is not None:
            hook()
        return super().apply_transition(**kwargs)


def test_overlapping_evaluations_over_sql(sql_services):
    repo = _InterleavingSqlLeadRepository(engine=sql_services.leads.engine)
    repo.upsert_many([rnr_lead(44, id=uid(3))])
    engine = EscalationEngine(leads=repo, cfg=sql_services.cfg)
    repo.interleave = lambda: engine.evaluate(uid(3), now=NOW + timedelta(days=1))

    with pytest.raises(LeadNotEligibleError):
        engine.evaluate(uid(3), now=NOW)

    stored = repo.get(uid(3))
    assert stored.status == "lost"
    assert stored.next_followup_date == TODAY
    assert len(sql_services.activity.list_for_lead(uid(3))) == 1
