# tests/test_api_matches.py
from factories.leads import make_lead, make_listing, uid


def _seed(svc):
    svc.leads.upsert_many(
        [
            make_lead(id=uid(1), location="Bangalore, Whitefield"),
            make_lead(id=uid(2), location="Pune", category="villa"),
        ]
    )
    svc.listings.upsert_many([make_listing(id=uid(10 + i), price=5_000_000 + i * 250_000) for i in range(8)])


def test_regenerate_all_returns_count(client, sql_services):
    _seed(sql_services)
    r = client.post("/matches/regenerate")
    assert r.status_code == 200, r.text
    # lead 1 matches all 8 listings; lead 2 only on budget (40)
    assert r.json() == {"matches_created": 16}


def test_regenerate_for_lead_caps_at_five(client, sql_services):
    _seed(sql_services)
    r = client.post("/matches/regenerate-for-lead", json={"lead_id": str(uid(1))})
    assert r.status_code == 200, r.text
    assert r.json() == {"matches_count": 5}

    r = client.get(f"/leads/{uid(1)}/matches")
    assert r.status_code == 200
    scores = [m["score"] for m in r.json()]
    assert len(scores) == 5
    assert scores == sorted(scores, reverse=True)


def test_regenerate_for_lead_bad_uuid_is_400(client):
    r = client.post("/matches/regenerate-for-lead", json={"lead_id": "abc"})
    assert r.status_code == 400
    assert "UUID" in r.text

    r = client.post("/matches/regenerate-for-lead", json={"lead_id": 7})
    assert r.status_code == 400

    r = client.post("/matches/regenerate-for-lead", json={})
    assert r.status_code == 400


def test_regenerate_for_lead_unknown_is_404(client):
    r = client.post("/matches/regenerate-for-lead", json={"lead_id": str(uid(999))})
    assert r.status_code == 404


def test_approve_match(client, sql_services):
    _seed(sql_services)
    client.post("/matches/regenerate")
    match_id = client.get(f"/leads/{uid(1)}/matches").json()[0]["id"]

    r = client.post(f"/matches/{match_id}/approve", json={"approved": True})
    assert r.status_code == 200
    assert r.json()["approved"] is True

    r = client.post(f"/matches/{uid(12345)}/approve", json={"approved": True})
    assert r.status_code == 404
