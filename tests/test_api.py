"""HTTP surface: resolution, pricing, admin edits and error bodies."""

import pytest
from fastapi.testclient import TestClient

from ticketrules.api.main import create_app
from ticketrules.config import Settings

TICKET = {"sport_type": "football", "tournament_id": "epl", "team_id": "ars", "event_id": "e1", "ticket_id": "t1"}
EVENT = {"sport_type": "football", "event_id": "e1"}


@pytest.fixture
def client(temp_store, fake_rates):
    app = create_app(Settings(), store=temp_store, rate_provider=fake_rates)
    with TestClient(app) as c:
        yield c


def _hospitality(client, name, **extra):
    r = client.post("/hospitalities", json={"name": name, **extra})
    assert r.status_code == 201
    return r.json()["id"]


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_resolve_without_rules(client):
    r = client.post("/resolve", json=TICKET)
    assert r.status_code == 200
    body = r.json()
    assert body["markup"] is None
    assert body["hospitalities"] == []
    assert body["message"] == "No markup rule found for this ticket"


def test_missing_sport_type_is_422(client):
    r = client.post("/resolve", json={"event_id": "e1"})
    assert r.status_code == 422
    assert r.json()["code"] == "invalid_scope"


def test_bad_body_is_422_with_code(client):
    r = client.post("/markup-rules", json={"sport_type": "football", "markup_amount": "-3"})
    assert r.status_code == 422
    assert r.json()["code"] == "invalid_request"


def test_upsert_get_update_delete_rule(client):
    r = client.post(
        "/markup-rules",
        json={**EVENT, "event_name": "Arsenal v Spurs", "markup_type": "fixed", "markup_amount": "5"},
        headers={"X-Admin-User": "ops"},
    )
    assert r.status_code == 200
    saved = r.json()
    assert saved["created"] is True
    rule = saved["rule"]
    assert rule["level"] == "event"
    assert rule["created_by"] == "ops"

    r = client.post("/markup-rules", json={**EVENT, "markup_amount": "6"})
    assert r.json()["created"] is False
    assert r.json()["rule"]["id"] == rule["id"]

    r = client.get(f"/markup-rules/{rule['id']}")
    assert r.status_code == 200
    assert r.json()["markup_amount"] == "6.00"
    assert r.json()["event_name"] == "Arsenal v Spurs"

    r = client.put(f"/markup-rules/{rule['id']}", json={"markup_type": "percentage"})
    assert r.json()["markup_type"] == "percentage"

    r = client.post("/markup-rules/resolve", json=TICKET)
    assert r.json()["message"] == "Markup resolved at 'event' level (source: hierarchical)"

    r = client.delete(f"/markup-rules/{rule['id']}")
    assert r.status_code == 200
    r = client.post("/markup-rules/resolve", json=TICKET)
    assert r.json()["markup"] is None


def test_unknown_rule_is_404(client):
    r = client.get("/markup-rules/999")
    assert r.status_code == 404
    assert r.json() == {"detail": "markup rule 999 not found", "code": "not_found"}
    assert client.delete("/markup-rules/999").status_code == 404


def test_scope_replace_and_clear(client):
    client.post("/markup-rules", json={"sport_type": "football", "markup_amount": "1"})
    r = client.put("/markup-rules/scope", json={**EVENT, "rules": [{"markup_amount": "4"}]})
    assert r.json() == {"deleted_count": 0, "inserted_count": 1}
    assert client.post("/markup-rules/resolve", json=TICKET).json()["markup"]["level"] == "event"

    r = client.put("/markup-rules/scope", json={**EVENT, "rules": [{"markup_amount": "1"}, {"markup_amount": "2"}]})
    assert r.status_code == 422

    r = client.request("DELETE", "/markup-rules/scope", json=EVENT)
    assert r.json() == {"removed_count": 1}
    assert client.post("/markup-rules/resolve", json=TICKET).json()["markup"]["level"] == "sport"


def test_markup_batch_and_listing(client):
    r = client.post(
        "/markup-rules/batch",
        json={
            "rules": [
                {"sport_type": "football", "markup_amount": "1"},
                {**EVENT, "markup_type": "percentage", "markup_amount": "10"},
            ]
        },
    )
    assert r.status_code == 200
    assert r.json()["created_count"] == 2

    r = client.get("/markup-rules", params={"sport_type": "football", "limit": 1})
    body = r.json()
    assert body["pagination"]["total_records"] == 2
    assert body["pagination"]["has_more"] is True
    assert body["data"][0]["level"] == "sport"

    r = client.post("/markup-rules/resolve/event", json={**EVENT, "ticket_ids": ["t1", "t2"]})
    markups = r.json()["markups"]
    assert set(markups) == {"t1", "t2"}
    assert markups["t1"]["markup_type"] == "percentage"

    stats = client.get("/markup-rules/stats").json()["stats"]
    assert stats["active_rules"] == 2
    assert stats["by_level"]["event"] == {"active": 1, "inactive": 0}


def test_hospitality_catalogue(client):
    hid = _hospitality(client, "Lounge", description="Pre-match lounge", sort_order=3)
    assert client.get(f"/hospitalities/{hid}").json()["sort_order"] == 3

    r = client.put(f"/hospitalities/{hid}", json={"name": "VIP Lounge"})
    assert r.json()["name"] == "VIP Lounge"
    assert r.json()["description"] == "Pre-match lounge"

    assert client.delete(f"/hospitalities/{hid}").status_code == 200
    assert client.get("/hospitalities", params={"active_only": True}).json()["total"] == 0
    assert client.get("/hospitalities").json()["total"] == 1
    assert client.get("/hospitalities/999").status_code == 404


def test_hospitality_assignments(client):
    lounge = _hospitality(client, "Lounge")
    parking = _hospitality(client, "Parking")

    r = client.post("/hospitality-assignments", json={"sport_type": "football", "hospitality_id": lounge})
    assert r.json()["created"] is True

    r = client.put("/hospitality-assignments/scope", json={**EVENT, "hospitality_ids": [lounge, parking]})
    assert r.json() == {"deleted_count": 0, "inserted_count": 2}

    r = client.post("/hospitality-assignments/resolve", json=TICKET)
    body = r.json()
    assert body["total"] == 2
    lounge_entry = next(h for h in body["hospitalities"] if h["hospitality_id"] == lounge)
    assert lounge_entry["level"] == "event"
    assert [m["level"] for m in lounge_entry["matched_levels"]] == ["event", "sport"]

    r = client.request("DELETE", "/hospitality-assignments/scope", json={**EVENT, "hospitality_ids": [parking]})
    assert r.json() == {"removed_count": 1}

    r = client.post("/hospitality-assignments/resolve/event", json={**EVENT, "ticket_ids": ["t1"]})
    assert [h["name"] for h in r.json()["hospitalities"]["t1"]] == ["Lounge"]

    r = client.get("/hospitality-assignments", params={"hospitality_id": lounge, "is_active": True})
    assert r.json()["pagination"]["total_records"] == 2

    stats = client.get("/hospitality-assignments/stats").json()["stats"]
    assert stats["total_assignments"] == 2
    assert stats["top_hospitalities"][0]["id"] == lounge


def test_failed_batch_is_409_and_rolled_back(client):
    lounge = _hospitality(client, "Lounge")
    client.put("/hospitality-assignments/scope", json={**EVENT, "hospitality_ids": [lounge]})

    r = client.put("/hospitality-assignments/scope", json={**EVENT, "hospitality_ids": [lounge, 4242]})
    assert r.status_code == 409
    assert r.json()["code"] == "batch_failed"

    r = client.post("/hospitality-assignments/resolve", json=TICKET)
    assert [h["hospitality_id"] for h in r.json()["hospitalities"]] == [lounge]


def test_legacy_records(client):
    client.post("/markup-rules", json={**EVENT, "ticket_id": "t1", "markup_amount": "2"})
    r = client.put(
        "/ticket-markups",
        json={"event_id": "e1", "ticket_id": "t1", "markup_type": "fixed", "markup_price_usd": "9.5"},
    )
    assert r.status_code == 200

    markup = client.post("/markup-rules/resolve", json=TICKET).json()["markup"]
    assert markup["source"] == "legacy"
    assert markup["markup_amount"] == "9.50"

    assert client.get("/ticket-markups", params={"event_id": "e1"}).json()["total"] == 1
    assert client.delete("/ticket-markups/e1/t1").status_code == 200
    assert client.delete("/ticket-markups/e1/t1").status_code == 404
    assert client.post("/markup-rules/resolve", json=TICKET).json()["markup"]["source"] == "hierarchical"

    lounge = _hospitality(client, "Lounge")
    r = client.put("/ticket-hospitalities", json={"event_id": "e1", "ticket_id": "t1", "hospitality_ids": [lounge]})
    assert r.json() == {"deleted_count": 0, "inserted_count": 1}
    hospitalities = client.post("/resolve", json=TICKET).json()["hospitalities"]
    assert [(h["hospitality_id"], h["source"]) for h in hospitalities] == [(lounge, "legacy")]


def test_percentage_quote(client):
    client.post("/markup-rules", json={**EVENT, "markup_type": "percentage", "markup_amount": "10"})
    r = client.post(
        "/quote",
        json={**TICKET, "face_value": "100", "ticket_currency": "EUR", "display_currency": "USD"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["base_price"] == "110.00"
    assert body["markup"] == "11.00"
    assert body["final_price"] == "121.00"
    assert body["currency"] == "USD"
    assert body["applied_markup"]["level"] == "event"


def test_quote_rejects_bad_currency(client):
    r = client.post("/quote", json={**TICKET, "face_value": "10", "ticket_currency": "EURO"})
    assert r.status_code == 422
    assert r.json()["code"] == "invalid_request"


def test_listing_quotes_share_a_session(client, fake_rates):
    client.post("/markup-rules", json={"sport_type": "football", "markup_amount": "5"})
    items = [
        {**TICKET, "face_value": "100", "ticket_currency": "GBP"},
        {**TICKET, "ticket_id": "t2", "face_value": "100", "ticket_currency": "GBP"},
    ]
    headers = {"X-Pricing-Session": "shop-1"}
    r = client.post("/quotes", json={"display_currency": "AED", "items": items}, headers=headers)
    body = r.json()
    assert body["session"] == "shop-1"
    assert [q["final_price"] for q in body["quotes"]] == ["483.36", "483.36"]
    assert sorted(fake_rates.calls) == [("GBP", "AED"), ("USD", "AED")]

    client.post("/quotes", json={"display_currency": "AED", "items": items}, headers=headers)
    assert len(fake_rates.calls) == 2


def test_rates_endpoint(client):
    assert client.get("/rates/eur/usd").json() == {"base": "EUR", "target": "USD", "rate": "1.10", "available": True}
    assert client.get("/rates/EUR/JPY").json()["available"] is False


def test_default_session_sees_rule_edits(client):
    client.post("/markup-rules", json={**EVENT, "markup_type": "percentage", "markup_amount": "10"})
    body = {**TICKET, "face_value": "100", "ticket_currency": "USD"}
    assert client.post("/quote", json=body).json()["final_price"] == "110.00"

    client.post("/markup-rules", json={**EVENT, "markup_type": "percentage", "markup_amount": "50"})
    assert client.post("/quote", json=body).json()["final_price"] == "150.00"
