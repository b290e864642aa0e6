"""
API tests for subscriptions, tier changes and lock reconciliation.

Run with: python -m pytest tests/test_subscriptions_api.py -v
"""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from remindmybill.services.auth import create_access_token

API = "/api/v1"


def _payload(name, **overrides):
    body = {
        "name": name,
        "cost": "9.99",
        "currency": "USD",
        "frequency": "monthly",
        "category": "Streaming",
        "renewal_date": (date.today() + timedelta(days=10)).isoformat(),
    }
    body.update(overrides)
    return body


async def _create(client, headers, name, **overrides):
    resp = await client.post(f"{API}/subscriptions/", json=_payload(name, **overrides), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _locked_names(client, headers):
    resp = await client.get(f"{API}/subscriptions/", params={"status": "active"}, headers=headers)
    return sorted(s["name"] for s in resp.json() if s["is_locked"])


@pytest.mark.asyncio
async def test_health_endpoint(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_requires_bearer_token(client):
    resp = await client.get(f"{API}/subscriptions/")
    assert resp.status_code == 401

    resp = await client.get(f"{API}/subscriptions/", headers={"Authorization": "Bearer nonsense"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_fourth_free_subscription_is_locked(client, auth_headers):
    for name in ("One", "Two", "Three"):
        created = await _create(client, auth_headers, name)
        assert created["is_locked"] is False

    fourth = await _create(client, auth_headers, "Four")
    assert fourth["is_locked"] is True
    assert await _locked_names(client, auth_headers) == ["Four"]


@pytest.mark.asyncio
async def test_tier_change_reconciles_locks(client, auth_headers):
    for name in ("A", "B", "C", "D", "E"):
        await _create(client, auth_headers, name)
    assert await _locked_names(client, auth_headers) == ["D", "E"]

    resp = await client.put(f"{API}/profile/tier", json={"tier": "pro"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json() == {"tier": "pro", "cap": 1000, "changed_count": 2, "any_changed": True}
    assert await _locked_names(client, auth_headers) == []

    resp = await client.put(f"{API}/profile/tier", json={"tier": "pro"}, headers=auth_headers)
    assert resp.json()["any_changed"] is False

    resp = await client.put(f"{API}/profile/tier", json={"tier": "free"}, headers=auth_headers)
    assert resp.json()["changed_count"] == 2
    assert await _locked_names(client, auth_headers) == ["D", "E"]


@pytest.mark.asyncio
async def test_unknown_tier_is_rejected(client, auth_headers):
    resp = await client.put(f"{API}/profile/tier", json={"tier": "platinum"}, headers=auth_headers)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_cancel_frees_a_slot(client, auth_headers):
    first = await _create(client, auth_headers, "Old Gym", cost="24.00", frequency="yearly")
    for name in ("B", "C", "D"):
        await _create(client, auth_headers, name)
    assert await _locked_names(client, auth_headers) == ["D"]

    resp = await client.post(
        f"{API}/subscriptions/{first['id']}/cancel",
        json={"reason": "not_using", "feedback": "never went"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert Decimal(body["savings_per_month"]) == Decimal("2")
    assert body["locks_changed"] == 1
    assert await _locked_names(client, auth_headers) == []

    again = await client.post(f"{API}/subscriptions/{first['id']}/cancel", json={}, headers=auth_headers)
    assert again.status_code == 400

    logs = (await client.get(f"{API}/cancellation-logs/", headers=auth_headers)).json()
    assert logs[0]["subscription_name"] == "Old Gym"
    assert logs[0]["reason"] == "not_using"

    savings = (await client.get(f"{API}/cancellation-logs/savings", headers=auth_headers)).json()
    assert savings["cancellation_count"] == 1
    assert Decimal(savings["total_monthly_savings"]) == Decimal("2")


@pytest.mark.asyncio
async def test_reactivate_relocks_newest(client, auth_headers):
    first = await _create(client, auth_headers, "First")
    for name in ("B", "C"):
        await _create(client, auth_headers, name)
    await client.delete(f"{API}/subscriptions/{first['id']}", headers=auth_headers)
    await _create(client, auth_headers, "D")
    assert await _locked_names(client, auth_headers) == []

    resp = await client.post(f"{API}/subscriptions/{first['id']}/reactivate", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["is_locked"] is False
    assert await _locked_names(client, auth_headers) == ["D"]


@pytest.mark.asyncio
async def test_update_records_previous_cost(client, auth_headers):
    sub = await _create(client, auth_headers, "Netflix", cost="13.49")
    resp = await client.put(
        f"{API}/subscriptions/{sub['id']}", json={"cost": "15.49", "frequency": "Annual"}, headers=auth_headers
    )
    assert resp.status_code == 200
    body = resp.json()
    assert Decimal(body["cost"]) == Decimal("15.49")
    assert Decimal(body["previous_cost"]) == Decimal("13.49")
    assert body["frequency"] == "yearly"


@pytest.mark.asyncio
async def test_locked_subscription_cannot_be_edited(client, auth_headers):
    for name in ("A", "B", "C"):
        await _create(client, auth_headers, name)
    locked = await _create(client, auth_headers, "D")
    resp = await client.put(f"{API}/subscriptions/{locked['id']}", json={"name": "X"}, headers=auth_headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides", [
    {"cost": "-1"},
    {"name": ""},
    {"shared_with_count": 0},
    {"renewal_date": "not-a-date"},
])
async def test_invalid_subscription_input(client, auth_headers, overrides):
    body = _payload("Bad")
    body.update(overrides)
    resp = await client.post(f"{API}/subscriptions/", json=body, headers=auth_headers)
    assert resp.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["name", "cost", "currency", "frequency", "renewal_date", "shared_with_count"])
async def test_update_rejects_null_for_required_fields(client, auth_headers, field):
    sub = await _create(client, auth_headers, "Netflix")
    resp = await client.put(f"{API}/subscriptions/{sub['id']}", json={field: None}, headers=auth_headers)
    assert resp.status_code == 422

    resp = await client.get(f"{API}/subscriptions/{sub['id']}", headers=auth_headers)
    assert resp.json()[field] == sub[field]


@pytest.mark.asyncio
async def test_update_can_clear_optional_fields(client, auth_headers):
    sub = await _create(client, auth_headers, "Netflix", notes="family plan")
    resp = await client.put(
        f"{API}/subscriptions/{sub['id']}", json={"category": None, "notes": None}, headers=auth_headers
    )
    assert resp.status_code == 200
    assert resp.json()["category"] is None
    assert resp.json()["notes"] is None


@pytest.mark.asyncio
async def test_unknown_frequency_defaults_to_monthly(client, auth_headers):
    sub = await _create(client, auth_headers, "Weekly Box", frequency="weekly", currency="€")
    assert sub["frequency"] == "monthly"
    assert sub["currency"] == "EUR"


@pytest.mark.asyncio
async def test_renewal_view(client, auth_headers):
    sub = await _create(
        client, auth_headers, "Tomorrow Co", renewal_date=(date.today() + timedelta(days=1)).isoformat()
    )
    resp = await client.get(f"{API}/subscriptions/{sub['id']}/renewal", headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["label"] == "Tomorrow"
    assert body["is_urgent"] is True
    assert body["days_left"] == 1


@pytest.mark.asyncio
async def test_other_users_subscriptions_are_hidden(client, auth_headers, db_session):
    from remindmybill.models.user import User

    other = User(email="sam@example.com", tier="free", is_pro=False, default_currency="USD")
    db_session.add(other)
    await db_session.commit()
    other_headers = {"Authorization": f"Bearer {create_access_token({'sub': str(other.id)})}"}

    sub = await _create(client, auth_headers, "Mine")
    resp = await client.get(f"{API}/subscriptions/{sub['id']}", headers=other_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_analytics_endpoints(client, auth_headers):
    soon = date.today() + timedelta(days=2)
    await _create(client, auth_headers, "Netflix", cost="10.00", renewal_date=soon.isoformat())
    await _create(client, auth_headers, "netflix", cost="10.00", renewal_date=soon.isoformat(), category=None)
    await _create(client, auth_headers, "Adobe", cost="120.00", frequency="yearly", currency="EUR")

    timeline = (await client.get(f"{API}/analytics/timeline", headers=auth_headers)).json()
    assert timeline[0]["date"] == soon.isoformat()
    assert Decimal(timeline[0]["total_cost"]) == Decimal("20")
    assert len(timeline) == 2

    month = soon.strftime("%b")
    filtered = (await client.get(f"{API}/analytics/timeline", params={"month": month}, headers=auth_headers)).json()
    assert all(date.fromisoformat(b["date"]).strftime("%b") == month for b in filtered)

    health = (await client.get(f"{API}/analytics/health", headers=auth_headers)).json()
    assert health == {"score": 80, "label": "Good", "optimization_level": "high"}

    summary = (await client.get(f"{API}/analytics/summary", headers=auth_headers)).json()
    assert summary["active_count"] == 3
    assert summary["currency"] == "USD"
    assert summary["health"]["score"] == 80
    assert summary["velocity"]["direction"] in ("up", "down", "flat")


@pytest.mark.asyncio
async def test_plan_cancellation_schedule_and_undo(client, auth_headers):
    resp = await client.post(f"{API}/profile/plan/cancel", json={}, headers=auth_headers)
    assert resp.status_code == 400

    await client.put(f"{API}/profile/tier", json={"tier": "pro"}, headers=auth_headers)
    ends = (datetime.now() + timedelta(days=10)).replace(microsecond=0)
    resp = await client.post(
        f"{API}/profile/plan/cancel",
        json={"reason": "too_expensive", "cancel_at": ends.isoformat()},
        headers=auth_headers,
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["cancellation_scheduled"] is True
    assert resp.json()["tier"] == "pro"

    again = await client.post(f"{API}/profile/plan/cancel", json={}, headers=auth_headers)
    assert again.status_code == 400

    profile = (await client.get(f"{API}/profile/", headers=auth_headers)).json()
    assert profile["cancellation_scheduled"] is True

    resp = await client.post(f"{API}/profile/plan/reactivate", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["cancellation_scheduled"] is False
    assert resp.json()["cancellation_date"] is None

    resp = await client.post(f"{API}/profile/plan/reactivate", headers=auth_headers)
    assert resp.status_code == 400
