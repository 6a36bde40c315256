"""Tests for the member roster and member renewals."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from gym_app.errors import InvalidArgument, NotFound
from gym_app.extensions import db
from gym_app.models import Member, RenewalHistory, UserRecord
from gym_app.services import lifecycle_policy, member_service

OWNER_ID = "user_member_1"


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def _add_member(client, token, **overrides):
    payload = {
        "name": "Dana Lifter",
        "phone_number": "+15550111",
        "email": "dana@example.com",
        "start_date": lifecycle_policy.today().isoformat(),
        "duration": 30,
        "price": "45.00",
    }
    payload.update(overrides)
    return client.post("/api/members", json=payload, headers=_auth(token))


def test_roster_requires_active_subscription(client, member_record, member_token):
    resp = client.get("/api/members", headers=_auth(member_token))
    assert resp.status_code == 402
    body = resp.get_json()
    assert body["error"] == "subscription_required"
    assert body["subscription_status"] == "pending"


def test_roster_rejects_lapsed_subscription(client, active_member_record, member_token):
    active_member_record.subscription_end_date = lifecycle_policy.today()
    db.session.commit()
    resp = client.get("/api/members", headers=_auth(member_token))
    assert resp.status_code == 402


def test_roster_without_user_record(client, member_token):
    resp = client.get("/api/members", headers=_auth(member_token))
    assert resp.status_code == 402


def test_create_member_computes_end_date(client, active_member_record, member_token):
    resp = _add_member(client, member_token, start_date="2024-06-01", duration=90)
    assert resp.status_code == 201, resp.get_json()
    member = resp.get_json()["member"]
    assert member["start_date"] == "2024-06-01"
    assert member["end_date"] == "2024-08-30"
    assert member["duration"] == 90
    assert member["price"] == "45.00"
    assert member["standing"]["status"] == "expired"


def test_create_member_rejects_bad_duration(client, active_member_record, member_token):
    resp = _add_member(client, member_token, duration=0)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_duration"


def test_create_member_requires_name(client, active_member_record, member_token):
    resp = _add_member(client, member_token, name="")
    assert resp.status_code == 400
    assert "name" in resp.get_json()["errors"]


def test_list_filters_and_search(client, active_member_record, member_token):
    today = lifecycle_policy.today()
    _add_member(client, member_token, name="Active Alex", start_date=today.isoformat(), duration=60)
    _add_member(client, member_token, name="Soon Sam", start_date=(today - timedelta(days=27)).isoformat(), duration=30)
    _add_member(client, member_token, name="Gone Gail", start_date=(today - timedelta(days=90)).isoformat(), duration=30)

    def names(query):
        resp = client.get(f"/api/members{query}", headers=_auth(member_token))
        assert resp.status_code == 200
        return sorted(member["name"] for member in resp.get_json()["members"])

    assert names("") == ["Active Alex", "Gone Gail", "Soon Sam"]
    assert names("?filter=active") == ["Active Alex", "Soon Sam"]
    assert names("?filter=ending-soon") == ["Soon Sam"]
    assert names("?filter=expired") == ["Gone Gail"]
    assert names("?search=gail") == ["Gone Gail"]


def test_list_rejects_unknown_filter(client, active_member_record, member_token):
    resp = client.get("/api/members?filter=lapsed", headers=_auth(member_token))
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_filter"


def test_update_member_recomputes_end_date(client, active_member_record, member_token):
    member_id = _add_member(client, member_token, start_date="2024-01-01", duration=30).get_json()["member"]["id"]
    resp = client.patch(
        f"/api/members/{member_id}",
        json={"duration": 60, "name": "Dana Strong"},
        headers=_auth(member_token),
    )
    assert resp.status_code == 200
    member = resp.get_json()["member"]
    assert member["name"] == "Dana Strong"
    assert member["end_date"] == "2024-03-01"


def test_delete_member(client, active_member_record, member_token):
    member_id = _add_member(client, member_token).get_json()["member"]["id"]
    resp = client.delete(f"/api/members/{member_id}", headers=_auth(member_token))
    assert resp.status_code == 200
    assert resp.get_json() == {"deleted": member_id}
    assert client.get(f"/api/members/{member_id}", headers=_auth(member_token)).status_code == 404


def test_members_are_scoped_to_owner(app_with_db, active_member_record):
    other = UserRecord(id="user_other", email="other@example.com", name="Other")
    db.session.add(other)
    db.session.commit()
    member = member_service.create_member("user_other", {"name": "Not Yours", "duration": 30})
    with pytest.raises(NotFound):
        member_service.get_member(OWNER_ID, member.id)
    assert member_service.list_members(OWNER_ID) == []


def test_renew_member_records_history(client, active_member_record, member_token):
    member_id = _add_member(client, member_token, start_date="2024-01-01", duration=30).get_json()["member"]["id"]
    resp = client.post(
        f"/api/members/{member_id}/renew",
        json={"duration": 90, "price": "120.50", "start_date": "2024-06-01", "end_date": "2030-01-01"},
        headers=_auth(member_token),
    )
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body["member"]["start_date"] == "2024-06-01"
    assert body["member"]["end_date"] == "2024-08-30"
    assert body["member"]["price"] == "120.50"
    assert len(body["history"]) == 1
    entry = body["history"][0]
    assert entry["previous_end_date"] == "2024-01-31"
    assert entry["end_date"] == "2024-08-30"
    assert entry["duration"] == 90

    history = client.get(f"/api/members/{member_id}/history", headers=_auth(member_token)).get_json()
    assert len(history["history"]) == 1


def test_invalid_renewal_changes_nothing(app_with_db, active_member_record):
    member = member_service.create_member(
        OWNER_ID, {"name": "Dana", "duration": 30, "start_date": "2024-01-01"}
    )
    with pytest.raises(InvalidArgument):
        member_service.renew_member(OWNER_ID, member.id, -5, "10", "2024-02-01")
    with pytest.raises(InvalidArgument):
        member_service.renew_member(OWNER_ID, member.id, 30, "-1", "2024-02-01")
    with pytest.raises(InvalidArgument):
        member_service.renew_member(OWNER_ID, member.id, 30, "10", "not-a-date")

    db.session.expire_all()
    refreshed = db.session.get(Member, member.id)
    assert refreshed.end_date == date(2024, 1, 31)
    assert RenewalHistory.query.count() == 0


def test_deleting_member_removes_history(app_with_db, active_member_record):
    member = member_service.create_member(
        OWNER_ID, {"name": "Dana", "duration": 30, "start_date": "2024-01-01", "price": Decimal("20")}
    )
    member_service.renew_member(OWNER_ID, member.id, 30, 20, "2024-02-01")
    assert RenewalHistory.query.count() == 1
    member_service.delete_member(OWNER_ID, member.id)
    assert RenewalHistory.query.count() == 0


def test_huge_duration_is_rejected_without_changes(client, active_member_record, member_token):
    resp = _add_member(client, member_token, start_date="2024-06-01", duration=3_000_000)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_duration"
    assert Member.query.count() == 0

    member_id = _add_member(client, member_token, start_date="2024-01-01", duration=30).get_json()["member"]["id"]
    resp = client.post(
        f"/api/members/{member_id}/renew",
        json={"duration": 3_000_000, "price": "10.00", "start_date": "2024-06-01"},
        headers=_auth(member_token),
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_duration"
    resp = client.patch(
        f"/api/members/{member_id}", json={"duration": 3_000_000}, headers=_auth(member_token)
    )
    assert resp.status_code == 400

    db.session.expire_all()
    member = db.session.get(Member, member_id)
    assert member.end_date == date(2024, 1, 31)
    assert member.duration == 30
    assert RenewalHistory.query.count() == 0
