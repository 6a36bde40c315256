"""Tests for the identity-provider webhook."""

from __future__ import annotations

import json
import time
from datetime import date

import pytest

from gym_app.extensions import db
from gym_app.models import Member, SubscriptionRequest, UserRecord
from gym_app.services import webhook_service

URL = "/api/webhooks/identity"


def _event(event_type, account_id="user_hook_1", **data):
    payload = {"id": account_id}
    payload.update(data)
    return {"type": event_type, "data": payload, "object": "event"}


def _created(account_id="user_hook_1", **data):
    data.setdefault("primary_email_address_id", "idn_1")
    data.setdefault(
        "email_addresses",
        [
            {"id": "idn_0", "email_address": "old@example.com"},
            {"id": "idn_1", "email_address": "hook@example.com"},
        ],
    )
    return _event("user.created", account_id, **data)


def _post(client, app, event, *, secret=None, timestamp=None, msg_id="msg_1", signature=None):
    body = json.dumps(event).encode()
    timestamp = int(time.time()) if timestamp is None else timestamp
    if signature is None:
        signature = webhook_service.sign(
            secret or app.config["IDENTITY_WEBHOOK_SECRET"], msg_id, timestamp, body
        )
    headers = {
        "svix-id": msg_id,
        "svix-timestamp": str(timestamp),
        "svix-signature": signature,
        "Content-Type": "application/json",
    }
    return client.post(URL, data=body, headers=headers)


def test_created_event_inserts_user(client, app_with_db):
    resp = _post(client, app_with_db, _created(username="hooky", public_metadata={"role": "admin"}))
    assert resp.status_code == 200, resp.get_json()
    assert resp.get_json() == {"status": "created"}

    db.session.expire_all()
    user = db.session.get(UserRecord, "user_hook_1")
    assert user.email == "hook@example.com"
    assert user.name == "hooky"
    assert user.role == "admin"
    assert user.subscription_status == "pending"
    assert user.is_verified is False


def test_created_event_name_falls_back(client, app_with_db):
    _post(client, app_with_db, _created("user_a", first_name="Ada", last_name="Lovelace"))
    _post(client, app_with_db, _created("user_b"), msg_id="msg_2")
    db.session.expire_all()
    assert db.session.get(UserRecord, "user_a").name == "Ada Lovelace"
    assert db.session.get(UserRecord, "user_b").name == "hook"


def test_updated_event(client, app_with_db, member_record):
    event = _event(
        "user.updated",
        member_record.id,
        email_addresses=[{"id": "idn_9", "email_address": "renamed@example.com"}],
        first_name="Renamed",
    )
    resp = _post(client, app_with_db, event)
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "updated"}

    db.session.expire_all()
    user = db.session.get(UserRecord, member_record.id)
    assert user.email == "renamed@example.com"
    assert user.name == "Renamed"
    assert user.role == "member"


def test_deleted_event_is_idempotent(client, app_with_db, member_record):
    user_id = member_record.id
    resp = _post(client, app_with_db, _event("user.deleted", user_id))
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "deleted"}
    db.session.expire_all()
    assert db.session.get(UserRecord, user_id) is None

    resp = _post(client, app_with_db, _event("user.deleted", user_id), msg_id="msg_2")
    assert resp.status_code == 200


def test_unknown_event_is_ignored(client, app_with_db):
    resp = _post(client, app_with_db, _event("session.created"))
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ignored"}


def test_missing_headers_rejected(client, app_with_db):
    resp = client.post(URL, json=_created())
    assert resp.status_code == 400
    assert UserRecord.query.count() == 0


def test_bad_signature_rejected(client, app_with_db):
    resp = _post(client, app_with_db, _created(), signature="v1,bm90LXRoZS1yaWdodC1zaWduYXR1cmU=")
    assert resp.status_code == 400
    assert UserRecord.query.count() == 0


def test_wrong_secret_rejected(client, app_with_db):
    resp = _post(client, app_with_db, _created(), secret="whsec_b3RoZXItc2VjcmV0")
    assert resp.status_code == 400


def test_stale_timestamp_rejected(client, app_with_db):
    resp = _post(client, app_with_db, _created(), timestamp=int(time.time()) - 3600)
    assert resp.status_code == 400


def test_created_without_email_rejected(client, app_with_db):
    resp = _post(client, app_with_db, _event("user.created", email_addresses=[]))
    assert resp.status_code == 400
    assert "errors" in resp.get_json()


def test_duplicate_create_is_storage_error(client, app_with_db, member_record):
    resp = _post(client, app_with_db, _created(member_record.id))
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "storage_error"


def test_missing_secret_configuration(client, app_with_db):
    body = json.dumps(_created()).encode()
    app_with_db.config["IDENTITY_WEBHOOK_SECRET"] = None
    resp = client.post(
        URL,
        data=body,
        headers={"svix-id": "msg_1", "svix-timestamp": str(int(time.time())), "svix-signature": "v1,x"},
    )
    assert resp.status_code == 500


def test_verify_signature_accepts_any_listed_signature():
    secret = "whsec_dGVzdC13ZWJob29rLXNlY3JldA=="
    body = b'{"type": "user.created"}'
    good = webhook_service.sign(secret, "msg_9", 1700000000, body)
    headers = {
        "svix-id": "msg_9",
        "svix-timestamp": "1700000000",
        "svix-signature": f"v1,c3RhbGU= {good}",
    }
    webhook_service.verify_signature(secret, headers, body, now=1700000100)

    with pytest.raises(webhook_service.WebhookVerificationError):
        webhook_service.verify_signature(secret, headers, body, now=1700000400)


def test_deleted_event_removes_owned_rows(client, app_with_db, member_record):
    user_id = member_record.id
    db.session.add(
        Member(
            user_id=user_id,
            name="Dana",
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 31),
            duration=30,
            price=0,
        )
    )
    db.session.add(
        SubscriptionRequest(
            user_id=user_id,
            plan_type="monthly",
            receipt_image="https://receipts.example.com/r.png",
        )
    )
    db.session.commit()

    resp = _post(client, app_with_db, _event("user.deleted", user_id))
    assert resp.status_code == 200

    db.session.expire_all()
    assert Member.query.filter_by(user_id=user_id).count() == 0
    assert SubscriptionRequest.query.filter_by(user_id=user_id).count() == 0


def test_updated_event_without_name_keeps_name(client, app_with_db, member_record):
    event = _event(
        "user.updated",
        member_record.id,
        email_addresses=[{"id": "idn_3", "email_address": "new@example.com"}],
    )
    assert _post(client, app_with_db, event).status_code == 200

    db.session.expire_all()
    user = db.session.get(UserRecord, member_record.id)
    assert user.email == "new@example.com"
    assert user.name == "Sam Member"
