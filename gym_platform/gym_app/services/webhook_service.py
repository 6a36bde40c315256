"""Identity webhook: signature verification and account mirroring."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
import time
from datetime import datetime, timezone
from typing import Mapping

from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError

from ..errors import StorageError
from ..extensions import db
from ..metrics import record_webhook
from ..models import UserRecord
from ..schemas.webhook_schema import EVENT_ALIASES

logger = logging.getLogger(__name__)

HEADER_ID = "svix-id"
HEADER_TIMESTAMP = "svix-timestamp"
HEADER_SIGNATURE = "svix-signature"
SECRET_PREFIX = "whsec_"


class WebhookVerificationError(Exception):
    pass


def signature_headers(headers: Mapping[str, str]) -> tuple[str, str, str] | None:
    values = tuple(headers.get(name) for name in (HEADER_ID, HEADER_TIMESTAMP, HEADER_SIGNATURE))
    if not all(values):
        return None
    return values  # type: ignore[return-value]


def _secret_key(secret: str) -> bytes:
    raw = secret[len(SECRET_PREFIX):] if secret.startswith(SECRET_PREFIX) else secret
    try:
        return base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise WebhookVerificationError("webhook secret is not valid base64") from exc


def sign(secret: str, msg_id: str, timestamp: int | str, body: bytes) -> str:
    """Return the ``v1,<base64>`` signature for a delivery."""

    signed = f"{msg_id}.{timestamp}.".encode() + body
    digest = hmac.new(_secret_key(secret), signed, hashlib.sha256).digest()
    return "v1," + base64.b64encode(digest).decode()


def verify_signature(
    secret: str,
    headers: Mapping[str, str],
    body: bytes,
    *,
    tolerance_seconds: int = 300,
    now: float | None = None,
) -> None:
    found = signature_headers(headers)
    if found is None:
        raise WebhookVerificationError("missing signature headers")
    msg_id, timestamp, signatures = found
    try:
        sent_at = int(timestamp)
    except ValueError as exc:
        raise WebhookVerificationError("invalid signature timestamp") from exc
    current = time.time() if now is None else now
    if abs(current - sent_at) > tolerance_seconds:
        raise WebhookVerificationError("signature timestamp outside tolerance")

    expected = sign(secret, msg_id, sent_at, body).split(",", 1)[1]
    for candidate in signatures.split():
        version, _, value = candidate.partition(",")
        if version == "v1" and hmac.compare_digest(value, expected):
            return
    raise WebhookVerificationError("no matching signature")


def canonical_event_type(event_type: str) -> str:
    return EVENT_ALIASES.get(event_type, event_type)


def _primary_email(data: dict) -> str | None:
    addresses = data.get("email_addresses") or []
    primary_id = data.get("primary_email_address_id")
    for address in addresses:
        if primary_id and address.get("id") == primary_id:
            return address["email_address"]
    return addresses[0]["email_address"] if addresses else None


def _provided_name(data: dict) -> str | None:
    if data.get("username"):
        return data["username"]
    full = " ".join(part for part in (data.get("first_name"), data.get("last_name")) if part)
    return full or None


def _display_name(data: dict, email: str | None) -> str:
    return _provided_name(data) or (email or "").split("@")[0]


def _role(data: dict) -> str | None:
    role = (data.get("public_metadata") or {}).get("role")
    if role is None:
        return None
    return "admin" if role == "admin" else "member"


def handle_event(event: dict) -> str:
    """Apply a validated event to the user table and return what happened."""

    event_type = canonical_event_type(event["type"])
    data = event["data"]
    account_id = data["id"]

    if event_type == "account.created":
        email = _primary_email(data)
        db.session.add(
            UserRecord(
                id=account_id,
                email=email,
                name=_display_name(data, email),
                role=_role(data) or "member",
                is_verified=False,
                subscription_status="pending",
            )
        )
        outcome = "created"
    elif event_type == "account.updated":
        email = _primary_email(data)
        values = {"updated_at": datetime.now(timezone.utc)}
        name = _provided_name(data)
        if name:
            values["name"] = name
        if email:
            values["email"] = email
        role = _role(data)
        if role:
            values["role"] = role
        db.session.execute(
            update(UserRecord)
            .where(UserRecord.id == account_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        outcome = "updated"
    elif event_type == "account.deleted":
        # Zero matching rows is fine; deletes are idempotent.
        db.session.execute(
            delete(UserRecord)
            .where(UserRecord.id == account_id)
            .execution_options(synchronize_session=False)
        )
        outcome = "deleted"
    else:
        record_webhook(event_type, "ignored")
        logger.info("Ignoring identity webhook event", extra={"event_type": event_type})
        return "ignored"

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        record_webhook(event_type, "storage_error")
        logger.error(
            "Storage failure applying identity webhook",
            exc_info=True,
            extra={"event_type": event_type, "account_id": account_id},
        )
        raise StorageError("storage_error", f"Error applying {event_type}") from exc

    record_webhook(event_type, outcome)
    logger.info("Identity webhook applied", extra={"event_type": event_type, "account_id": account_id})
    return outcome
