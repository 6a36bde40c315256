"""Subscription and renewal requests: submission and admin review."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Type, Union

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import AuthError, Conflict, NotFound, StorageError
from ..extensions import db
from ..identity import Account
from ..metrics import record_transition
from ..models import RenewalRequest, SubscriptionRequest, UserRecord
from . import lifecycle_policy

logger = logging.getLogger(__name__)

ReviewRequest = Union[SubscriptionRequest, RenewalRequest]
RENEWABLE_STATUSES = ("active", "expired")


@dataclass
class TransitionResult:
    request: ReviewRequest
    user: UserRecord
    approved: bool


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _today() -> date:
    return _now().date()


def _get_user_or_404(user_id: str) -> UserRecord:
    user = db.session.get(UserRecord, user_id)
    if not user:
        raise NotFound("user_not_found", "No subscription record exists for this account yet")
    return user


def _has_pending(model: Type[ReviewRequest], user_id: str) -> bool:
    return (
        db.session.query(model.id)
        .filter(model.user_id == user_id, model.status == "pending")
        .first()
        is not None
    )


def _commit(action: str) -> None:
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise Conflict("duplicate_pending_request", "A request is already awaiting review") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Storage failure while %s", action, exc_info=True)
        raise StorageError("storage_error", f"Failed to {action}, please try again") from exc


def submit_subscription_request(
    account: Account,
    plan_type: str,
    receipt_image: str,
    phone_number: str | None = None,
) -> SubscriptionRequest:
    if not current_app.config.get("SIGNUPS_ENABLED", True):
        raise AuthError(
            "signups_disabled",
            "New registrations are currently closed. Please contact the gym administrator.",
        )
    user = _get_user_or_404(account.id)
    if user.subscription_status == "active":
        raise Conflict("already_active", "This account already has an active subscription")
    if _has_pending(SubscriptionRequest, user.id):
        raise Conflict("duplicate_pending_request", "A subscription request is already awaiting review")

    submitted_at = _now()
    entry = SubscriptionRequest(
        user_id=user.id,
        plan_type=plan_type,
        receipt_image=receipt_image,
        submission_date=submitted_at,
    )
    user.plan_type = plan_type
    user.receipt_image = receipt_image
    user.submission_date = submitted_at
    user.subscription_status = "pending"
    if phone_number:
        user.phone_number = phone_number
    db.session.add(entry)
    db.session.add(user)
    _commit("submit subscription request")
    logger.info(
        "Subscription request submitted",
        extra={"account_id": user.id, "request_kind": "subscription", "request_ref": entry.id},
    )
    return entry


def submit_renewal_request(account: Account, plan_type: str, receipt_image: str) -> RenewalRequest:
    user = _get_user_or_404(account.id)
    if user.subscription_status not in RENEWABLE_STATUSES:
        raise Conflict(
            "not_renewable",
            "Only active or expired subscriptions can be renewed",
            {"subscription_status": user.subscription_status},
        )
    if _has_pending(RenewalRequest, user.id):
        raise Conflict("duplicate_pending_request", "A renewal request is already awaiting review")

    entry = RenewalRequest(
        user_id=user.id,
        plan_type=plan_type,
        receipt_image=receipt_image,
        submission_date=_now(),
    )
    db.session.add(entry)
    _commit("submit renewal request")
    logger.info(
        "Renewal request submitted",
        extra={"account_id": user.id, "request_kind": "renewal", "request_ref": entry.id},
    )
    return entry


def _claim_pending(model: Type[ReviewRequest], request_id: int, approved: bool, operator_id: str | None, note: str | None) -> ReviewRequest:
    """Flip a pending request to its final status, or fail if someone got there first.

    The conditional UPDATE is the serialization point between concurrent
    reviewers; it runs inside the caller's transaction.
    """

    entry = db.session.get(model, request_id)
    if entry is None:
        raise NotFound("request_not_found", f"Request {request_id} does not exist")
    new_status = "approved" if approved else "rejected"
    result = db.session.execute(
        update(model)
        .where(model.id == request_id, model.status == "pending")
        .values(
            status=new_status,
            processed_date=_now(),
            processed_by=operator_id,
            admin_note=note,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.session.rollback()
        raise Conflict("already_processed", "Request already processed", {"request_id": request_id})
    db.session.refresh(entry)
    return entry


def _activate(user: UserRecord, plan_type: str, start) -> None:
    start_date, end_date = lifecycle_policy.plan_period(plan_type, start)
    user.subscription_status = "active"
    user.subscription_start_date = start_date
    user.subscription_end_date = end_date
    user.plan_type = plan_type
    user.is_verified = True
    db.session.add(user)


def process_subscription_request(
    request_id: int,
    approved: bool,
    *,
    operator_id: str | None = None,
    note: str | None = None,
    today: date | None = None,
) -> TransitionResult:
    """Approve or reject a first-time subscription in one transaction."""

    try:
        entry = _claim_pending(SubscriptionRequest, request_id, approved, operator_id, note)
        user = _get_user_or_404(entry.user_id)
        if approved:
            _activate(user, entry.plan_type, today or _today())
        else:
            user.subscription_status = "rejected"
            user.is_verified = False
            db.session.add(user)
        db.session.commit()
    except (NotFound, Conflict) as exc:
        db.session.rollback()
        record_transition("subscription", exc.code)
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Storage failure processing subscription request %s", request_id, exc_info=True)
        raise StorageError("storage_error", "Failed to process request, please try again") from exc

    outcome = "approved" if approved else "rejected"
    record_transition("subscription", outcome)
    logger.info(
        "Subscription request %s",
        outcome,
        extra={"account_id": user.id, "request_kind": "subscription", "request_ref": request_id},
    )
    return TransitionResult(request=entry, user=user, approved=approved)


def process_renewal_request(
    request_id: int,
    approved: bool,
    *,
    start_date=None,
    operator_id: str | None = None,
    note: str | None = None,
    today: date | None = None,
) -> TransitionResult:
    """Approve or reject a renewal; approval restarts the period at ``start_date``."""

    # Validate before touching the queue so bad input leaves the request pending.
    start = None
    if approved and start_date is not None:
        start = lifecycle_policy.parse_calendar_date(start_date)
    try:
        entry = _claim_pending(RenewalRequest, request_id, approved, operator_id, note)
        user = _get_user_or_404(entry.user_id)
        if approved:
            _activate(user, entry.plan_type, start or today or _today())
        db.session.commit()
    except (NotFound, Conflict) as exc:
        db.session.rollback()
        record_transition("renewal", exc.code)
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Storage failure processing renewal request %s", request_id, exc_info=True)
        raise StorageError("storage_error", "Failed to process renewal request, please try again") from exc

    outcome = "approved" if approved else "rejected"
    record_transition("renewal", outcome)
    logger.info(
        "Renewal request %s",
        outcome,
        extra={"account_id": user.id, "request_kind": "renewal", "request_ref": request_id},
    )
    return TransitionResult(request=entry, user=user, approved=approved)


def pending_queue(model: Type[ReviewRequest], status: str | None = "pending"):
    query = model.query.order_by(model.submission_date.desc())
    if status and status.lower() not in {"all", "any"}:
        query = query.filter(model.status == status.lower())
    return query


def requests_for_user(user_id: str) -> dict[str, list]:
    return {
        "subscription_requests": SubscriptionRequest.query.filter_by(user_id=user_id)
        .order_by(SubscriptionRequest.submission_date.desc())
        .all(),
        "renewal_requests": RenewalRequest.query.filter_by(user_id=user_id)
        .order_by(RenewalRequest.submission_date.desc())
        .all(),
    }


def active_subscriptions() -> list[UserRecord]:
    return (
        UserRecord.query.filter_by(is_verified=True, subscription_status="active")
        .order_by(UserRecord.subscription_end_date.asc())
        .all()
    )


def has_roster_access(user: UserRecord | None, now: datetime | None = None) -> bool:
    if user is None:
        return False
    if user.subscription_status != "active":
        return False
    return lifecycle_policy.days_remaining(user.subscription_end_date, now=now) > 0


def expire_lapsed_subscriptions(today: date | None = None) -> int:
    """Mark active subscriptions whose end date has passed as expired."""

    cutoff = today or _today()
    try:
        result = db.session.execute(
            update(UserRecord)
            .where(
                UserRecord.subscription_status == "active",
                UserRecord.subscription_end_date.is_not(None),
                UserRecord.subscription_end_date <= cutoff,
            )
            .values(subscription_status="expired", updated_at=_now())
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Storage failure expiring subscriptions", exc_info=True)
        raise StorageError("storage_error", "Failed to expire subscriptions") from exc
    if result.rowcount:
        logger.info("Expired %s lapsed subscriptions", result.rowcount)
    return result.rowcount
