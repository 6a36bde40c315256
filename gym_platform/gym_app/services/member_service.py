"""Roster management for account holders, including member renewals."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError

from ..errors import InvalidArgument, NotFound, StorageError
from ..extensions import db
from ..metrics import record_transition
from ..models import Member, RenewalHistory
from . import lifecycle_policy

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "phone_number", "email", "start_date", "duration", "price")


def _today() -> date:
    return datetime.now(timezone.utc).date()


def _coerce_price(value) -> Decimal:
    try:
        price = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidArgument("invalid_price", "Price must be a number") from exc
    if not price.is_finite() or price < 0:
        raise InvalidArgument("invalid_price", "Price must be zero or more")
    return price.quantize(Decimal("0.01"))


def _commit(action: str) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Storage failure while %s", action, exc_info=True)
        raise StorageError("storage_error", f"Failed to {action}, please try again") from exc


def get_member(owner_id: str, member_id: int) -> Member:
    member = db.session.get(Member, member_id)
    if member is None or member.user_id != owner_id:
        raise NotFound("member_not_found", f"Member {member_id} does not exist")
    return member


def list_members(
    owner_id: str,
    status_filter: str = "all",
    search: str | None = None,
    now: datetime | None = None,
    ending_soon_days: int = lifecycle_policy.ENDING_SOON_DAYS,
) -> list[Member]:
    if status_filter not in lifecycle_policy.ROSTER_FILTERS:
        raise InvalidArgument("invalid_filter", f"Unknown filter {status_filter!r}")
    query = Member.query.filter(Member.user_id == owner_id).order_by(Member.created_at.desc(), Member.id.desc())
    term = (search or "").strip().lower()
    if term:
        like = f"%{term}%"
        query = query.filter(
            or_(
                func.lower(Member.name).like(like),
                func.lower(Member.email).like(like),
                Member.phone_number.like(like),
            )
        )
    # Standing depends on "now", so filtering happens after the fetch.
    return [
        member
        for member in query.all()
        if lifecycle_policy.matches_filter(
            member.end_date, status_filter, now=now, ending_soon_days=ending_soon_days
        )
    ]


def create_member(owner_id: str, payload: dict) -> Member:
    start_date, end_date = lifecycle_policy.compute_period(
        payload.get("start_date") or _today(), payload.get("duration")
    )
    member = Member(
        user_id=owner_id,
        name=payload["name"],
        phone_number=payload.get("phone_number"),
        email=payload.get("email"),
        start_date=start_date,
        end_date=end_date,
        duration=(end_date - start_date).days,
        price=_coerce_price(payload.get("price", 0)),
    )
    db.session.add(member)
    _commit("add member")
    logger.info("Member added", extra={"account_id": owner_id, "member_id": member.id})
    return member


def update_member(owner_id: str, member_id: int, updates: dict) -> Member:
    member = get_member(owner_id, member_id)
    changes = {key: updates[key] for key in EDITABLE_FIELDS if key in updates}
    if "price" in changes:
        changes["price"] = _coerce_price(changes["price"])
    if "start_date" in changes or "duration" in changes:
        start_date, end_date = lifecycle_policy.compute_period(
            changes.get("start_date", member.start_date),
            changes.get("duration", member.duration),
        )
        changes["start_date"] = start_date
        changes["duration"] = (end_date - start_date).days
        member.end_date = end_date
    for key, value in changes.items():
        setattr(member, key, value)
    db.session.add(member)
    _commit("update member")
    return member


def delete_member(owner_id: str, member_id: int) -> None:
    member = get_member(owner_id, member_id)
    db.session.delete(member)
    _commit("delete member")
    logger.info("Member deleted", extra={"account_id": owner_id, "member_id": member_id})


def renew_member(owner_id: str, member_id: int, duration, price, start_date) -> Member:
    """Start a new period for a member and log it in the renewal history.

    The member update and the history row are committed together; any failure
    leaves both untouched.
    """

    member = get_member(owner_id, member_id)
    start, end = lifecycle_policy.compute_period(start_date, duration)
    amount = _coerce_price(price)
    days = (end - start).days

    db.session.add(
        RenewalHistory(
            member_id=member.id,
            duration=days,
            price=amount,
            previous_end_date=member.end_date,
            start_date=start,
            end_date=end,
        )
    )
    member.start_date = start
    member.end_date = end
    member.duration = days
    member.price = amount
    db.session.add(member)
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        record_transition("member_renewal", "storage_error")
        logger.error("Storage failure renewing member %s", member_id, exc_info=True)
        raise StorageError("storage_error", "Failed to renew member, please try again") from exc

    record_transition("member_renewal", "renewed")
    logger.info(
        "Member renewed until %s",
        end.isoformat(),
        extra={"account_id": owner_id, "member_id": member_id},
    )
    return member


def get_renewal_history(owner_id: str, member_id: int) -> list[RenewalHistory]:
    member = get_member(owner_id, member_id)
    return (
        RenewalHistory.query.filter_by(member_id=member.id)
        .order_by(RenewalHistory.renewal_date.desc(), RenewalHistory.id.desc())
        .all()
    )
