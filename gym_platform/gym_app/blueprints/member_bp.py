"""Roster endpoints for account holders with an active subscription."""

from __future__ import annotations

from functools import wraps
from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from marshmallow import ValidationError

from ..errors import LifecycleError, SubscriptionRequired, error_response
from ..extensions import db
from ..identity import Account, account_required
from ..models import UserRecord
from ..schemas import (
    MemberCreateSchema,
    MemberRenewSchema,
    MemberSchema,
    MemberUpdateSchema,
    RenewalHistorySchema,
)
from ..services import lifecycle_policy, member_service, subscription_service

member_bp = Blueprint("member_bp", __name__)

member_schema = MemberSchema()
create_schema = MemberCreateSchema()
update_schema = MemberUpdateSchema()
renew_schema = MemberRenewSchema()
history_schema = RenewalHistorySchema(many=True)


def _ending_soon_days() -> int:
    return int(current_app.config.get("ENDING_SOON_DAYS", lifecycle_policy.ENDING_SOON_DAYS))


def _serialize_member(member) -> dict:
    data = member_schema.dump(member)
    data["standing"] = lifecycle_policy.describe_standing(
        member.end_date, ending_soon_days=_ending_soon_days()
    )
    return data


def subscription_required(fn):
    """Roster access needs an active, unexpired subscription."""

    @account_required
    @wraps(fn)
    def wrapper(*args, account: Account, **kwargs):
        user = db.session.get(UserRecord, account.id)
        if not subscription_service.has_roster_access(user):
            raise SubscriptionRequired(
                "subscription_required",
                "An active subscription is required to manage members.",
                {"subscription_status": user.subscription_status if user else None},
            )
        return fn(*args, account=account, **kwargs)

    return wrapper


@member_bp.errorhandler(ValidationError)
def handle_validation_error(err: ValidationError):
    return jsonify({"errors": err.messages}), HTTPStatus.BAD_REQUEST


@member_bp.errorhandler(LifecycleError)
def handle_lifecycle_error(err: LifecycleError):
    return error_response(err)


@member_bp.get("/ping")
def ping():
    return jsonify({"module": "members", "status": "ok"})


@member_bp.get("")
@subscription_required
def list_members(account: Account):
    members = member_service.list_members(
        account.id,
        status_filter=(request.args.get("filter") or "all").lower(),
        search=request.args.get("search"),
        ending_soon_days=_ending_soon_days(),
    )
    return jsonify({"members": [_serialize_member(member) for member in members]})


@member_bp.post("")
@subscription_required
def create_member(account: Account):
    payload = create_schema.load(request.get_json() or {})
    member = member_service.create_member(account.id, payload)
    return jsonify({"member": _serialize_member(member)}), HTTPStatus.CREATED


@member_bp.get("/<int:member_id>")
@subscription_required
def get_member(member_id: int, account: Account):
    member = member_service.get_member(account.id, member_id)
    return jsonify({"member": _serialize_member(member)})


@member_bp.patch("/<int:member_id>")
@subscription_required
def update_member(member_id: int, account: Account):
    payload = update_schema.load(request.get_json() or {})
    member = member_service.update_member(account.id, member_id, payload)
    return jsonify({"member": _serialize_member(member)})


@member_bp.delete("/<int:member_id>")
@subscription_required
def delete_member(member_id: int, account: Account):
    member_service.delete_member(account.id, member_id)
    return jsonify({"deleted": member_id})


@member_bp.post("/<int:member_id>/renew")
@subscription_required
def renew_member(member_id: int, account: Account):
    payload = renew_schema.load(request.get_json() or {})
    member = member_service.renew_member(
        account.id,
        member_id,
        payload["duration"],
        payload["price"],
        payload["start_date"],
    )
    return jsonify(
        {
            "member": _serialize_member(member),
            "history": history_schema.dump(member_service.get_renewal_history(account.id, member_id)),
        }
    )


@member_bp.get("/<int:member_id>/history")
@subscription_required
def renewal_history(member_id: int, account: Account):
    history = member_service.get_renewal_history(account.id, member_id)
    return jsonify({"history": history_schema.dump(history)})
