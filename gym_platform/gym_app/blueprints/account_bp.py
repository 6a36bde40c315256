"""Account endpoints: session lookup, subscription and renewal submissions."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from marshmallow import ValidationError

from ..errors import LifecycleError, error_response
from ..extensions import db
from ..identity import Account, account_required
from ..models import UserRecord
from ..schemas import (
    RenewalRequestCreateSchema,
    ReviewRequestSchema,
    SubscriptionRequestCreateSchema,
    UserRecordSchema,
)
from ..services import lifecycle_policy, subscription_service

account_bp = Blueprint("account_bp", __name__)

user_record_schema = UserRecordSchema()
review_request_schema = ReviewRequestSchema(exclude=("user",))
review_requests_schema = ReviewRequestSchema(many=True, exclude=("user",))
subscription_create_schema = SubscriptionRequestCreateSchema()
renewal_create_schema = RenewalRequestCreateSchema()


@account_bp.errorhandler(ValidationError)
def handle_validation_error(err: ValidationError):
    return jsonify({"errors": err.messages}), HTTPStatus.BAD_REQUEST


@account_bp.errorhandler(LifecycleError)
def handle_lifecycle_error(err: LifecycleError):
    return error_response(err)


@account_bp.get("/ping")
def ping():
    return jsonify({"module": "account", "status": "ok"})


@account_bp.get("/me")
@account_required
def me(account: Account):
    user = db.session.get(UserRecord, account.id)
    payload = {
        "account": {
            "id": account.id,
            "email": account.email,
            "name": account.name,
            "role": account.role,
            "is_admin": account.is_admin,
        },
        "user": None,
        "standing": None,
    }
    if user is not None:
        payload["user"] = user_record_schema.dump(user)
        if user.subscription_status in {"active", "expired"}:
            payload["standing"] = lifecycle_policy.describe_standing(
                user.subscription_end_date,
                ending_soon_days=current_app.config.get(
                    "ENDING_SOON_DAYS", lifecycle_policy.ENDING_SOON_DAYS
                ),
            )
    return jsonify(payload)


@account_bp.post("/subscription-requests")
@account_required
def submit_subscription_request(account: Account):
    payload = subscription_create_schema.load(request.get_json() or {})
    entry = subscription_service.submit_subscription_request(
        account,
        payload["plan_type"],
        payload["receipt_image"],
        phone_number=payload.get("phone_number"),
    )
    return jsonify({"request": review_request_schema.dump(entry)}), HTTPStatus.CREATED


@account_bp.post("/renewal-requests")
@account_required
def submit_renewal_request(account: Account):
    payload = renewal_create_schema.load(request.get_json() or {})
    entry = subscription_service.submit_renewal_request(
        account, payload["plan_type"], payload["receipt_image"]
    )
    return jsonify({"request": review_request_schema.dump(entry)}), HTTPStatus.CREATED


@account_bp.get("/requests")
@account_required
def list_requests(account: Account):
    history = subscription_service.requests_for_user(account.id)
    return jsonify({key: review_requests_schema.dump(items) for key, items in history.items()})
