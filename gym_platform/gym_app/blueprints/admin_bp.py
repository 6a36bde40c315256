"""Admin blueprint endpoints: request review queues and active subscriptions."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from marshmallow import ValidationError
from sqlalchemy.orm import joinedload

from ..errors import LifecycleError, error_response
from ..identity import Account, admin_required
from ..models import RenewalRequest, SubscriptionRequest
from ..schemas import RequestDecisionSchema, ReviewRequestSchema, UserRecordSchema
from ..services import lifecycle_policy, subscription_service

admin_bp = Blueprint("admin_bp", __name__)

review_request_schema = ReviewRequestSchema()
review_requests_schema = ReviewRequestSchema(many=True)
decision_schema = RequestDecisionSchema()
user_record_schema = UserRecordSchema()


def _paginate(query, page: int, per_page: int):
    per_page = max(1, min(per_page, 100))
    page = max(page, 1)
    return query.paginate(page=page, per_page=per_page, error_out=False)


def _pagination_payload(pagination) -> dict:
    return {
        "page": pagination.page,
        "per_page": pagination.per_page,
        "pages": pagination.pages,
        "total": pagination.total,
        "has_next": pagination.has_next,
        "has_prev": pagination.has_prev,
    }


def _list_queue(model):
    page = int(request.args.get("page", 1))
    per_page = min(int(request.args.get("per_page", 20)), 100)
    status = request.args.get("status", "pending")
    query = subscription_service.pending_queue(model, status).options(joinedload(model.user))
    pagination = _paginate(query, page, per_page)
    return jsonify(
        {
            "requests": review_requests_schema.dump(pagination.items),
            "pagination": _pagination_payload(pagination),
        }
    )


def _serialize_user(user) -> dict:
    data = user_record_schema.dump(user)
    data["standing"] = lifecycle_policy.describe_standing(
        user.subscription_end_date,
        ending_soon_days=current_app.config.get("ENDING_SOON_DAYS", lifecycle_policy.ENDING_SOON_DAYS),
    )
    return data


@admin_bp.errorhandler(ValidationError)
def handle_validation_error(err: ValidationError):
    return jsonify({"errors": err.messages}), HTTPStatus.BAD_REQUEST


@admin_bp.errorhandler(LifecycleError)
def handle_lifecycle_error(err: LifecycleError):
    return error_response(err)


@admin_bp.get("/ping")
def ping():
    return jsonify({"module": "admin", "status": "ok"})


@admin_bp.get("/subscription-requests")
@admin_required
def list_subscription_requests(account: Account):
    return _list_queue(SubscriptionRequest)


@admin_bp.post("/subscription-requests/<int:request_id>/decision")
@admin_required
def decide_subscription_request(request_id: int, account: Account):
    payload = decision_schema.load(request.get_json() or {})
    result = subscription_service.process_subscription_request(
        request_id,
        payload["action"] == "approve",
        operator_id=account.id,
        note=payload.get("note"),
    )
    return jsonify(
        {
            "request": review_request_schema.dump(result.request),
            "user": _serialize_user(result.user),
        }
    )


@admin_bp.get("/renewal-requests")
@admin_required
def list_renewal_requests(account: Account):
    return _list_queue(RenewalRequest)


@admin_bp.post("/renewal-requests/<int:request_id>/decision")
@admin_required
def decide_renewal_request(request_id: int, account: Account):
    payload = decision_schema.load(request.get_json() or {})
    result = subscription_service.process_renewal_request(
        request_id,
        payload["action"] == "approve",
        start_date=payload.get("start_date"),
        operator_id=account.id,
        note=payload.get("note"),
    )
    return jsonify(
        {
            "request": review_request_schema.dump(result.request),
            "user": _serialize_user(result.user),
        }
    )


@admin_bp.get("/subscriptions/active")
@admin_required
def list_active_subscriptions(account: Account):
    users = subscription_service.active_subscriptions()
    return jsonify({"users": [_serialize_user(user) for user in users]})
