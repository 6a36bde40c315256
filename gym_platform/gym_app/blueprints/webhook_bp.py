"""Identity-provider webhook receiver."""

from __future__ import annotations

import json
import logging
from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from marshmallow import ValidationError

from ..errors import StorageError
from ..extensions import limiter
from ..metrics import record_webhook
from ..schemas import WebhookEventSchema
from ..services import webhook_service

logger = logging.getLogger(__name__)

webhook_bp = Blueprint("webhook_bp", __name__)

event_schema = WebhookEventSchema()


@webhook_bp.post("/identity")
@limiter.exempt
def identity_webhook():
    secret = current_app.config.get("IDENTITY_WEBHOOK_SECRET")
    if not secret:
        logger.error("IDENTITY_WEBHOOK_SECRET is not configured")
        return jsonify({"message": "Webhook secret not configured"}), HTTPStatus.INTERNAL_SERVER_ERROR

    if webhook_service.signature_headers(request.headers) is None:
        record_webhook("unknown", "missing_headers")
        return jsonify({"message": "Missing signature headers"}), HTTPStatus.BAD_REQUEST

    body = request.get_data()
    try:
        webhook_service.verify_signature(
            secret,
            request.headers,
            body,
            tolerance_seconds=current_app.config.get("WEBHOOK_TOLERANCE_SECONDS", 300),
        )
    except webhook_service.WebhookVerificationError as exc:
        record_webhook("unknown", "bad_signature")
        logger.warning(
            "Identity webhook verification failed: %s",
            exc,
            extra={"webhook_id": request.headers.get(webhook_service.HEADER_ID)},
        )
        return jsonify({"message": "Invalid signature"}), HTTPStatus.BAD_REQUEST

    try:
        event = event_schema.load(json.loads(body or b"{}"))
    except (ValueError, ValidationError) as exc:
        messages = exc.messages if isinstance(exc, ValidationError) else {"body": ["Invalid JSON."]}
        return jsonify({"errors": messages}), HTTPStatus.BAD_REQUEST

    try:
        outcome = webhook_service.handle_event(event)
    except StorageError as exc:
        return jsonify(exc.to_dict()), HTTPStatus.BAD_REQUEST
    return jsonify({"status": outcome}), HTTPStatus.OK
