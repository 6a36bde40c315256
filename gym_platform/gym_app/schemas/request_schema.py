"""Schemas for subscription and renewal requests."""

from __future__ import annotations

from urllib.parse import urlparse

from marshmallow import Schema, ValidationError, fields, validate

from ..models import PLAN_TYPES


def validate_receipt_reference(value: str) -> None:
    """Receipts are image references: an http(s) URL or an inline image data URL."""

    if value.startswith("data:"):
        if not value.startswith("data:image/"):
            raise ValidationError("Please upload an image file.")
        if "," not in value:
            raise ValidationError("Receipt data URL is malformed.")
        return
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValidationError("Receipt must be an image URL or an uploaded image.")


class ReviewRequestSchema(Schema):
    id = fields.Integer(dump_only=True)
    user_id = fields.String(dump_only=True)
    plan_type = fields.String()
    receipt_image = fields.String()
    submission_date = fields.DateTime()
    processed_date = fields.DateTime(allow_none=True)
    processed_by = fields.String(allow_none=True)
    status = fields.String()
    admin_note = fields.String(allow_none=True)
    user = fields.Nested("UserRecordSchema", only=("id", "email", "name", "phone_number"), dump_only=True)


class SubscriptionRequestCreateSchema(Schema):
    plan_type = fields.String(required=True, validate=validate.OneOf(PLAN_TYPES))
    receipt_image = fields.String(required=True, validate=validate_receipt_reference)
    phone_number = fields.String(validate=validate.Length(min=4, max=32), allow_none=True)


class RenewalRequestCreateSchema(Schema):
    plan_type = fields.String(required=True, validate=validate.OneOf(PLAN_TYPES))
    receipt_image = fields.String(required=True, validate=validate_receipt_reference)


class RequestDecisionSchema(Schema):
    action = fields.String(required=True, validate=validate.OneOf(["approve", "reject"]))
    note = fields.String(validate=validate.Length(max=255), allow_none=True)
    # Renewals only; unparsable values surface as InvalidArgument from the policy.
    start_date = fields.String(allow_none=True)
