"""Schemas for mirrored user records."""

from __future__ import annotations

from marshmallow import Schema, fields


class UserRecordSchema(Schema):
    id = fields.String(dump_only=True)
    email = fields.String()
    name = fields.String()
    phone_number = fields.String(allow_none=True)
    role = fields.String()
    is_verified = fields.Boolean()
    subscription_status = fields.String()
    subscription_start_date = fields.Date(allow_none=True)
    subscription_end_date = fields.Date(allow_none=True)
    plan_type = fields.String()
    receipt_image = fields.String(allow_none=True)
    submission_date = fields.DateTime()
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
