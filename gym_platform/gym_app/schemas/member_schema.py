"""Schemas for the member roster."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class RenewalHistorySchema(Schema):
    id = fields.Integer(dump_only=True)
    member_id = fields.Integer(dump_only=True)
    duration = fields.Integer()
    price = fields.Decimal(places=2, as_string=True)
    previous_end_date = fields.Date(allow_none=True)
    start_date = fields.Date()
    end_date = fields.Date()
    renewal_date = fields.DateTime()


class MemberSchema(Schema):
    id = fields.Integer(dump_only=True)
    user_id = fields.String(dump_only=True)
    name = fields.String()
    phone_number = fields.String(allow_none=True)
    email = fields.String(allow_none=True)
    start_date = fields.Date()
    end_date = fields.Date()
    duration = fields.Integer()
    price = fields.Decimal(places=2, as_string=True)
    created_at = fields.DateTime()
    updated_at = fields.DateTime()


class MemberCreateSchema(Schema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=255))
    phone_number = fields.String(validate=validate.Length(max=32), allow_none=True)
    email = fields.Email(allow_none=True)
    start_date = fields.String(allow_none=True)
    duration = fields.Integer(required=True)
    price = fields.Decimal(load_default=0)


class MemberUpdateSchema(Schema):
    name = fields.String(validate=validate.Length(min=1, max=255))
    phone_number = fields.String(validate=validate.Length(max=32), allow_none=True)
    email = fields.Email(allow_none=True)
    start_date = fields.String()
    duration = fields.Integer()
    price = fields.Decimal()


class MemberRenewSchema(Schema):
    duration = fields.Integer(required=True)
    price = fields.Decimal(required=True)
    start_date = fields.String(required=True)
    # Accepted for compatibility with clients that precompute it; the server derives it.
    end_date = fields.String(allow_none=True)
