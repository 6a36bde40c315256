"""Schemas for identity-provider webhook payloads."""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, ValidationError, fields, validates_schema

EVENT_ALIASES = {
    "user.created": "account.created",
    "user.updated": "account.updated",
    "user.deleted": "account.deleted",
}


class EmailAddressSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    id = fields.String(allow_none=True)
    email_address = fields.Email(required=True)


class WebhookAccountSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    id = fields.String(required=True)
    email_addresses = fields.List(fields.Nested(EmailAddressSchema), load_default=list)
    primary_email_address_id = fields.String(allow_none=True)
    username = fields.String(allow_none=True)
    first_name = fields.String(allow_none=True)
    last_name = fields.String(allow_none=True)
    public_metadata = fields.Dict(load_default=dict)


class WebhookEventSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    type = fields.String(required=True)
    data = fields.Nested(WebhookAccountSchema, required=True)
    timestamp = fields.Integer(allow_none=True)

    @validates_schema
    def validate_created_email(self, data, **kwargs):
        event_type = EVENT_ALIASES.get(data.get("type"), data.get("type"))
        if event_type == "account.created" and not data["data"].get("email_addresses"):
            raise ValidationError({"data": {"email_addresses": ["At least one email address is required."]}})
