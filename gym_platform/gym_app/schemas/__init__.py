"""Serialization / validation schemas (Marshmallow)."""

from .user_schema import UserRecordSchema
from .request_schema import (
    ReviewRequestSchema,
    SubscriptionRequestCreateSchema,
    RenewalRequestCreateSchema,
    RequestDecisionSchema,
)
from .member_schema import (
    MemberSchema,
    MemberCreateSchema,
    MemberUpdateSchema,
    MemberRenewSchema,
    RenewalHistorySchema,
)
from .webhook_schema import WebhookEventSchema

__all__ = [
    "UserRecordSchema",
    "ReviewRequestSchema",
    "SubscriptionRequestCreateSchema",
    "RenewalRequestCreateSchema",
    "RequestDecisionSchema",
    "MemberSchema",
    "MemberCreateSchema",
    "MemberUpdateSchema",
    "MemberRenewSchema",
    "RenewalHistorySchema",
    "WebhookEventSchema",
]
