"""Database models package."""

from .user import UserRecord, SUBSCRIPTION_STATUSES, PLAN_TYPES, ROLES
from .requests import SubscriptionRequest, RenewalRequest, REQUEST_STATUSES
from .member import Member, RenewalHistory

__all__ = [
    "UserRecord",
    "SubscriptionRequest",
    "RenewalRequest",
    "Member",
    "RenewalHistory",
    "SUBSCRIPTION_STATUSES",
    "PLAN_TYPES",
    "ROLES",
    "REQUEST_STATUSES",
]
