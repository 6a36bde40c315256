"""Business logic modules (lifecycle policy, request review, roster, webhook)."""

from . import (
    lifecycle_policy,
    subscription_service,
    member_service,
    webhook_service,
)

__all__ = [
    "lifecycle_policy",
    "subscription_service",
    "member_service",
    "webhook_service",
]
