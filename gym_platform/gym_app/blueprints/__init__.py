"""REST API blueprints (account, admin, members, webhooks, metrics)."""

from __future__ import annotations

from .account_bp import account_bp
from .admin_bp import admin_bp
from .member_bp import member_bp
from .metrics_bp import metrics_bp
from .webhook_bp import webhook_bp

BLUEPRINTS = (
    (account_bp, "/api/account"),
    (admin_bp, "/api/admin"),
    (member_bp, "/api/members"),
    (webhook_bp, "/api/webhooks"),
    (metrics_bp, ""),
)

__all__ = [
    "BLUEPRINTS",
    "account_bp",
    "admin_bp",
    "member_bp",
    "metrics_bp",
    "webhook_bp",
]
