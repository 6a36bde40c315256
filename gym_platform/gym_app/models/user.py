"""Local mirror of identity-provider accounts plus subscription state."""

from __future__ import annotations

from datetime import datetime, timezone

from ..extensions import db


def utcnow():
    return datetime.now(timezone.utc)


SUBSCRIPTION_STATUSES = ("pending", "active", "expired", "rejected")
PLAN_TYPES = ("monthly", "yearly", "lifetime")
ROLES = ("member", "admin")


class UserRecord(db.Model):
    """Account mirror written by the identity webhook and the review workflow."""

    __tablename__ = "users"

    id = db.Column(db.String(64), primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False, default="")
    phone_number = db.Column(db.String(32))
    role = db.Column(db.String(16), nullable=False, default="member")
    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    subscription_status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    subscription_start_date = db.Column(db.Date)
    subscription_end_date = db.Column(db.Date)
    plan_type = db.Column(db.String(16), nullable=False, default="monthly")
    receipt_image = db.Column(db.Text)
    submission_date = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    subscription_requests = db.relationship(
        "SubscriptionRequest",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    renewal_requests = db.relationship(
        "RenewalRequest",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    members = db.relationship(
        "Member",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<UserRecord {self.id} {self.email} ({self.subscription_status})>"
