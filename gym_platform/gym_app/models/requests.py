"""Pending-queue models: subscription and renewal requests."""

from __future__ import annotations

from datetime import datetime, timezone

from ..extensions import db


def utcnow():
    return datetime.now(timezone.utc)


REQUEST_STATUSES = ("pending", "approved", "rejected")


class _ReviewRequestMixin:
    id = db.Column(db.Integer, primary_key=True)
    plan_type = db.Column(db.String(16), nullable=False)
    receipt_image = db.Column(db.Text, nullable=False)
    submission_date = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    processed_date = db.Column(db.DateTime(timezone=True))
    processed_by = db.Column(db.String(64))
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    admin_note = db.Column(db.String(255))

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"


class SubscriptionRequest(_ReviewRequestMixin, db.Model):
    """First activation of a plan, submitted with a payment receipt."""

    __tablename__ = "subscription_requests"
    __table_args__ = (
        db.Index(
            "uq_subscription_requests_pending_user",
            "user_id",
            unique=True,
            sqlite_where=db.text("status = 'pending'"),
            postgresql_where=db.text("status = 'pending'"),
        ),
    )

    user_id = db.Column(
        db.String(64), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user = db.relationship("UserRecord", back_populates="subscription_requests")

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<SubscriptionRequest id={self.id} user={self.user_id} plan={self.plan_type} status={self.status}>"


class RenewalRequest(_ReviewRequestMixin, db.Model):
    """Extension of an existing subscription, reviewed like a first activation."""

    __tablename__ = "renewal_requests"
    __table_args__ = (
        db.Index(
            "uq_renewal_requests_pending_user",
            "user_id",
            unique=True,
            sqlite_where=db.text("status = 'pending'"),
            postgresql_where=db.text("status = 'pending'"),
        ),
    )

    user_id = db.Column(
        db.String(64), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user = db.relationship("UserRecord", back_populates="renewal_requests")

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<RenewalRequest id={self.id} user={self.user_id} plan={self.plan_type} status={self.status}>"
