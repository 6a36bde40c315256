"""Pytest configuration for ensuring project modules resolve correctly."""

from __future__ import annotations

import sys
from datetime import timedelta
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from gym_app import create_app
from gym_app.extensions import db
from gym_app.identity import Account, issue_token
from gym_app.models import UserRecord
from gym_app.services import lifecycle_policy

MEMBER_ACCOUNT = Account(id="user_member_1", email="member@example.com", name="Sam Member")
ADMIN_ACCOUNT = Account(id="user_admin_1", email="admin@example.com", name="Gym Admin", role="admin")


@pytest.fixture()
def app_with_db():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app_with_db):
    return app_with_db.test_client()


@pytest.fixture()
def member_record(app_with_db):
    user = UserRecord(
        id=MEMBER_ACCOUNT.id,
        email=MEMBER_ACCOUNT.email,
        name=MEMBER_ACCOUNT.name,
        subscription_status="pending",
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture()
def active_member_record(member_record):
    today = lifecycle_policy.today()
    member_record.subscription_status = "active"
    member_record.is_verified = True
    member_record.plan_type = "monthly"
    member_record.subscription_start_date = today - timedelta(days=5)
    member_record.subscription_end_date = today + timedelta(days=25)
    db.session.add(member_record)
    db.session.commit()
    return member_record


@pytest.fixture()
def member_token(app_with_db):
    return issue_token(MEMBER_ACCOUNT)


@pytest.fixture()
def admin_token(app_with_db):
    admin = UserRecord(
        id=ADMIN_ACCOUNT.id,
        email=ADMIN_ACCOUNT.email,
        name=ADMIN_ACCOUNT.name,
        role="admin",
        is_verified=True,
        subscription_status="active",
        plan_type="lifetime",
        subscription_start_date=lifecycle_policy.today(),
        subscription_end_date=lifecycle_policy.today() + timedelta(days=36500),
    )
    db.session.add(admin)
    db.session.commit()
    return issue_token(ADMIN_ACCOUNT)
