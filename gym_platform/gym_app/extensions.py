"""Shared Flask extension instances."""

from __future__ import annotations

from flask_cors import CORS
from flask_jwt_extended import JWTManager, get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from jwt.exceptions import PyJWTError


def _rate_limit_key() -> str:
    """Bucket signed-in accounts by account id, everyone else by address."""

    try:
        verify_jwt_in_request(optional=True)
        identity = get_jwt_identity()
    except (JWTExtendedException, PyJWTError):
        identity = None
    if identity:
        return f"account:{identity}"
    return get_remote_address()


db: SQLAlchemy = SQLAlchemy()
migrate: Migrate = Migrate()
jwt: JWTManager = JWTManager()
cors: CORS = CORS()
limiter: Limiter = Limiter(key_func=_rate_limit_key)
