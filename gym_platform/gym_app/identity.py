"""Identity-provider accounts as seen by this application.

Sign-in and token issuance belong to the identity provider. The app only
verifies the provider's JWTs and turns their claims into an ``Account`` that is
handed explicitly to the service layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from http import HTTPStatus

from flask import current_app, g, jsonify
from flask_jwt_extended import create_access_token, get_jwt, verify_jwt_in_request

from .errors import AuthError, error_response

ACCESSOR_KEY = "account_accessor"


@dataclass(frozen=True)
class Account:
    id: str
    email: str
    name: str = ""
    role: str = "member"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class AccountAccessor:
    """Resolves the account behind the current request."""

    def current(self) -> Account:  # pragma: no cover - interface
        raise NotImplementedError


class JwtAccountAccessor(AccountAccessor):
    """Builds the account from claims of an already verified JWT."""

    def __init__(self, role_claim: str = "role"):
        self.role_claim = role_claim

    def current(self) -> Account:
        claims = get_jwt()
        subject = claims.get("sub")
        if not subject:
            raise AuthError("invalid_identity", "Token does not identify an account")
        role = claims.get(self.role_claim)
        if role is None:
            # Provider templates often nest custom claims under metadata.
            role = (claims.get("metadata") or {}).get("role")
        return Account(
            id=str(subject),
            email=claims.get("email") or "",
            name=claims.get("name") or "",
            role="admin" if role == "admin" else "member",
        )


def install_account_accessor(app, accessor: AccountAccessor | None = None) -> None:
    if accessor is None:
        accessor = JwtAccountAccessor(role_claim=app.config.get("IDENTITY_ROLE_CLAIM", "role"))
    app.extensions[ACCESSOR_KEY] = accessor


def get_account_accessor() -> AccountAccessor:
    return current_app.extensions[ACCESSOR_KEY]


def account_required(fn):
    """Verify the bearer token and pass the resolved ``Account`` as ``account``."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        try:
            account = get_account_accessor().current()
        except AuthError as exc:
            return error_response(exc)
        g.account_id = account.id
        return fn(*args, account=account, **kwargs)

    return wrapper


def admin_required(fn):
    @account_required
    @wraps(fn)
    def wrapper(*args, account: Account, **kwargs):
        if not account.is_admin:
            return jsonify({"message": "Forbidden"}), HTTPStatus.FORBIDDEN
        return fn(*args, account=account, **kwargs)

    return wrapper


def issue_token(account: Account) -> str:
    """Mint a token shaped like the provider's, for local development and tests."""

    claims = {"email": account.email, "name": account.name, "role": account.role}
    return create_access_token(identity=account.id, additional_claims=claims)
