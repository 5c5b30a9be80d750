"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, current_app, request

from tokengate.api.deps import (
    auth_service,
    clear_refresh_cookie,
    json_response,
    set_refresh_cookie,
    timing,
    translate_errors,
)
from tokengate.core.extensions import limiter
from tokengate.schemas import AccessTokenSchema, LoginSchema, SignupSchema, UserPublicSchema
from tokengate.security.guards import access_guard, current_identity, refresh_guard
from tokengate.services.auth.dto import IssuedTokens, LoginIn, LogoutIn, RefreshIn, SignupIn

bp = Blueprint("auth", __name__)

signup_schema = SignupSchema()
login_schema = LoginSchema()
access_token_schema = AccessTokenSchema()
user_public_schema = UserPublicSchema()


def _login_rate_limit() -> str:
    return str(current_app.config.get("AUTH_LOGIN_RATE_LIMIT", "5 per minute"))


def _token_response(issued: IssuedTokens, *, status: int = 200):
    """Body carries the access token; the refresh token goes in its cookie."""
    body = access_token_schema.dump(
        {"access_token": issued.access_token, "expires_in": issued.expires_in}
    )
    response = json_response(body, status=status)
    set_refresh_cookie(response, issued.refresh_token, issued.refresh_expires_at)
    return response


@bp.post("/signup")
@timing
@translate_errors
def signup():
    """Create an account and start its first session."""

    data = signup_schema.load(request.get_json(silent=True) or {})
    issued = auth_service().signup(SignupIn(**data))
    return _token_response(issued, status=201)


@bp.post("/login")
@limiter.limit(_login_rate_limit)
@timing
@translate_errors
def login():
    """Authenticate credentials and issue a token pair."""

    data = login_schema.load(request.get_json(silent=True) or {})
    issued = auth_service().login(LoginIn(**data))
    return _token_response(issued)


@bp.get("/refresh")
@refresh_guard
@timing
@translate_errors
def refresh():
    """Rotate the refresh cookie and issue a new access token."""

    identity = current_identity()
    issued = auth_service().refresh(
        RefreshIn(user_id=identity["sub"], refresh_token=identity["refresh_token"])
    )
    return _token_response(issued)


@bp.get("/logout")
@access_guard
@timing
@translate_errors
def logout():
    """End the refresh session of the authenticated user."""

    auth_service().logout(LogoutIn(user_id=current_identity()["sub"]))
    response = json_response({"status": "ok"})
    clear_refresh_cookie(response)
    return response


@bp.get("/me")
@access_guard
@timing
@translate_errors
def me():
    """Return the authenticated user profile."""

    user = auth_service().whoami(current_identity()["sub"])
    return json_response(user_public_schema.dump(user))
