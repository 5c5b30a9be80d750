"""DTOs for AuthService."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class SignupIn:
    """
    Input DTO for signup.

    :param username: Unique login handle.
    :type username: str
    :param email: Contact email (normalized before storage).
    :type email: str
    :param password: Raw password (hashed before storage).
    :type password: str
    """

    username: str
    email: str
    password: str


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param username: Login handle.
    :type username: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    username: str
    password: str


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh, as produced by the refresh guard.

    :param user_id: ``sub`` of the verified refresh token.
    :type user_id: str
    :param refresh_token: Raw refresh token, compared against the stored hash.
    :type refresh_token: str
    """

    user_id: str
    refresh_token: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param user_id: ``sub`` of the verified access token.
    :type user_id: str
    """

    user_id: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class IssuedTokens:
    """
    Token pair emitted by signup, login and refresh.

    Only ``access_token`` and ``expires_in`` go in the response body; the
    refresh token travels in a cookie that expires at ``refresh_expires_at``.

    :param access_token: Encoded access JWT.
    :type access_token: str
    :param expires_in: Access token lifetime in seconds.
    :type expires_in: int
    :param refresh_token: Encoded refresh JWT.
    :type refresh_token: str
    :param refresh_expires_at: Absolute expiry of the refresh token (UTC).
    :type refresh_expires_at: datetime
    """

    access_token: str
    expires_in: int
    refresh_token: str
    refresh_expires_at: datetime


@dataclass(frozen=True, slots=True)
class UserPublicOut:
    """
    Outward-facing user shape; hash fields are deliberately absent.

    :param id: User identity.
    :type id: str
    :param username: Login handle.
    :type username: str
    :param email: Contact email.
    :type email: str
    """

    id: str
    username: str
    email: str
