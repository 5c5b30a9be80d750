"""
Dual-secret JWT signing and verification.

Access and refresh tokens are signed with two different secrets and carry a
``type`` claim, so a token of one class never verifies as the other. Every
token gets a random ``jti``: two tokens issued for the same user within the
same second are still distinct strings.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

import jwt

REQUIRED_CLAIMS = ("sub", "exp", "iat", "jti", "type")


class SecretClass(str, Enum):
    """Token class; selects the signing secret and the default TTL."""

    ACCESS = "access"
    REFRESH = "refresh"


# --------------------------------------------------------------------------- #
# Errors
# --------------------------------------------------------------------------- #


class InvalidTokenError(Exception):
    """
    Base class for every verification failure.

    ``reason`` is meant for logs only. Callers collapse all subclasses into
    one client-visible outcome.
    """

    reason = "invalid"


class MalformedTokenError(InvalidTokenError):
    """Not a JWT, bad encoding, or a required claim is missing."""

    reason = "malformed"


class SignatureMismatchError(InvalidTokenError):
    """Signature does not match the secret bound to the requested class."""

    reason = "signature"


class WrongTokenTypeError(SignatureMismatchError):
    """Signature checks out but the ``type`` claim names the other class."""

    reason = "wrong_type"


class TokenExpiredError(InvalidTokenError):
    """``exp`` has elapsed."""

    reason = "expired"


# --------------------------------------------------------------------------- #
# Config & values
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenConfig:
    """
    Token signing configuration.

    :param access_secret: HMAC secret for access tokens.
    :param access_ttl: Access token lifetime.
    :param refresh_secret: HMAC secret for refresh tokens.
    :param refresh_ttl: Refresh token lifetime; the refresh cookie expiry derives from it.
    :param algorithm: JWS algorithm.
    :param leeway: Clock skew tolerated on ``exp``.
    """

    access_secret: str
    access_ttl: timedelta
    refresh_secret: str
    refresh_ttl: timedelta
    algorithm: str = "HS256"
    leeway: timedelta = timedelta(0)

    def __post_init__(self) -> None:
        if not self.access_secret or not self.refresh_secret:
            raise ValueError("Both access and refresh secrets must be configured.")
        if self.access_secret == self.refresh_secret:
            raise ValueError("Access and refresh secrets must differ.")
        if self.access_ttl <= timedelta(0) or self.refresh_ttl <= timedelta(0):
            raise ValueError("Token TTLs must be positive.")

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> TokenConfig:
        """Build from a Flask-style config mapping (``JWT_*`` keys)."""
        return cls(
            access_secret=str(config["JWT_ACCESS_SECRET"]),
            access_ttl=timedelta(seconds=int(config["JWT_ACCESS_TTL_SECONDS"])),
            refresh_secret=str(config["JWT_REFRESH_SECRET"]),
            refresh_ttl=timedelta(seconds=int(config["JWT_REFRESH_TTL_SECONDS"])),
            algorithm=str(config.get("JWT_ALGORITHM", "HS256")),
            leeway=timedelta(seconds=int(config.get("JWT_LEEWAY_SECONDS", 0))),
        )

    def secret_for(self, secret_class: SecretClass) -> str:
        return self.access_secret if secret_class is SecretClass.ACCESS else self.refresh_secret

    def ttl_for(self, secret_class: SecretClass) -> timedelta:
        return self.access_ttl if secret_class is SecretClass.ACCESS else self.refresh_ttl


@dataclass(frozen=True, slots=True)
class SignedToken:
    """
    Result of :meth:`TokenCodec.sign`.

    :param token: Encoded JWT.
    :param expires_in: Lifetime in whole seconds, for client consumption.
    :param expires_at: Absolute expiry (UTC).
    """

    token: str
    expires_in: int
    expires_at: datetime


# --------------------------------------------------------------------------- #
# Codec
# --------------------------------------------------------------------------- #


class TokenCodec:
    """Sign and verify tokens of both classes with PyJWT."""

    def __init__(self, config: TokenConfig) -> None:
        self.config = config

    def sign(
        self,
        subject: str,
        secret_class: SecretClass,
        *,
        claims: Mapping[str, Any] | None = None,
        ttl: timedelta | None = None,
    ) -> SignedToken:
        """
        Sign a token for ``subject``.

        :param subject: User identity, stored as ``sub``.
        :param secret_class: Selects secret and default TTL.
        :param claims: Extra claims. Registered claims always win over these.
        :param ttl: Lifetime override.
        :returns: Token with its expiry.
        """
        lifetime = ttl if ttl is not None else self.config.ttl_for(secret_class)
        now = datetime.now(UTC)
        expires_at = now + lifetime
        payload: dict[str, Any] = dict(claims or {})
        payload.update(
            {
                "sub": str(subject),
                "iat": now,
                "exp": expires_at,
                "jti": uuid.uuid4().hex,
                "type": secret_class.value,
            }
        )
        token = jwt.encode(
            payload, self.config.secret_for(secret_class), algorithm=self.config.algorithm
        )
        return SignedToken(
            token=token,
            expires_in=int(lifetime.total_seconds()),
            expires_at=expires_at,
        )

    def verify(self, token: str, secret_class: SecretClass) -> dict[str, Any]:
        """
        Verify ``token`` against the secret of ``secret_class``.

        :returns: Decoded payload.
        :raises MalformedTokenError: Undecodable token or missing claims.
        :raises SignatureMismatchError: Wrong secret or wrong token class.
        :raises TokenExpiredError: Token past ``exp``.
        """
        if not isinstance(token, str) or not token:
            raise MalformedTokenError("empty token")
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self.config.secret_for(secret_class),
                algorithms=[self.config.algorithm],
                leeway=self.config.leeway,
                options={"require": list(REQUIRED_CLAIMS)},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError(str(exc)) from exc
        except jwt.InvalidSignatureError as exc:
            raise SignatureMismatchError(str(exc)) from exc
        except jwt.InvalidTokenError as exc:
            # DecodeError, MissingRequiredClaimError, ImmatureSignatureError...
            raise MalformedTokenError(str(exc)) from exc

        if payload.get("type") != secret_class.value:
            raise WrongTokenTypeError(f"expected a {secret_class.value} token")
        return payload
