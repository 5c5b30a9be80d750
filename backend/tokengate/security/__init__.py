"""
tokengate.security
==================

Credential hashing, token signing/verification and request guards.

The codec and hasher are built once per application from its config and
stored in ``app.extensions``; request-time code reaches them through
:func:`get_token_codec` and :func:`get_hasher`.
"""

from __future__ import annotations

from typing import cast

from flask import Flask, current_app

from tokengate.core.config import PLACEHOLDER_ACCESS_SECRET, PLACEHOLDER_REFRESH_SECRET

from .hasher import CredentialHasher
from .tokens import SecretClass, TokenCodec, TokenConfig

CODEC_EXTENSION = "token_codec"
HASHER_EXTENSION = "credential_hasher"


def init_app(app: Flask) -> None:
    """Build the token codec and hasher from ``app.config``.

    :raises ValueError: When secrets are missing or identical, or left at
        their development placeholders outside debug and testing.
    """
    _refuse_placeholder_secrets(app)
    app.extensions[CODEC_EXTENSION] = TokenCodec(TokenConfig.from_mapping(app.config))
    app.extensions[HASHER_EXTENSION] = CredentialHasher(
        method=app.config.get("PASSWORD_HASH_METHOD", "scrypt")
    )


def _refuse_placeholder_secrets(app: Flask) -> None:
    if app.debug or app.testing:
        return
    placeholders = {PLACEHOLDER_ACCESS_SECRET, PLACEHOLDER_REFRESH_SECRET}
    for key in ("JWT_ACCESS_SECRET", "JWT_REFRESH_SECRET"):
        if app.config.get(key) in placeholders:
            raise ValueError(f"{key} must be set explicitly outside development and testing.")


def get_token_codec() -> TokenCodec:
    return cast(TokenCodec, current_app.extensions[CODEC_EXTENSION])


def get_hasher() -> CredentialHasher:
    return cast(CredentialHasher, current_app.extensions[HASHER_EXTENSION])


__all__ = [
    "CredentialHasher",
    "SecretClass",
    "TokenCodec",
    "TokenConfig",
    "get_hasher",
    "get_token_codec",
    "init_app",
]
