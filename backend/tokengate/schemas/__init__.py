"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import AccessTokenSchema, LoginSchema, SignupSchema, UserPublicSchema

__all__ = [
    "AccessTokenSchema",
    "LoginSchema",
    "SignupSchema",
    "UserPublicSchema",
]
