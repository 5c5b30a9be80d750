"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class SignupSchema(Schema):
    """Input payload for account creation."""

    username = fields.String(required=True, validate=validate.Length(min=1, max=50))
    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class LoginSchema(Schema):
    """Input payload for authenticating a user."""

    username = fields.String(required=True, validate=validate.Length(min=1, max=50))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class AccessTokenSchema(Schema):
    """Response body of signup, login and refresh: ``{accessToken, expiresIn}``."""

    access_token = fields.String(required=True, data_key="accessToken")
    expires_in = fields.Integer(required=True, data_key="expiresIn")


class UserPublicSchema(Schema):
    """Response payload exposing the authenticated user."""

    id = fields.String(required=True)
    username = fields.String(required=True)
    email = fields.Email(required=True)
