"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, fields, validate


class RegisterSchema(Schema):
    """Input payload for account registration."""

    email = fields.Email(required=True, validate=validate.Length(min=1, max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class LoginSchema(Schema):
    """Input payload for authenticating a user.

    Email format is not checked here so that malformed and unknown emails get
    the same ``invalid_credentials`` answer.
    """

    email = fields.String(required=True, validate=validate.Length(min=1, max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class RefreshSchema(Schema):
    """Input payload for refresh; a missing token is reported by the service."""

    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(load_default=None, allow_none=True)


class LogoutSchema(Schema):
    """Input payload for logout; every field is optional."""

    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(load_default=None, allow_none=True)
    all_sessions = fields.Boolean(load_default=False)


class UserPublicSchema(Schema):
    email = fields.Email(required=True)


class SessionResponseSchema(Schema):
    """Response payload for login and registration."""

    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    token_type = fields.String(dump_default="bearer")
    user = fields.Nested(UserPublicSchema)


class RefreshResponseSchema(Schema):
    """Response payload for refresh; ``refresh_token`` only when rotated."""

    access_token = fields.String(required=True)
    refresh_token = fields.String(allow_none=True)
    token_type = fields.String(dump_default="bearer")
