"""Authentication lifecycle service (signup / login / refresh / logout)."""

from __future__ import annotations

import logging

from marshmallow import ValidationError as MarshmallowValidationError
from marshmallow.validate import Email
from sqlalchemy.exc import IntegrityError

from tokengate.repositories.user import UserRepository
from tokengate.security.hasher import CredentialHasher
from tokengate.security.tokens import SecretClass, TokenCodec
from tokengate.services._shared.base import BaseService
from tokengate.services._shared.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    violates,
)
from tokengate.services.auth.dto import (
    IssuedTokens,
    LoginIn,
    LogoutIn,
    RefreshIn,
    SignupIn,
    UserPublicOut,
)

log = logging.getLogger(__name__)

_email_format = Email()


class AuthService(BaseService):
    """
    Authentication lifecycle service.

    Each user row holds the hash of the one refresh token currently valid for
    that user. Login and signup overwrite it, refresh swaps it for a new one,
    logout clears it. A refresh token that no longer matches the stored hash
    is dead even if its signature and expiry are fine.
    """

    def __init__(
        self,
        *,
        codec: TokenCodec,
        hasher: CredentialHasher,
    ) -> None:
        """
        :param codec: Signs and verifies access/refresh tokens.
        :param hasher: Hashes passwords and refresh tokens.
        """
        super().__init__()
        self.codec = codec
        self.hasher = hasher

    # ------------------------------------------------------------------ #
    # Signup
    # ------------------------------------------------------------------ #

    def signup(self, dto: SignupIn) -> IssuedTokens:
        """
        Create a user and issue its first token pair.

        :param dto: Signup input.
        :returns: Token pair, as a successful login would return.
        :raises ValidationError: Empty username/password or malformed email.
        :raises ConflictError: Username or email already registered.
        """
        username = (dto.username or "").strip()
        email = (dto.email or "").strip().lower()
        self._validate_signup(username, email, dto.password)

        try:
            with self.rw_uow() as uow:
                users: UserRepository = uow.users
                if users.exists_by_username(username):
                    raise ConflictError("User", "username already taken")
                if users.exists_by_email(email):
                    raise ConflictError("User", "email already in use")

                user = users.add(
                    users.model(
                        username=username,
                        email=email,
                        password_hash=self.hasher.hash(dto.password),
                        refresh_token_hash=None,
                    )
                )
                user_id = user.id
                issued = self._issue(users, user_id=user_id, username=username)
        except IntegrityError as exc:
            # Concurrent signup won the unique constraint between check and insert
            if violates(exc, "uq_users_username"):
                raise ConflictError("User", "username already taken") from exc
            if violates(exc, "uq_users_email"):
                raise ConflictError("User", "email already in use") from exc
            raise

        log.info("auth.signup", extra={"user_id": user_id})
        return issued

    @staticmethod
    def _validate_signup(username: str, email: str, password: str) -> None:
        errors: dict[str, list[str]] = {}
        if not username:
            errors["username"] = ["Username is required."]
        try:
            _email_format(email)
        except MarshmallowValidationError as exc:
            errors["email"] = list(exc.messages)
        if not isinstance(password, str) or not password:
            errors["password"] = ["Password is required."]
        if errors:
            raise ValidationError(errors)

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> IssuedTokens:
        """
        Authenticate credentials and issue a fresh token pair.

        Any previous refresh token of the user stops working.

        :param dto: Login input.
        :returns: Token pair.
        :raises AuthenticationError: Unknown username or wrong password
            (indistinguishable to the caller).
        """
        with self.rw_uow() as uow:
            users: UserRepository = uow.users
            user = users.get_by_username(dto.username)

            # Verify against a dummy digest when the user is unknown so both
            # failure paths cost one hash verification.
            digest = user.password_hash if user is not None else self.hasher.dummy_digest
            password_ok = self.hasher.verify(dto.password, digest)
            if user is None:
                raise self._rejected("login", "unknown_user")
            if not password_ok:
                raise self._rejected("login", "bad_password", user_id=user.id)

            user_id = user.id
            issued = self._issue(users, user_id=user_id, username=user.username)

        log.info("auth.login", extra={"user_id": user_id})
        return issued

    # ------------------------------------------------------------------ #
    # Refresh with rotation
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> IssuedTokens:
        """
        Rotate the refresh token and emit a new token pair.

        The caller has already verified the token signature and expiry; this
        step checks it is the user's current refresh token and replaces it.

        :param dto: Identity and raw token from the refresh guard.
        :returns: New token pair.
        :raises AuthenticationError: User gone, session revoked, token
            superseded, or a concurrent refresh rotated first.
        """
        with self.rw_uow() as uow:
            users: UserRepository = uow.users
            user = users.get(dto.user_id)
            if user is None:
                raise self._rejected("refresh", "unknown_user", user_id=dto.user_id)

            stored = user.refresh_token_hash
            if stored is None:
                raise self._rejected("refresh", "no_session", user_id=user.id)
            if not self.hasher.verify(dto.refresh_token, stored):
                raise self._rejected("refresh", "token_mismatch", user_id=user.id)

            user_id = user.id
            issued = self._issue(users, user_id=user_id, username=user.username, expected=stored)

        log.info("auth.refresh", extra={"user_id": user_id})
        return issued

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> None:
        """
        Revoke the user's refresh session. Idempotent.

        Access tokens already issued stay valid until they expire.
        """
        with self.rw_uow() as uow:
            uow.users.set_refresh_hash(dto.user_id, None)
        log.info("auth.logout", extra={"user_id": dto.user_id})

    def revoke_sessions(self, username: str) -> bool:
        """
        Revoke the refresh session of ``username`` (operator action).

        :returns: ``False`` when no such user exists.
        """
        with self.rw_uow() as uow:
            user = uow.users.get_by_username(username)
            if user is None:
                return False
            user_id = user.id
            uow.users.set_refresh_hash(user_id, None)
        log.info("auth.revoke", extra={"user_id": user_id})
        return True

    # ------------------------------------------------------------------ #
    # Identity
    # ------------------------------------------------------------------ #

    def whoami(self, user_id: str) -> UserPublicOut:
        """
        Return the public view of the authenticated user.

        :raises NotFoundError: If the user no longer exists.
        """
        with self.ro_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return UserPublicOut(id=user.id, username=user.username, email=user.email)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _issue(
        self,
        users: UserRepository,
        *,
        user_id: str,
        username: str,
        expected: str | None = None,
    ) -> IssuedTokens:
        """
        Sign a new pair and store the hash of the refresh token.

        Runs inside the caller's unit of work: if the write fails the
        transaction rolls back and the signed tokens are never returned.

        :param expected: Hash the caller verified against. When given, the
            write is a compare-and-swap and losing it is an authentication
            failure.
        """
        claims = {"username": username}
        access = self.codec.sign(user_id, SecretClass.ACCESS, claims=claims)
        refresh = self.codec.sign(user_id, SecretClass.REFRESH, claims=claims)
        digest = self.hasher.hash(refresh.token)

        if expected is None:
            users.set_refresh_hash(user_id, digest)
        elif not users.swap_refresh_hash(user_id, digest, expected=expected):
            raise self._rejected("refresh", "rotation_race", user_id=user_id)

        return IssuedTokens(
            access_token=access.token,
            expires_in=access.expires_in,
            refresh_token=refresh.token,
            refresh_expires_at=refresh.expires_at,
        )

    @staticmethod
    def _rejected(flow: str, reason: str, *, user_id: str | None = None) -> AuthenticationError:
        exc = AuthenticationError(reason)
        log.info(f"auth.{flow}.rejected", extra={**exc.as_log_extra(), "user_id": user_id})
        return exc
