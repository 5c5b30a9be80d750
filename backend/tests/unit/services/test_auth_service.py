from __future__ import annotations

import logging
from datetime import timedelta

import pytest
from tests.factories.user import DEFAULT_PASSWORD, UserFactory
from tokengate.models.user import User
from tokengate.repositories.user import UserRepository
from tokengate.security import get_hasher, get_token_codec
from tokengate.security.tokens import SecretClass, TokenCodec, TokenConfig
from tokengate.services._shared.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from tokengate.services.auth.dto import (
    IssuedTokens,
    LoginIn,
    LogoutIn,
    RefreshIn,
    SignupIn,
    UserPublicOut,
)
from tokengate.services.auth.service import AuthService


# ------------------------------ Fixtures ---------------------------------- #
@pytest.fixture()
def service(db) -> AuthService:
    """AuthService wired to the application's codec and hasher."""
    return AuthService(codec=get_token_codec(), hasher=get_hasher())


def _stored_hash(session, user_id: str) -> str | None:
    session.expire_all()
    return session.get(User, user_id).refresh_token_hash


def _refresh(service: AuthService, issued: IssuedTokens) -> IssuedTokens:
    payload = service.codec.verify(issued.refresh_token, SecretClass.REFRESH)
    return service.refresh(RefreshIn(user_id=payload["sub"], refresh_token=issued.refresh_token))


# -------------------------------- Signup ---------------------------------- #
def test_signup_creates_user_and_issues_pair(service, session):
    issued = service.signup(SignupIn(username="alice", email="Alice@Example.com", password="pw"))

    user = session.query(User).filter_by(username="alice").one()
    assert user.email == "alice@example.com"
    assert user.password_hash != "pw"
    assert service.hasher.verify("pw", user.password_hash)
    assert service.hasher.verify(issued.refresh_token, user.refresh_token_hash)
    assert issued.expires_in == 15 * 60

    access = service.codec.verify(issued.access_token, SecretClass.ACCESS)
    assert access["sub"] == user.id
    assert access["username"] == "alice"


def test_signup_then_login_with_generated_profile(service, faker):
    username, email, password = faker.user_name(), faker.email(), faker.password()

    service.signup(SignupIn(username=username, email=email, password=password))
    issued = service.login(LoginIn(username=username, password=password))

    assert service.codec.verify(issued.access_token, SecretClass.ACCESS)["username"] == username


def test_issued_lifetimes_follow_codec_config(db):
    codec = TokenCodec(
        TokenConfig(
            access_secret="a-secret",
            access_ttl=timedelta(minutes=5),
            refresh_secret="r-secret",
            refresh_ttl=timedelta(days=1),
        )
    )
    service = AuthService(codec=codec, hasher=get_hasher())

    issued = service.signup(SignupIn(username="alice", email="alice@example.com", password="pw"))

    assert issued.expires_in == 5 * 60
    payload = codec.verify(issued.refresh_token, SecretClass.REFRESH)
    assert payload["exp"] - payload["iat"] == 24 * 3600


def test_signup_rejects_taken_username(service):
    UserFactory(username="alice")
    with pytest.raises(ConflictError):
        service.signup(SignupIn(username="alice", email="other@example.com", password="pw"))


def test_signup_rejects_taken_email(service):
    UserFactory(email="alice@example.com")
    with pytest.raises(ConflictError):
        service.signup(SignupIn(username="other", email="ALICE@example.com", password="pw"))


@pytest.mark.parametrize(
    ("payload", "field"),
    [
        ({"username": "", "email": "a@example.com", "password": "pw"}, "username"),
        ({"username": "   ", "email": "a@example.com", "password": "pw"}, "username"),
        ({"username": "a", "email": "not-an-email", "password": "pw"}, "email"),
        ({"username": "a", "email": "a b@example.com", "password": "pw"}, "email"),
        ({"username": "a", "email": "a@example", "password": "pw"}, "email"),
        ({"username": "a", "email": "a@example.com", "password": ""}, "password"),
    ],
)
def test_signup_validates_input(service, session, payload, field):
    with pytest.raises(ValidationError) as excinfo:
        service.signup(SignupIn(**payload))
    assert field in excinfo.value.errors
    assert session.query(User).count() == 0


# -------------------------------- Login ----------------------------------- #
def test_login_issues_pair_and_stores_refresh_hash(service, session):
    user = UserFactory(username="alice")

    issued = service.login(LoginIn(username="alice", password=DEFAULT_PASSWORD))

    assert service.codec.verify(issued.access_token, SecretClass.ACCESS)["sub"] == user.id
    assert service.hasher.verify(issued.refresh_token, _stored_hash(session, user.id))


@pytest.mark.parametrize(
    ("username", "password", "reason"),
    [("ghost", DEFAULT_PASSWORD, "unknown_user"), ("alice", "wrong", "bad_password")],
)
def test_login_failures_are_authentication_errors(service, caplog, username, password, reason):
    UserFactory(username="alice")
    caplog.set_level(logging.INFO, logger="tokengate.services.auth.service")

    with pytest.raises(AuthenticationError) as excinfo:
        service.login(LoginIn(username=username, password=password))

    assert excinfo.value.reason == reason
    assert any(r.getMessage() == "auth.login.rejected" for r in caplog.records)


def test_login_does_not_touch_stored_hash_on_failure(service, session):
    user = UserFactory(refresh_token_hash="kept")
    with pytest.raises(AuthenticationError):
        service.login(LoginIn(username=user.username, password="wrong"))
    assert _stored_hash(session, user.id) == "kept"


def test_login_supersedes_previous_refresh_token(service):
    user = UserFactory()
    first = service.login(LoginIn(username=user.username, password=DEFAULT_PASSWORD))
    service.login(LoginIn(username=user.username, password=DEFAULT_PASSWORD))

    with pytest.raises(AuthenticationError) as excinfo:
        _refresh(service, first)
    assert excinfo.value.reason == "token_mismatch"


# ------------------------------- Refresh ---------------------------------- #
def test_refresh_rotates_and_blocks_reuse(service, session):
    user = UserFactory()
    first = service.login(LoginIn(username=user.username, password=DEFAULT_PASSWORD))

    second = _refresh(service, first)
    assert second.refresh_token != first.refresh_token
    assert service.hasher.verify(second.refresh_token, _stored_hash(session, user.id))

    with pytest.raises(AuthenticationError) as excinfo:
        _refresh(service, first)
    assert excinfo.value.reason == "token_mismatch"

    # The current token still works after the failed reuse
    third = _refresh(service, second)
    assert third.refresh_token != second.refresh_token


def test_refresh_after_logout_fails(service):
    user = UserFactory()
    issued = service.login(LoginIn(username=user.username, password=DEFAULT_PASSWORD))
    service.logout(LogoutIn(user_id=user.id))

    with pytest.raises(AuthenticationError) as excinfo:
        _refresh(service, issued)
    assert excinfo.value.reason == "no_session"


def test_refresh_for_deleted_user_fails(service, session):
    user = UserFactory()
    issued = service.login(LoginIn(username=user.username, password=DEFAULT_PASSWORD))
    session.delete(user)
    session.commit()

    with pytest.raises(AuthenticationError) as excinfo:
        _refresh(service, issued)
    assert excinfo.value.reason == "unknown_user"


def test_refresh_loses_race_when_hash_changes_after_verification(service, session, monkeypatch):
    """A concurrent rotation between read and write makes this one fail, atomically."""
    user = UserFactory()
    issued = service.login(LoginIn(username=user.username, password=DEFAULT_PASSWORD))
    stored = _stored_hash(session, user.id)

    original_verify = service.hasher.verify

    def verify_then_rotate_elsewhere(plaintext, digest):
        ok = original_verify(plaintext, digest)
        UserRepository(session=session).set_refresh_hash(user.id, "rotated-elsewhere")
        return ok

    monkeypatch.setattr(service.hasher, "verify", verify_then_rotate_elsewhere)
    with pytest.raises(AuthenticationError) as excinfo:
        _refresh(service, issued)
    monkeypatch.undo()

    assert excinfo.value.reason == "rotation_race"
    # Whole flow rolled back, including the competing write done on this session
    assert _stored_hash(session, user.id) == stored


# -------------------------------- Logout ---------------------------------- #
def test_logout_clears_hash_and_is_idempotent(service, session):
    user = UserFactory()
    service.login(LoginIn(username=user.username, password=DEFAULT_PASSWORD))

    service.logout(LogoutIn(user_id=user.id))
    assert _stored_hash(session, user.id) is None

    service.logout(LogoutIn(user_id=user.id))
    assert _stored_hash(session, user.id) is None


def test_revoke_sessions(service, session):
    user = UserFactory(refresh_token_hash="h1")

    assert service.revoke_sessions(user.username) is True
    assert _stored_hash(session, user.id) is None
    assert service.revoke_sessions("ghost") is False


# ------------------------------- Identity --------------------------------- #
def test_whoami_returns_public_view(service):
    user = UserFactory(username="alice", email="alice@example.com")

    out = service.whoami(user.id)

    assert out == UserPublicOut(id=user.id, username="alice", email="alice@example.com")
    assert not hasattr(out, "password_hash")


def test_whoami_unknown_user(service):
    with pytest.raises(NotFoundError):
        service.whoami("missing")
