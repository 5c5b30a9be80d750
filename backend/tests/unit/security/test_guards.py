from __future__ import annotations

import logging
from datetime import timedelta

import pytest
from flask import g, request
from tests.helpers.cookies import bearer, refresh_headers
from tokengate.core.errors import Unauthorized
from tokengate.security import get_token_codec
from tokengate.security.guards import (
    access_guard,
    bearer_token,
    current_identity,
    refresh_guard,
)
from tokengate.security.tokens import SecretClass


def _sign(app, secret_class: SecretClass, **kwargs) -> str:
    with app.app_context():
        return get_token_codec().sign("user-1", secret_class, **kwargs).token


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("Bearer abc", "abc"),
        ("bearer abc", "abc"),
        ("Bearer ", None),
        ("Basic abc", None),
        ("abc", None),
    ],
)
def test_bearer_token_extraction(app, header, expected):
    with app.test_request_context(headers={"Authorization": header}):
        assert bearer_token(request) == expected


def test_access_guard_attaches_payload(app):
    token = _sign(app, SecretClass.ACCESS, claims={"username": "alice"})
    with app.test_request_context(headers=bearer(token)):
        payload = access_guard.authenticate()

        assert payload["sub"] == "user-1"
        assert g.current_user == payload
        assert current_identity()["username"] == "alice"


def test_refresh_guard_attaches_raw_token(app):
    token = _sign(app, SecretClass.REFRESH)
    with app.test_request_context(headers=refresh_headers(token)):
        refresh_guard.authenticate()

        assert current_identity()["sub"] == "user-1"
        assert current_identity()["refresh_token"] == token


def test_refresh_guard_ignores_bearer_header(app):
    token = _sign(app, SecretClass.REFRESH)
    with app.test_request_context(headers=bearer(token)), pytest.raises(Unauthorized):
        refresh_guard.authenticate()


@pytest.mark.parametrize(
    ("guard", "secret_class", "headers_for"),
    [
        (access_guard, SecretClass.REFRESH, bearer),
        (refresh_guard, SecretClass.ACCESS, refresh_headers),
    ],
)
def test_guard_rejects_token_of_other_class(app, guard, secret_class, headers_for):
    token = _sign(app, secret_class)
    with app.test_request_context(headers=headers_for(token)), pytest.raises(Unauthorized):
        guard.authenticate()


def test_guard_rejects_expired_token(app):
    token = _sign(app, SecretClass.ACCESS, ttl=timedelta(seconds=-1))
    with app.test_request_context(headers=bearer(token)), pytest.raises(Unauthorized):
        access_guard.authenticate()


def test_guard_rejects_missing_token_and_logs_reason(app, caplog):
    caplog.set_level(logging.INFO, logger="tokengate.security.guards")
    with app.test_request_context(), pytest.raises(Unauthorized) as excinfo:
        access_guard.authenticate()

    assert excinfo.value.status_code == 401
    record = next(r for r in caplog.records if r.getMessage() == "auth.guard.rejected")
    assert record.guard == "access"
    assert record.reason == "missing"


def test_rejections_share_one_client_message(app):
    expired = _sign(app, SecretClass.ACCESS, ttl=timedelta(seconds=-1))
    messages = set()
    for headers in ({}, bearer("garbage"), bearer(expired)):
        with app.test_request_context(headers=headers), pytest.raises(Unauthorized) as excinfo:
            access_guard.authenticate()
        messages.add(excinfo.value.message)
    assert len(messages) == 1


def test_guard_as_decorator_blocks_view(app):
    calls = []

    @access_guard
    def view():
        calls.append(current_identity()["sub"])
        return "ok"

    with app.test_request_context(), pytest.raises(Unauthorized):
        view()
    assert calls == []

    token = _sign(app, SecretClass.ACCESS)
    with app.test_request_context(headers=bearer(token)):
        assert view() == "ok"
    assert calls == ["user-1"]
