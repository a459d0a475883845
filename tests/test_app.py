"""Tests for settings validation and application-level error handling."""

import pytest
from fastapi.testclient import TestClient

from api import create_app
from hirelocal.config import Settings


def make_settings(**overrides):
    values = dict(
        _env_file=None,
        ACCESS_TOKEN_SECRET="a" * 40,
        REFRESH_TOKEN_SECRET="b" * 40,
    )
    values.update(overrides)
    return Settings(**values)


# ─────────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────────


def test_valid_settings_pass():
    make_settings().validate_required()


def test_equal_secrets_rejected():
    with pytest.raises(ValueError, match="must differ"):
        make_settings(REFRESH_TOKEN_SECRET="a" * 40).validate_required()


def test_missing_secret_rejected():
    with pytest.raises(ValueError, match="REFRESH_TOKEN_SECRET is required"):
        make_settings(REFRESH_TOKEN_SECRET=None).validate_required()


def test_short_secret_only_warns(caplog):
    make_settings(ACCESS_TOKEN_SECRET="short-a", REFRESH_TOKEN_SECRET="short-b").validate_required()

    assert "ACCESS_TOKEN_SECRET should be at least 32 characters long" in caplog.text


def test_fixed_otp_in_production_warns(caplog):
    make_settings(ENVIRONMENT="production", OTP_MODE="fixed").validate_required()

    assert "OTP_MODE=fixed" in caplog.text


def test_cookie_policy_by_environment():
    dev = make_settings(ENVIRONMENT="development")
    prod = make_settings(ENVIRONMENT="production")

    assert (dev.refresh_cookie_secure(), dev.refresh_cookie_samesite()) == (False, "lax")
    assert (prod.refresh_cookie_secure(), prod.refresh_cookie_samesite()) == (True, "none")
    assert dev.refresh_cookie_max_age() == 30 * 24 * 3600


# ─────────────────────────────────────────────────────────────────
# Error rendering
# ─────────────────────────────────────────────────────────────────


def build_failing_app(environment):
    app = create_app(make_settings(ENVIRONMENT=environment))

    @app.get("/boom")
    async def boom():
        raise RuntimeError("storage exploded")

    return TestClient(app, raise_server_exceptions=False)


def test_unhandled_error_hides_details_outside_development():
    response = build_failing_app("production").get("/boom")

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "INTERNAL_ERROR"
    assert "details" not in body["error"]


def test_unhandled_error_shows_details_in_development():
    response = build_failing_app("development").get("/boom")

    assert response.status_code == 500
    assert response.json()["error"]["details"] == "storage exploded"


def test_unknown_route_uses_error_shape(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_docs_disabled_in_production():
    app = create_app(make_settings(ENVIRONMENT="production"))

    assert TestClient(app).get("/docs").status_code == 404
