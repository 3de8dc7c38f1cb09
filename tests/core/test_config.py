from __future__ import annotations

import pytest

from app.core.config import AppEnv, Settings, load_settings

# ---- valid values ----


def test_load_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("APP_ENV", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    settings = load_settings()
    assert settings.app_env == "dev"
    assert settings.log_level == "info"


def test_load_settings_respects_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.setenv("LOG_LEVEL", "error")
    settings = load_settings()
    assert settings.app_env == "prod"
    assert settings.log_level == "error"


def test_load_settings_normalizes_case(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "PROD")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    settings = load_settings()
    assert settings.app_env == "prod"
    assert settings.log_level == "debug"


def test_load_settings_strips_whitespace(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "  test  ")
    monkeypatch.setenv("LOG_LEVEL", "  warning  ")
    settings = load_settings()
    assert settings.app_env == "test"
    assert settings.log_level == "warning"


# ---- invalid APP_ENV ----


def test_load_settings_rejects_invalid_app_env(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("APP_ENV", "staging")
    monkeypatch.setenv("LOG_LEVEL", "info")
    with pytest.raises(ValueError, match="APP_ENV must be dev|test|prod"):
        load_settings()


def test_load_settings_rejects_empty_app_env(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("APP_ENV", "")
    with pytest.raises(ValueError, match="APP_ENV must be dev|test|prod"):
        load_settings()


# ---- invalid LOG_LEVEL ----


def test_load_settings_rejects_invalid_log_level(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("APP_ENV", "dev")
    monkeypatch.setenv("LOG_LEVEL", "verbose")
    with pytest.raises(ValueError, match="LOG_LEVEL must be debug|info|warning|error"):
        load_settings()


def test_load_settings_rejects_empty_log_level(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("LOG_LEVEL", "")
    with pytest.raises(ValueError, match="LOG_LEVEL must be debug|info|warning|error"):
        load_settings()


# ---- Settings properties ----


def _make_settings(app_env: AppEnv = "dev") -> Settings:
    return Settings(  # type: ignore[arg-type]
        app_env=app_env,
        log_level="info",
        log_json=False,
        port=8000,
        database_url=None,
        redis_url=None,
        score_unit="count",
        attempt_expiry_grace_ms=2000,
        quiz_cache_ttl_seconds=300,
        jwt_public_key=None,
    )


def test_settings_is_dev() -> None:
    s = _make_settings("dev")
    assert s.is_dev is True
    assert s.is_test is False
    assert s.is_prod is False


def test_settings_is_test() -> None:
    s = _make_settings("test")
    assert s.is_dev is False
    assert s.is_test is True
    assert s.is_prod is False


def test_settings_is_prod() -> None:
    s = _make_settings("prod")
    assert s.is_dev is False
    assert s.is_test is False
    assert s.is_prod is True


def test_settings_is_frozen() -> None:
    s = _make_settings()
    with pytest.raises(AttributeError):
        s.app_env = "prod"  # type: ignore[misc]


# ---- attempt engine settings ----


def test_attempt_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "SCORE_UNIT",
        "ATTEMPT_EXPIRY_GRACE_MS",
        "QUIZ_CACHE_TTL_SECONDS",
        "JWT_PUBLIC_KEY",
        "LOG_JSON",
    ):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.score_unit == "count"
    assert settings.attempt_expiry_grace_ms == 2000
    assert settings.quiz_cache_ttl_seconds == 300
    assert settings.jwt_public_key is None
    assert settings.log_json is False


def test_score_unit_percentage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCORE_UNIT", "Percentage")
    assert load_settings().score_unit == "percentage"


def test_rejects_unknown_score_unit(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCORE_UNIT", "points")
    with pytest.raises(ValueError, match="SCORE_UNIT must be count|percentage"):
        load_settings()


def test_rejects_non_integer_grace(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ATTEMPT_EXPIRY_GRACE_MS", "two seconds")
    with pytest.raises(ValueError, match="ATTEMPT_EXPIRY_GRACE_MS must be an integer"):
        load_settings()


def test_rejects_negative_grace(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ATTEMPT_EXPIRY_GRACE_MS", "-1")
    with pytest.raises(ValueError, match="ATTEMPT_EXPIRY_GRACE_MS must be >= 0"):
        load_settings()


def test_rejects_zero_cache_ttl(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("QUIZ_CACHE_TTL_SECONDS", "0")
    with pytest.raises(ValueError, match="QUIZ_CACHE_TTL_SECONDS must be >= 1"):
        load_settings()


def test_log_json_parsing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_JSON", "1")
    assert load_settings().log_json is True
    monkeypatch.setenv("LOG_JSON", "yes")
    with pytest.raises(ValueError, match="LOG_JSON must be true|false"):
        load_settings()


def test_jwt_public_key_unescapes_newlines(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JWT_PUBLIC_KEY", "-----BEGIN PUBLIC KEY-----\\nabc\\n-----END PUBLIC KEY-----")
    key = load_settings().jwt_public_key
    assert key is not None
    assert key.splitlines() == ["-----BEGIN PUBLIC KEY-----", "abc", "-----END PUBLIC KEY-----"]
