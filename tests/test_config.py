"""Unit tests for core/ -- Settings validation, logging setup and deadlines."""

import logging
import time

import pytest
from pydantic import ValidationError

from core.config import Settings, get_settings
from core.deadline import Deadline, DeadlineExceededError
from core.log import RequestContextFilter, level_for_env, request_id_var


class TestSettings:
    def test_defaults(self, monkeypatch):
        for var in ("ENV", "TOKEN_TTL_SECONDS", "BCRYPT_ROUNDS", "REQUEST_TIMEOUT_SECONDS"):
            monkeypatch.delenv(var, raising=False)
        s = Settings(_env_file=None)
        assert s.env == "local"
        assert s.token_ttl_seconds == 3600
        assert s.bcrypt_rounds == 12
        assert s.request_timeout_seconds > 0

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("TOKEN_TTL_SECONDS", "900")
        monkeypatch.setenv("BCRYPT_ROUNDS", "10")
        s = Settings(_env_file=None)
        assert s.token_ttl_seconds == 900
        assert s.bcrypt_rounds == 10

    def test_env_is_normalized(self):
        assert Settings(_env_file=None, env=" PROD ").env == "prod"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"env": "staging"},
            {"token_ttl_seconds": 0},
            {"request_timeout_seconds": 0},
            {"bcrypt_rounds": 3},
            {"bcrypt_rounds": 32},
        ],
    )
    def test_invalid_settings_rejected(self, overrides):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **overrides)

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()


class TestLogging:
    def test_level_for_env(self):
        assert level_for_env("prod") == logging.INFO
        assert level_for_env("local") == logging.DEBUG
        assert level_for_env("dev") == logging.DEBUG
        assert level_for_env("prod", "warning") == logging.WARNING

    def test_level_override_must_be_known(self):
        with pytest.raises(ValueError):
            level_for_env("prod", "chatty")

    def test_filter_fills_defaults(self):
        record = logging.LogRecord("sso.test", logging.INFO, __file__, 1, "hello", None, None)
        assert RequestContextFilter().filter(record) is True
        assert record.request_id == "-"
        assert record.op == "-"

    def test_filter_uses_bound_request_id(self):
        token = request_id_var.set("req-42")
        try:
            record = logging.LogRecord("sso.test", logging.INFO, __file__, 1, "hello", None, None)
            RequestContextFilter().filter(record)
            assert record.request_id == "req-42"
        finally:
            request_id_var.reset(token)


class TestDeadline:
    def test_never_does_not_expire(self):
        d = Deadline.never()
        assert not d.expired()
        d.check("op")

    def test_past_deadline_raises(self):
        d = Deadline.after(-1)
        assert d.expired()
        assert d.remaining() == 0.0
        with pytest.raises(DeadlineExceededError) as excinfo:
            d.check("auth.Login")
        assert excinfo.value.op == "auth.Login"

    def test_short_deadline_expires(self):
        d = Deadline.after(0.05)
        assert not d.expired()
        time.sleep(0.1)
        assert d.expired()
