"""Tests for main.py -- tenant provisioning and admin flag commands."""

import pytest

from auth.store import Storage
from core.config import get_settings
from main import main


@pytest.fixture
def db_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setenv("STORAGE_URL", url)
    get_settings.cache_clear()
    yield url
    get_settings.cache_clear()


def test_add_app_provisions_tenant(db_url, capsys):
    assert main(["add-app", "--name", "billing", "--secret", "billing-secret", "--id", "7"]) == 0
    assert "id 7" in capsys.readouterr().out
    storage = Storage(db_url)
    try:
        app = storage.app(7)
        assert app.name == "billing"
        assert app.secret == "billing-secret"
    finally:
        storage.close()


def test_add_app_duplicate_name_fails(db_url, capsys):
    assert main(["add-app", "--name", "billing", "--secret", "one"]) == 0
    assert main(["add-app", "--name", "billing", "--secret", "two"]) == 1
    assert "Could not add app" in capsys.readouterr().err


def test_set_admin_grants_and_revokes(db_url):
    storage = Storage(db_url)
    try:
        uid = storage.save_user("ops@example.com", b"$2b$04$placeholderhashplaceholderhashplaceholderhash")
        assert main(["set-admin", "--user-id", str(uid)]) == 0
        assert storage.is_admin(uid) is True
        assert main(["set-admin", "--user-id", str(uid), "--revoke"]) == 0
        assert storage.is_admin(uid) is False
    finally:
        storage.close()


def test_set_admin_unknown_user(db_url, capsys):
    assert main(["set-admin", "--user-id", "999"]) == 1
    assert "No user with id 999" in capsys.readouterr().err


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "usage" in capsys.readouterr().out.lower()
