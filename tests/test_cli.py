"""Tests for the main.py command line (create-user; serve is not started)."""

import pytest

import main
from auth.store import UserStore
from conftest import make_settings


@pytest.fixture
def db_url(tmp_path, monkeypatch) -> str:
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setattr(main, "get_settings", lambda: make_settings(database_url=url))
    return url


def test_create_user(db_url, capsys):
    assert main.main(["create-user", "--username", "admin", "--password", "long-enough-pw"]) == 0
    assert "Created user 'admin'" in capsys.readouterr().out
    store = UserStore(db_url)
    try:
        assert store.find_one_by_user_name_and_password("admin", "long-enough-pw") is not None
    finally:
        store.close()


def test_create_user_duplicate(db_url, capsys):
    main.main(["create-user", "--username", "admin", "--password", "long-enough-pw"])
    assert main.main(["create-user", "--username", "admin", "--password", "other-password"]) == 1
    assert "already exists" in capsys.readouterr().out


def test_create_user_short_password(db_url, capsys):
    assert main.main(["create-user", "--username", "admin", "--password", "short"]) == 1
    assert "at least 8 characters" in capsys.readouterr().out


def test_create_user_prompts_for_password(db_url, monkeypatch):
    answers = iter(["prompted-password", "prompted-password"])
    monkeypatch.setattr(main.getpass, "getpass", lambda prompt="": next(answers))
    assert main.main(["create-user", "--username", "ops"]) == 0


def test_create_user_prompt_mismatch(db_url, monkeypatch, capsys):
    answers = iter(["prompted-password", "something-else"])
    monkeypatch.setattr(main.getpass, "getpass", lambda prompt="": next(answers))
    assert main.main(["create-user", "--username", "ops"]) == 1
    assert "do not match" in capsys.readouterr().out


def test_disable_and_enable_user(db_url, capsys):
    main.main(["create-user", "--username", "admin", "--password", "long-enough-pw"])

    assert main.main(["disable-user", "--username", "admin"]) == 0
    assert "User 'admin' disabled" in capsys.readouterr().out
    store = UserStore(db_url)
    try:
        assert store.find_one_by_user_name_and_password("admin", "long-enough-pw") is None
    finally:
        store.close()

    assert main.main(["enable-user", "--username", "admin"]) == 0
    store = UserStore(db_url)
    try:
        assert store.find_one_by_user_name_and_password("admin", "long-enough-pw") is not None
    finally:
        store.close()


def test_disable_unknown_user(db_url, capsys):
    assert main.main(["disable-user", "--username", "ghost"]) == 1
    assert "not found" in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    assert main.main([]) == 0
    assert "create-user" in capsys.readouterr().out
