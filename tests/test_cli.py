from __future__ import annotations

import pytest

from conftest import PASSWORD


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


def test_init_db(runner) -> None:
    result = runner.invoke(args=["init-db"])
    assert result.exit_code == 0, result.output
    assert "created" in result.output


def test_seed_admin_requires_environment(runner, monkeypatch) -> None:
    monkeypatch.delenv("FIRST_ADMIN_EMAIL", raising=False)
    monkeypatch.delenv("FIRST_ADMIN_PASSWORD", raising=False)
    result = runner.invoke(args=["seed-admin"])
    assert result.exit_code != 0
    assert "FIRST_ADMIN_EMAIL" in result.output


def test_seed_admin_rejects_weak_password(runner, monkeypatch) -> None:
    monkeypatch.setenv("FIRST_ADMIN_EMAIL", "root@x.com")
    monkeypatch.setenv("FIRST_ADMIN_PASSWORD", "weak")
    result = runner.invoke(args=["seed-admin"])
    assert result.exit_code != 0


def test_seed_admin_creates_once(runner, client, monkeypatch) -> None:
    monkeypatch.setenv("FIRST_ADMIN_EMAIL", "Root@X.com")
    monkeypatch.setenv("FIRST_ADMIN_PASSWORD", PASSWORD)

    result = runner.invoke(args=["seed-admin"])
    assert result.exit_code == 0, result.output
    assert "root@x.com created" in result.output

    result = runner.invoke(args=["seed-admin"])
    assert result.exit_code == 0, result.output
    assert "already exists" in result.output

    r = client.post("/api/v1/auth/login", json={"email": "root@x.com", "password": PASSWORD})
    assert r.status_code == 200, r.text
    assert r.get_json()["data"]["role"] == "admin"


def test_purge_sessions(runner, client) -> None:
    client.post("/api/v1/auth/register", json={"name": "Ann", "email": "a@x.com", "password": PASSWORD})
    client.post("/api/v1/auth/login", json={"email": "a@x.com", "password": PASSWORD})

    result = runner.invoke(args=["purge-sessions"])
    assert result.exit_code == 0, result.output
    assert "Purged 0" in result.output
