from __future__ import annotations

import dataclasses
from pathlib import Path

from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, inspect

from gatehouse.api.app import create_app
from gatehouse.core.settings import Settings

REPO_ROOT = Path(__file__).resolve().parents[1]


def test_upgrade_head_creates_schema_the_app_accepts(settings: Settings, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", settings.database_url)
    cfg = Config(str(REPO_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(REPO_ROOT / "alembic"))
    command.upgrade(cfg, "head")

    engine = create_engine(settings.database_url)
    try:
        insp = inspect(engine)
        assert {"users", "sessions", "audit_logs"} <= set(insp.get_table_names())
        assert {c["name"] for c in insp.get_columns("users")} == {"id", "username", "password"}
    finally:
        engine.dispose()

    app = create_app(dataclasses.replace(settings, auto_create_db=False))
    with TestClient(app) as c:
        r = c.post(
            "/register",
            data={"username": "alice", "password": "secret1", "confirmPassword": "secret1"},
            follow_redirects=False,
        )
        assert r.headers["location"] == "/login"
