from __future__ import annotations

from pathlib import Path
import sys

# Ensure repo root is importable
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))


import pytest
from fastapi.testclient import TestClient

from gatehouse.api.app import create_app
from gatehouse.core.settings import Settings
from gatehouse.db.session import create_engine_and_sessionmaker
from gatehouse.services.credential_store import CredentialStore
from gatehouse.services.password_hasher import PasswordHasher


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    db_path = tmp_path / "test.db"
    return Settings(
        env="test",
        database_url=f"sqlite:///{db_path}",
        auto_create_db=True,
        secret_key="test_secret_key",
        session_ttl_s=3600,
        # Minimum argon2 cost keeps the suite fast.
        password_time_cost=1,
        password_memory_cost=8,
        password_parallelism=1,
        enable_scheduler=False,
    )


@pytest.fixture()
def db_runtime(settings: Settings):
    rt = create_engine_and_sessionmaker(settings.database_url)
    rt.create_schema()
    try:
        yield rt
    finally:
        rt.dispose()


@pytest.fixture()
def db(db_runtime):
    with db_runtime.SessionLocal() as session:
        yield session


@pytest.fixture()
def hasher() -> PasswordHasher:
    return PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture()
def store() -> CredentialStore:
    return CredentialStore()


@pytest.fixture()
def client(settings: Settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c
