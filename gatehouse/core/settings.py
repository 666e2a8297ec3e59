from __future__ import annotations

import os
from dataclasses import dataclass, field

from sqlalchemy.engine import URL


def _env_bool(key: str, default: str = "1") -> bool:
    return os.getenv(key, default).strip().lower() not in ("0", "false", "no", "off")


def _env_int(key: str, default: str) -> int:
    raw = os.getenv(key, default)
    try:
        return int(str(raw).strip())
    except Exception:
        return int(default)


def _env_str(key: str, default: str = "") -> str:
    return os.getenv(key, default).strip()


def _default_database_url() -> str:
    """DATABASE_URL wins; otherwise compose a PostgreSQL URL from the libpq-style PG* vars."""
    explicit = _env_str("DATABASE_URL")
    if explicit:
        return explicit

    host = _env_str("PGHOST")
    if not host:
        return "sqlite:///./gatehouse.db"

    query = {}
    sslmode = _env_str("PGSSLMODE")
    if sslmode:
        query["sslmode"] = sslmode

    url = URL.create(
        "postgresql+psycopg",
        username=_env_str("PGUSER") or None,
        password=os.getenv("PGPASSWORD") or None,
        host=host,
        port=_env_int("PGPORT", "5432"),
        database=_env_str("PGDATABASE") or None,
        query=query,
    )
    return url.render_as_string(hide_password=False)


@dataclass(frozen=True, slots=True)
class Settings:
    env: str = field(default_factory=lambda: _env_str("APP_ENV", "prod"))

    # Server
    host: str = field(default_factory=lambda: _env_str("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _env_int("PORT", "3000"))
    log_level: str = field(default_factory=lambda: _env_str("LOG_LEVEL", "INFO").upper())

    # Database
    database_url: str = field(default_factory=_default_database_url)
    db_echo: bool = field(default_factory=lambda: _env_bool("DB_ECHO", "0"))
    # NOTE: In production, use Alembic migrations (alembic upgrade head). AUTO_CREATE_DB is a dev/test escape hatch.
    auto_create_db: bool = field(default_factory=lambda: _env_bool("AUTO_CREATE_DB", "0"))

    # Sessions
    secret_key: str = field(default_factory=lambda: _env_str("SECRET_KEY"))
    session_cookie_name: str = field(default_factory=lambda: _env_str("SESSION_COOKIE_NAME", "gatehouse_session"))
    # 0 disables expiry (sessions live until logout)
    session_ttl_s: int = field(default_factory=lambda: _env_int("SESSION_TTL_S", str(60 * 60 * 8)))
    cookie_secure: bool = field(default_factory=lambda: _env_bool("COOKIE_SECURE", "0"))

    # Password hashing (argon2id)
    password_time_cost: int = field(default_factory=lambda: _env_int("PASSWORD_TIME_COST", "3"))
    password_memory_cost: int = field(default_factory=lambda: _env_int("PASSWORD_MEMORY_COST", "65536"))
    password_parallelism: int = field(default_factory=lambda: _env_int("PASSWORD_PARALLELISM", "4"))

    # Request limits / hardening
    max_request_size_bytes: int = field(default_factory=lambda: _env_int("MAX_REQUEST_SIZE_BYTES", str(64 * 1024)))

    # Background scheduler (expired session purge)
    enable_scheduler: bool = field(default_factory=lambda: _env_bool("ENABLE_SCHEDULER", "1"))
    session_purge_interval_s: int = field(default_factory=lambda: _env_int("SESSION_PURGE_INTERVAL_S", "3600"))
