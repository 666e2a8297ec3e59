"""Database package.

SQLAlchemy models + engine/session management. Schema changes go through Alembic.
"""

from .base import Base
from .session import DBRuntime, create_engine_and_sessionmaker

__all__ = ["Base", "DBRuntime", "create_engine_and_sessionmaker"]
