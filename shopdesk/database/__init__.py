from shopdesk.database.base import Base
from shopdesk.database.engine import create_db_engine, ensure_sqlite_schema, is_sqlite_url
from shopdesk.database.session import build_session_factory
from shopdesk.database.types import Money, UtcDateTime

__all__ = [
    "Base",
    "Money",
    "UtcDateTime",
    "build_session_factory",
    "create_db_engine",
    "ensure_sqlite_schema",
    "is_sqlite_url",
]
