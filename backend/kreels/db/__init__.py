from kreels.db.base import Base
from kreels.db.session import build_engine, build_session_factory, get_db
from kreels.db.tables import ALL_TABLE_NAMES

__all__ = [
    "Base",
    "build_engine",
    "build_session_factory",
    "get_db",
    "ALL_TABLE_NAMES",
]
