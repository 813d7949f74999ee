from app.db.base import Base
from app.db.session import SessionLocal, get_db, get_engine, get_sessionmaker
from app.db.tables import ALL_TABLE_NAMES

__all__ = [
    "get_db",
    "get_engine",
    "get_sessionmaker",
    "SessionLocal",
    "Base",
    "ALL_TABLE_NAMES",
]
