"""Database module."""

from app.db.database import SessionLocal, engine, get_db, init_db
from app.db.models import Base, ImportSession, ProxyHost, ProxyHostDomain

__all__ = [
    "SessionLocal",
    "engine",
    "get_db",
    "init_db",
    "Base",
    "ImportSession",
    "ProxyHost",
    "ProxyHostDomain",
]
