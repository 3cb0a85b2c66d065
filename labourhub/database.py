# labourhub/database.py
from __future__ import annotations
from sqlalchemy import Engine, create_engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .config import settings


class Base(DeclarativeBase):
    pass


def make_engine(url: str) -> Engine:
    """Engine for ``url``; SQLite connections are shared with FastAPI's threadpool."""
    connect_args = {}
    if make_url(url).get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


def make_sessionmaker(bind: Engine) -> sessionmaker[Session]:
    # manual flushes: the managers flush where they need generated ids
    return sessionmaker(bind=bind, autoflush=False)


engine = make_engine(settings.DATABASE_URL)
SessionLocal = make_sessionmaker(engine)


def get_db():
    """One session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
