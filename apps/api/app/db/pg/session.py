from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import get_settings

settings = get_settings()


def _sqlalchemy_dsn(dsn: str) -> str:
    if dsn.startswith("postgresql://"):
        return dsn.replace("postgresql://", "postgresql+psycopg://", 1)
    return dsn


def _engine_kwargs(dsn: str) -> dict[str, object]:
    kwargs: dict[str, object] = {"future": True, "pool_pre_ping": True}
    if dsn.startswith("postgresql+psycopg://"):
        kwargs.update(
            {
                "pool_size": settings.db_pool_size,
                "max_overflow": settings.db_max_overflow,
                "pool_timeout": settings.db_pool_timeout_seconds,
                "pool_recycle": settings.db_pool_recycle_seconds,
            }
        )
    elif dsn.startswith("sqlite"):
        # Async routes and the claim watcher use sessions from worker threads.
        kwargs["connect_args"] = {"check_same_thread": False}
    return kwargs


dsn = _sqlalchemy_dsn(settings.pg_dsn)
engine = create_engine(dsn, **_engine_kwargs(dsn))
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@contextmanager
def session_scope() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
