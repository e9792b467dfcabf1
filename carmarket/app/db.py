from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from .config import settings
from .errors import ConfigurationError


def build_engine(url: str, *, echo: bool = False) -> Engine:
    kwargs = {"echo": echo, "pool_pre_ping": True, "future": True}
    if not url.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
        )
    return create_engine(url, **kwargs)


engine = build_engine(settings.BACKEND_URL, echo=settings.DB_SYNC_ECHO) if settings.BACKEND_URL else None

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


def get_db() -> Session:
    if engine is None:
        raise ConfigurationError(settings.missing_required() or ["BACKEND_URL"])
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
