"""
Database engine and session management using SQLAlchemy 2.x.

The `Database` object owns the engine and session factory. It is built once by
the application factory, stored on `app.state`, and disposed on shutdown; route
handlers receive sessions through the `get_db` dependency.
"""
from typing import Generator, Optional

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, DeclarativeBase
from sqlalchemy.pool import StaticPool

from wifidesk.lib.logging import get_logger


logger = get_logger(__name__)


# Base class for all SQLAlchemy models
class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class Database:
    """
    Store client: engine + session factory with an explicit lifecycle.

    Usage:
        database = Database(settings.database_url)
        database.create_all()
        database.dispose()
    """

    def __init__(self, url: str, echo: bool = False, engine: Optional[Engine] = None):
        self.url = url
        self.engine = engine or self._build_engine(url, echo)
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    @staticmethod
    def _build_engine(url: str, echo: bool) -> Engine:
        if url.startswith("sqlite"):
            kwargs = {"connect_args": {"check_same_thread": False}}
            # In-memory databases live as long as their single connection
            if ":memory:" in url or url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
                kwargs["poolclass"] = StaticPool
            return create_engine(url, echo=echo, **kwargs)

        return create_engine(
            url,
            echo=echo,
            pool_pre_ping=True,  # Verify connections before using
            pool_size=5,
            max_overflow=10,
        )

    def create_all(self) -> None:
        """
        Create all tables.
        Should be called after all models are imported.
        """
        import wifidesk.models  # noqa: F401  (registers models on Base.metadata)

        Base.metadata.create_all(bind=self.engine)
        logger.info("Database schema ensured", extra={"dialect": self.engine.dialect.name})

    def drop_all(self) -> None:
        """
        Drop all tables. Use with caution - for testing only.
        """
        Base.metadata.drop_all(bind=self.engine)

    def dispose(self) -> None:
        """Close every pooled connection."""
        self.engine.dispose()
        logger.info("Database connections disposed")


def get_database(request: Request) -> Database:
    """Dependency returning the application's Database."""
    return request.app.state.database


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Dependency for FastAPI routes to get a database session.

    Usage:
        @app.get("/example")
        def example(db: Session = Depends(get_db)):
            ...
    """
    db = get_database(request).SessionLocal()
    try:
        yield db
    finally:
        db.close()
