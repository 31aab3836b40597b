"""Database connection and session management."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from naikkelas.logging_config import get_logger
from naikkelas.settings import settings
from naikkelas.storage.models import Base

logger = get_logger(__name__)

_IN_MEMORY_SQLITE = {"sqlite://", "sqlite:///:memory:"}


class Database:
    """Database connection manager."""

    def __init__(self, database_url: str | None = None, echo: bool | None = None):
        """Initialize database connection.

        Args:
            database_url: Database URL (defaults to settings)
            echo: Log SQL statements (defaults to on in development)
        """
        self.database_url = database_url or settings.database_url

        engine_kwargs: dict = {
            "echo": settings.env == "development" if echo is None else echo,
            "pool_pre_ping": True,
        }
        if self.database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if self.database_url in _IN_MEMORY_SQLITE:
                # One shared connection, otherwise every checkout sees an empty database
                engine_kwargs["poolclass"] = StaticPool

        self.engine = create_engine(self.database_url, **engine_kwargs)
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )
        logger.info("database_initialized", dialect=self.engine.dialect.name)

    def create_tables(self) -> None:
        """Create all tables in the database."""
        from naikkelas import models  # noqa: F401  registers every table on Base.metadata

        Base.metadata.create_all(bind=self.engine)
        logger.info("tables_created")

    def drop_tables(self) -> None:
        """Drop all tables from the database."""
        Base.metadata.drop_all(bind=self.engine)
        logger.warning("tables_dropped")

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Provide a transactional scope for database operations.

        Yields:
            Database session
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def scope(self, session: Session | None = None) -> Generator[Session, None, None]:
        """Join the caller's transaction if one is given, else open a new one."""
        if session is not None:
            yield session
            return
        with self.session() as own:
            yield own


# Global database instance
db = Database()
