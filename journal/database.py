"""SQLModel database engine and session management."""

import logging

from sqlmodel import SQLModel, create_engine, Session

from journal.config import settings

logger = logging.getLogger(__name__)

# SQLite needs check_same_thread=False; PostgreSQL does not
connect_args = {}
if settings.database_url.startswith("sqlite"):
    connect_args["check_same_thread"] = False
    if ":///" in settings.database_url:
        from pathlib import Path

        db_path = settings.database_url.split(":///", 1)[1]
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

engine = create_engine(
    settings.database_url,
    echo=False,
    connect_args=connect_args,
)


def create_db_and_tables():
    """Create all tables. Called on startup."""
    import journal.models  # noqa: F401  (registers every table on the metadata)

    SQLModel.metadata.create_all(engine)
    logger.info("Database schema ready")


def get_session() -> Session:
    """Dependency that yields a database session."""
    with Session(engine) as session:
        yield session
