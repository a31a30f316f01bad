import logging
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from .config import DB_URL

logger = logging.getLogger(__name__)

connect_args = {"check_same_thread": False} if DB_URL.startswith("sqlite") else {}
engine = create_engine(DB_URL, connect_args=connect_args, future=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


class Base(DeclarativeBase):
    pass


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _migrate_schema(bind=None) -> None:
    from sqlalchemy import inspect

    bind = bind if bind is not None else engine
    if not str(bind.url).startswith("sqlite"):
        return

    with bind.begin() as connection:
        inspector = inspect(connection)
        if "miniatures" not in set(inspector.get_table_names()):
            return

        column_names = {column["name"] for column in inspector.get_columns("miniatures")}
        if "progress_count" not in column_names:
            # Older rows get NULL here; the store fills them in on the next load.
            logger.info("Adding progress_count column to miniatures table")
            connection.execute(
                text("ALTER TABLE miniatures ADD COLUMN progress_count INTEGER")
            )


def init_db(bind=None) -> None:
    from . import models  # noqa: F401

    bind = bind if bind is not None else engine
    Base.metadata.create_all(bind=bind)
    _migrate_schema(bind)
    logger.info("Database ready at %s", bind.url)
