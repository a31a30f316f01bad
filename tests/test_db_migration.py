from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool

from paintprogress.db import init_db


def test_init_db_adds_progress_column_to_old_tables() -> None:
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    with engine.begin() as connection:
        connection.execute(
            text(
                """
                CREATE TABLE miniatures (
                    id VARCHAR(32) PRIMARY KEY,
                    name VARCHAR(120) NOT NULL,
                    faction VARCHAR(120) NOT NULL,
                    category VARCHAR(20) NOT NULL,
                    model_count INTEGER NOT NULL,
                    details TEXT NOT NULL,
                    command_json TEXT,
                    state VARCHAR(40) NOT NULL,
                    created_at DATETIME NOT NULL,
                    updated_at DATETIME NOT NULL
                )
                """
            )
        )

    init_db(engine)

    columns = {column["name"] for column in inspect(engine).get_columns("miniatures")}
    assert "progress_count" in columns
    engine.dispose()


def test_init_db_is_repeatable(db_engine) -> None:
    init_db(db_engine)

    columns = {column["name"] for column in inspect(db_engine).get_columns("miniatures")}
    assert "progress_count" in columns
