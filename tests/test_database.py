from sqlalchemy import inspect, text

from database import build_engine, init_db


def test_sqlite_engine_enforces_foreign_keys() -> None:
    engine = build_engine("sqlite://")
    with engine.connect() as conn:
        assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1


def test_init_db_creates_ledger_tables() -> None:
    engine = build_engine("sqlite://")
    init_db(engine)

    tables = set(inspect(engine).get_table_names())
    assert {"categories", "expense_types", "expenses", "income"} <= tables
