"""Schema Updater — verifies the startup steps against legacy SQLite layouts.

Invariants:
    - A fresh database ends up with every table
    - Legacy unprefixed tables are adopted (renamed) when a prefix is configured
    - Integer material columns and short mobname columns are widened, rows kept
    - Text dates from old releases read back as datetimes
    - A second run changes nothing
"""

from datetime import datetime

import pytest
from sqlalchemy import String, create_engine, inspect, select, text

from progress_store.core.domain_types import MultipleCategory, NormalCategory
from progress_store.db.schema_updater import SchemaUpdater
from progress_store.db.tables import MOBNAME_LENGTH, SUBCATEGORY_LENGTH, ProgressTables


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(f"sqlite:///{tmp_path / 'legacy.db'}")
    yield eng
    eng.dispose()


def _execute(engine, *statements):
    with engine.begin() as conn:
        for statement in statements:
            conn.execute(text(statement))


def _column_type(engine, table_name, column_name):
    for col in inspect(engine).get_columns(table_name):
        if col["name"] == column_name:
            return col["type"]
    raise AssertionError(f"{table_name}.{column_name} missing")


def test_fresh_database_gets_every_table(engine):
    tables = ProgressTables()
    SchemaUpdater(engine, tables).run_all()

    names = set(inspect(engine).get_table_names())
    assert "achievements" in names
    assert {c.db_name for c in NormalCategory} <= names
    assert {c.db_name for c in MultipleCategory} <= names


def test_second_run_is_a_no_op(engine):
    tables = ProgressTables("srv_")
    SchemaUpdater(engine, tables).run_all()
    before = sorted(inspect(engine).get_table_names())

    SchemaUpdater(engine, ProgressTables("srv_")).run_all()

    assert sorted(inspect(engine).get_table_names()) == before


def test_prefix_adopts_legacy_tables(engine):
    _execute(
        engine,
        "CREATE TABLE achievements (player VARCHAR(36), achievement_key VARCHAR(64), "
        "message VARCHAR(128), date DATETIME, PRIMARY KEY (player, achievement_key))",
        "INSERT INTO achievements VALUES ('p', 'k', 'm', '2020-01-01 10:00:00')",
    )
    tables = ProgressTables("aach_")

    SchemaUpdater(engine, tables).run_all()

    names = set(inspect(engine).get_table_names())
    assert "aach_achievements" in names
    assert "achievements" not in names
    with engine.connect() as conn:
        assert conn.execute(select(tables.achievements.c.message)).scalar() == "m"


def test_prefixed_table_wins_over_legacy(engine):
    tables = ProgressTables("aach_")
    SchemaUpdater(engine, tables).run_all()
    _execute(engine, "CREATE TABLE deaths (player VARCHAR(36), deaths BIGINT, date DATETIME)")

    SchemaUpdater(engine, tables).run_all()

    names = set(inspect(engine).get_table_names())
    assert {"deaths", "aach_deaths"} <= names


def test_short_mobname_column_widened(engine):
    _execute(
        engine,
        "CREATE TABLE kills (player VARCHAR(36), mobname VARCHAR(32), kills BIGINT, "
        "date DATETIME, PRIMARY KEY (player, mobname))",
        "INSERT INTO kills VALUES ('p', 'zombie', 12, '2020-01-01 10:00:00')",
    )

    SchemaUpdater(engine, ProgressTables()).run_all()

    mobname = _column_type(engine, "kills", "mobname")
    assert isinstance(mobname, String)
    assert mobname.length == MOBNAME_LENGTH
    with engine.connect() as conn:
        assert conn.execute(text("SELECT kills FROM kills")).scalar() == 12


def test_integer_material_column_becomes_string(engine):
    _execute(
        engine,
        "CREATE TABLE breaks (player VARCHAR(36), blockid INTEGER, breaks BIGINT, "
        "date DATETIME, PRIMARY KEY (player, blockid))",
        "INSERT INTO breaks VALUES ('p', 1, 30, '2020-01-01 10:00:00')",
    )

    SchemaUpdater(engine, ProgressTables()).run_all()

    blockid = _column_type(engine, "breaks", "blockid")
    assert isinstance(blockid, String)
    assert blockid.length == SUBCATEGORY_LENGTH
    with engine.connect() as conn:
        assert conn.execute(text("SELECT count(*) FROM breaks")).scalar() == 1


def test_legacy_text_dates_read_as_datetimes(engine):
    _execute(
        engine,
        "CREATE TABLE achievements (player VARCHAR(36), achievement_key VARCHAR(64), "
        "message VARCHAR(128), date TEXT, PRIMARY KEY (player, achievement_key))",
        "INSERT INTO achievements VALUES ('p', 'old', 'm', '2019-05-01')",
        "INSERT INTO achievements VALUES ('p', 'new', 'm', '2021-02-03 04:05:06')",
    )
    tables = ProgressTables()

    SchemaUpdater(engine, tables).run_all()

    t = tables.achievements
    with engine.connect() as conn:
        dates = dict(conn.execute(select(t.c.achievement_key, t.c.date)).all())
    assert dates == {
        "old": datetime(2019, 5, 1),
        "new": datetime(2021, 2, 3, 4, 5, 6),
    }
