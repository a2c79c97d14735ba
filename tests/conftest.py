# tests/conftest.py
import pytest
from sqlalchemy import text

from db import make_engine
from app.store import open_store, write_version

# Schema written by releases before version 17: float amounts in major units,
# no payees, transfers, payment methods or templates yet.
LEGACY_BASELINE = (
    "CREATE TABLE expenses (_id integer primary key autoincrement, comment text not null, "
    "date DATETIME not null, amount float not null, cat_id integer, account_id integer)",
    "CREATE TABLE categories (_id integer primary key autoincrement, label text not null, "
    "parent_id integer not null default 0, usages integer default 0, unique (label,parent_id))",
    "CREATE TABLE accounts (_id integer primary key autoincrement, label text not null, "
    "opening_balance float, description text, currency text not null)",
)


@pytest.fixture
def store_url(tmp_path):
    return f"sqlite:///{tmp_path / 'ledger.db'}"


@pytest.fixture
def legacy_store(store_url):
    """URL of a store in the pre-17 layout, recorded at version 1."""
    engine = make_engine(store_url)
    with engine.begin() as conn:
        for statement in LEGACY_BASELINE:
            conn.exec_driver_sql(statement)
        write_version(conn, 1)
    engine.dispose()
    return store_url


@pytest.fixture
def fresh_engine(store_url):
    engine = open_store(store_url)
    yield engine
    engine.dispose()


def upgrade_to(url, version):
    """Run the real upgrade path up to `version` and close the store again."""
    open_store(url, target_version=version).dispose()


def rows(engine, sql, **params):
    with engine.connect() as conn:
        return conn.execute(text(sql), params).all()
