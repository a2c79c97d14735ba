# tests/test_schema_snapshot.py
from db import make_engine
from app.services.schema_snapshot import diff_snapshots, snapshot


def _snapshot_of(url, *statements):
    engine = make_engine(url)
    with engine.begin() as conn:
        for statement in statements:
            conn.exec_driver_sql(statement)
    with engine.connect() as conn:
        shape = snapshot(conn)
    engine.dispose()
    return shape


class TestSnapshot:
    def test_describes_columns_and_unique_keys(self, store_url):
        shape = _snapshot_of(
            store_url,
            "CREATE TABLE payee (_id integer primary key autoincrement, name text unique not null)",
        )

        payee = shape["payee"]
        assert payee.column_names == ("_id", "name")
        assert payee.columns[0].pk == 1
        assert payee.columns[0].not_null
        assert payee.columns[1].type == "TEXT"
        assert payee.unique_keys == (("name",),)

    def test_parenthesized_default_equals_plain(self, tmp_path):
        a = _snapshot_of(f"sqlite:///{tmp_path / 'a.db'}", "CREATE TABLE t (x integer default (-1))")
        b = _snapshot_of(f"sqlite:///{tmp_path / 'b.db'}", "CREATE TABLE t (x INTEGER DEFAULT -1)")
        assert diff_snapshots(a, b) == {}

    def test_reports_differences(self, tmp_path):
        a = _snapshot_of(f"sqlite:///{tmp_path / 'a.db'}", "CREATE TABLE t (x integer default 0)")
        b = _snapshot_of(
            f"sqlite:///{tmp_path / 'b.db'}",
            "CREATE TABLE t (x integer default null)",
            "CREATE TABLE extra (y text)",
        )

        problems = diff_snapshots(a, b)
        assert set(problems) == {"t", "extra"}
        assert problems["extra"] == "missing on the left"
