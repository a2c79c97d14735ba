# app/migrations.py
# Role: Migration engine for the ledger store.
#       Holds the ordered, append-only list of upgrade steps and the loop that
#       applies the ones a store still needs, each inside its own transaction.

"""
Upgrade steps for ledger stores.

Every step is tagged with a threshold version: a store recorded at version
``v`` runs each step with ``v < threshold``, in ascending threshold order,
up to the requested version. A step may only rely on the schema left behind
by the steps before it, never on the current catalog in models.py, because
stores arrive here from any older version.

Table rebuilds follow rename -> create -> copy -> drop, since SQLite cannot
redefine a column in place. Rebuilds copy ``_id`` so transfer_peer, cat_id
and account_id references survive.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Sequence

from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from models import (
    TABLE_ACCOUNTS,
    TABLE_EXPENSES_LEGACY,
    TABLE_FEATURE_USED,
    TABLE_PAYEE,
    TABLE_PAYMENT_METHODS,
    TABLE_ACCOUNTTYPE_METHOD,
    TABLE_TEMPLATES,
    TABLE_TRANSACTIONS,
)
from app.errors import MigrationError
from app.services.payment_methods import insert_default_payment_methods

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Step:
    threshold: int
    description: str
    apply: Callable[[Connection], None]


def read_version(conn: Connection) -> int:
    return conn.exec_driver_sql("PRAGMA user_version").scalar_one()


def write_version(conn: Connection, version: int) -> None:
    # PRAGMA arguments cannot be bound parameters
    conn.exec_driver_sql(f"PRAGMA user_version = {int(version)}")


def _run(conn: Connection, *statements: str) -> None:
    for statement in statements:
        conn.exec_driver_sql(statement)


# -------------------------------------------------------------------
# Steps
# -------------------------------------------------------------------

def _recreate_accounts(conn: Connection) -> None:
    # accounts written before 17 were never read back
    _run(
        conn,
        f"DROP TABLE IF EXISTS {TABLE_ACCOUNTS}",
        f"CREATE TABLE {TABLE_ACCOUNTS} (_id integer primary key autoincrement, "
        "label text not null, opening_balance integer, description text, currency text not null)",
    )


def _add_payees(conn: Connection) -> None:
    _run(
        conn,
        f"CREATE TABLE {TABLE_PAYEE} (_id integer primary key autoincrement, name text unique not null)",
        f"ALTER TABLE {TABLE_EXPENSES_LEGACY} ADD COLUMN payee text",
    )


def _add_transfer_peer(conn: Connection) -> None:
    _run(conn, f"ALTER TABLE {TABLE_EXPENSES_LEGACY} ADD COLUMN transfer_peer text")


def _amounts_to_minor_units(conn: Connection) -> None:
    # Amounts were floats in major units; from here on they are integer cents.
    _run(
        conn,
        f"CREATE TABLE {TABLE_TRANSACTIONS} (_id integer primary key autoincrement, "
        "comment text not null, date DATETIME not null, amount integer not null, "
        "cat_id integer, account_id integer, payee text, transfer_peer integer default null)",
        f"INSERT INTO {TABLE_TRANSACTIONS} "
        "(_id, comment, date, amount, cat_id, account_id, payee, transfer_peer) "
        "SELECT _id, comment, date, CAST(ROUND(amount * 100) AS INTEGER), "
        f"cat_id, account_id, payee, transfer_peer FROM {TABLE_EXPENSES_LEGACY}",
        f"DROP TABLE {TABLE_EXPENSES_LEGACY}",
        f"ALTER TABLE {TABLE_ACCOUNTS} RENAME TO {TABLE_ACCOUNTS}_old",
        f"CREATE TABLE {TABLE_ACCOUNTS} (_id integer primary key autoincrement, "
        "label text not null, opening_balance integer, description text, currency text not null)",
        f"INSERT INTO {TABLE_ACCOUNTS} (_id, label, opening_balance, description, currency) "
        "SELECT _id, label, CAST(ROUND(opening_balance * 100) AS INTEGER), description, currency "
        f"FROM {TABLE_ACCOUNTS}_old",
        f"DROP TABLE {TABLE_ACCOUNTS}_old",
    )


def _add_payment_methods(conn: Connection) -> None:
    _run(
        conn,
        f"CREATE TABLE {TABLE_PAYMENT_METHODS} (_id integer primary key autoincrement, "
        "label text not null, type integer default 0)",
        f"CREATE TABLE {TABLE_ACCOUNTTYPE_METHOD} (type text, method_id integer, "
        "primary key (type, method_id))",
    )
    insert_default_payment_methods(conn)
    _run(
        conn,
        f"ALTER TABLE {TABLE_TRANSACTIONS} ADD COLUMN payment_method_id text default 'CASH'",
        f"ALTER TABLE {TABLE_ACCOUNTS} ADD COLUMN type text default 'CASH'",
    )


def _add_templates(conn: Connection) -> None:
    _run(
        conn,
        f"CREATE TABLE {TABLE_TEMPLATES} (_id integer primary key autoincrement, "
        "comment text not null, amount integer not null, cat_id integer, account_id integer, "
        "payee text, transfer_peer integer default null, payment_method_id integer, "
        "title text not null)",
    )


def _unique_template_titles(conn: Connection) -> None:
    columns = "_id, comment, amount, cat_id, account_id, payee, transfer_peer, payment_method_id, title"
    _run(
        conn,
        f"ALTER TABLE {TABLE_TEMPLATES} RENAME TO {TABLE_TEMPLATES}_old",
        f"CREATE TABLE {TABLE_TEMPLATES} (_id integer primary key autoincrement, "
        "comment text not null, amount integer not null, cat_id integer, account_id integer, "
        "payee text, transfer_peer integer default null, payment_method_id integer, "
        "title text not null, unique(account_id, title))",
    )
    copy = f"INSERT INTO {TABLE_TEMPLATES} ({columns}) SELECT {columns} FROM {TABLE_TEMPLATES}_old"
    try:
        with conn.begin_nested():
            conn.exec_driver_sql(copy)
    except IntegrityError as exc:
        # Only reachable from a short-lived pre-release; the first template per
        # (account, title) wins and the duplicates are dropped.
        logger.warning(
            "Duplicate template titles while adding unique(account_id, title), "
            "dropping the duplicates: %s",
            exc.orig,
        )
        conn.exec_driver_sql(
            f"INSERT OR IGNORE INTO {TABLE_TEMPLATES} ({columns}) "
            f"SELECT {columns} FROM {TABLE_TEMPLATES}_old ORDER BY _id"
        )
    _run(conn, f"DROP TABLE {TABLE_TEMPLATES}_old")


def _add_template_usages(conn: Connection) -> None:
    _run(conn, f"ALTER TABLE {TABLE_TEMPLATES} ADD COLUMN usages integer default 0")


def _zero_transfer_peer(conn: Connection) -> None:
    # Non-transfers had transfer_peer NULL in transactions but 0 in templates.
    _run(conn, f"UPDATE {TABLE_TRANSACTIONS} SET transfer_peer = 0 WHERE transfer_peer IS NULL")


def _add_account_color(conn: Connection) -> None:
    _run(conn, f"ALTER TABLE {TABLE_ACCOUNTS} ADD COLUMN color integer default -6697984")


def _add_feature_used(conn: Connection) -> None:
    _run(conn, f"CREATE TABLE {TABLE_FEATURE_USED} (feature text not null)")


def _reconcile_column_definitions(conn: Connection) -> None:
    """
    Older steps left column types and defaults that differ from a fresh
    install: transfer_peer defaulting to NULL, payment_method_id declared as
    text with a 'CASH' placeholder, and an older account color default.
    Rebuild the three affected tables with the fresh-install definitions.
    """
    _run(
        conn,
        f"ALTER TABLE {TABLE_TRANSACTIONS} RENAME TO {TABLE_TRANSACTIONS}_old",
        f"CREATE TABLE {TABLE_TRANSACTIONS} (_id integer primary key autoincrement, "
        "comment text not null, date DATETIME not null, amount integer not null, "
        "cat_id integer, account_id integer, payee text, transfer_peer integer default 0, "
        "payment_method_id integer)",
        f"INSERT INTO {TABLE_TRANSACTIONS} "
        "(_id, comment, date, amount, cat_id, account_id, payee, transfer_peer, payment_method_id) "
        "SELECT _id, comment, date, amount, cat_id, account_id, payee, "
        "COALESCE(transfer_peer, 0), NULLIF(payment_method_id, 'CASH') "
        f"FROM {TABLE_TRANSACTIONS}_old",
        f"DROP TABLE {TABLE_TRANSACTIONS}_old",
        f"ALTER TABLE {TABLE_TEMPLATES} RENAME TO {TABLE_TEMPLATES}_old",
        f"CREATE TABLE {TABLE_TEMPLATES} (_id integer primary key autoincrement, "
        "comment text not null, amount integer not null, cat_id integer, account_id integer, "
        "payee text, transfer_peer integer default 0, payment_method_id integer, "
        "title text not null, usages integer default 0, unique(account_id, title))",
        f"INSERT INTO {TABLE_TEMPLATES} "
        "(_id, comment, amount, cat_id, account_id, payee, transfer_peer, payment_method_id, title, usages) "
        "SELECT _id, comment, amount, cat_id, account_id, payee, COALESCE(transfer_peer, 0), "
        f"payment_method_id, title, usages FROM {TABLE_TEMPLATES}_old",
        f"DROP TABLE {TABLE_TEMPLATES}_old",
        f"ALTER TABLE {TABLE_ACCOUNTS} RENAME TO {TABLE_ACCOUNTS}_old",
        f"CREATE TABLE {TABLE_ACCOUNTS} (_id integer primary key autoincrement, "
        "label text not null, opening_balance integer, description text, currency text not null, "
        "type text default 'CASH', color integer default -3355444)",
        f"INSERT INTO {TABLE_ACCOUNTS} (_id, label, opening_balance, description, currency, type, color) "
        "SELECT _id, label, opening_balance, description, currency, type, color "
        f"FROM {TABLE_ACCOUNTS}_old",
        f"DROP TABLE {TABLE_ACCOUNTS}_old",
    )


# Append only. Never edit a step that has shipped; add a new one instead.
STEPS = (
    Step(17, "recreate accounts", _recreate_accounts),
    Step(18, "add payees", _add_payees),
    Step(19, "add transfer_peer", _add_transfer_peer),
    Step(20, "store amounts as integer minor units", _amounts_to_minor_units),
    Step(21, "add payment methods", _add_payment_methods),
    Step(22, "add templates", _add_templates),
    Step(23, "unique template title per account", _unique_template_titles),
    Step(24, "add template usages", _add_template_usages),
    Step(25, "transfer_peer 0 for non-transfers", _zero_transfer_peer),
    Step(26, "add account color", _add_account_color),
    Step(27, "add feature usage log", _add_feature_used),
    Step(28, "align column definitions with fresh installs", _reconcile_column_definitions),
)


# -------------------------------------------------------------------
# Engine
# -------------------------------------------------------------------

def pending_steps(steps: Iterable[Step], old_version: int, new_version: int) -> List[Step]:
    """
    Steps a store at `old_version` needs to reach `new_version`, in the order
    they must run. Declaration order does not matter.
    """
    ordered = sorted(steps, key=lambda s: s.threshold)
    for earlier, later in zip(ordered, ordered[1:]):
        if earlier.threshold == later.threshold:
            raise MigrationError(f"Two upgrade steps share threshold {later.threshold}")
    return [s for s in ordered if old_version < s.threshold <= new_version]


def run_migrations(
    conn: Connection,
    old_version: int,
    new_version: int,
    steps: Sequence[Step] = STEPS,
) -> List[int]:
    """
    Apply every pending step, each in its own transaction.

    Pending means ``old_version < threshold <= new_version``: steps above the
    requested version are skipped on purpose, so a store can be brought to
    an intermediate version.

    `conn` must not be inside a transaction. Each step records its threshold
    as the store version in the same transaction, so after a failure the
    store sits at the last step that committed and the next open resumes
    from there. The failure is raised as MigrationError.
    Returns the thresholds that were applied.
    """
    pending = pending_steps(steps, old_version, new_version)
    logger.info(
        "Upgrading store from version %d to %d (%d steps)", old_version, new_version, len(pending)
    )

    applied = []
    for step in pending:
        logger.info("Applying step %d: %s", step.threshold, step.description)
        try:
            with conn.begin():
                step.apply(conn)
                write_version(conn, step.threshold)
        except Exception as exc:
            logger.exception("Upgrade step %d (%s) failed", step.threshold, step.description)
            raise MigrationError(
                f"Upgrade step {step.threshold} ({step.description}) failed: {exc}",
                threshold=step.threshold,
            ) from exc
        applied.append(step.threshold)
    return applied
