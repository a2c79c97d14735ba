# app/store.py
# Role: Opening a ledger store.
#       Reads the version recorded in the store, then either creates the
#       schema (fresh install), upgrades it, leaves it alone, or refuses to
#       open it (written by a newer build).

import logging
from typing import Callable, Optional, Sequence

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from db import make_engine
from app.catalog import CURRENT_VERSION, materialize
from app.errors import MigrationError, StoreError, UnsupportedDowngradeError
from app.migrations import STEPS, Step, read_version, run_migrations, write_version

logger = logging.getLogger(__name__)

# SQLite starts every database at user_version 0
ABSENT_VERSION = 0

__all__ = ["ABSENT_VERSION", "open_store", "read_version", "write_version"]


def open_store(
    url: Optional[str] = None,
    target_version: int = CURRENT_VERSION,
    create: Callable[[Connection], None] = materialize,
    steps: Sequence[Step] = STEPS,
) -> Engine:
    """
    Open (and if needed create or upgrade) the store at `url`.

    Runs synchronously on the calling thread before the engine is handed out.
    Raises UnsupportedDowngradeError if the store is newer than
    `target_version`, MigrationError if creating or upgrading fails, and
    StoreError if the file cannot be read as a store at all. After a failure
    the engine is disposed and the store must not be used.
    """
    engine = make_engine(url)
    try:
        with engine.connect() as conn:
            try:
                version = read_version(conn)
                conn.rollback()
            except SQLAlchemyError as exc:
                logger.error("Cannot read the store version: %s", exc)
                raise StoreError(f"Cannot read the store version: {exc}") from exc

            if version > target_version:
                raise UnsupportedDowngradeError(version, target_version)

            if version == target_version:
                logger.debug("Store already at version %d", version)
            elif version == ABSENT_VERSION:
                try:
                    with conn.begin():
                        create(conn)
                        write_version(conn, target_version)
                except Exception as exc:
                    logger.exception("Creating the store schema failed")
                    raise MigrationError(f"Creating the store schema failed: {exc}") from exc
            else:
                run_migrations(conn, version, target_version, steps)
                try:
                    with conn.begin():
                        write_version(conn, target_version)
                except SQLAlchemyError as exc:
                    logger.error("Cannot record store version %d: %s", target_version, exc)
                    raise StoreError(f"Cannot record store version {target_version}: {exc}") from exc
                logger.info("Store upgraded from version %d to %d", version, target_version)
    except Exception:
        engine.dispose()
        raise

    return engine
