# main.py
# Role: Entry point for the ledger store.
#       Opens the configured store (creating or upgrading its schema as
#       needed) and reports the version and tables it ended up with.

"""
Open the configured ledger store.

Usage:
    python main.py [DATABASE_URL]

Without an argument the URL comes from db.DATABASE_URL (see .env).
"""

import logging
import sys

from app.errors import StoreError
from app.services.schema_snapshot import snapshot
from app.store import open_store, read_version

logger = logging.getLogger("ledger")


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    url = argv[0] if argv else None
    try:
        engine = open_store(url)
    except StoreError as exc:
        logger.error("Cannot initialize the ledger store: %s", exc)
        return 1

    with engine.connect() as conn:
        version = read_version(conn)
        tables = snapshot(conn)
    engine.dispose()

    logger.info("Ledger store ready at version %d: %s", version, ", ".join(tables))
    return 0


if __name__ == "__main__":
    sys.exit(main())
