# app/catalog.py
# Role: Schema catalog for fresh installs.
#       Creates every table of the current schema version in dependency order
#       and seeds the predefined payment methods.

import logging

from sqlalchemy.engine import Connection

from models import (
    Account,
    AccountTypePaymentMethod,
    Category,
    Payee,
    PaymentMethod,
    Template,
    Transaction,
    feature_used,
)
from app.services.payment_methods import insert_default_payment_methods

logger = logging.getLogger(__name__)

# Version written to a store once it matches this catalog.
# Raise it together with appending a step to app.migrations.STEPS.
CURRENT_VERSION = 28

# Independent tables first; the association table after paymentmethods.
CATALOG_TABLES = (
    Transaction.__table__,
    Category.__table__,
    Account.__table__,
    Payee.__table__,
    PaymentMethod.__table__,
    AccountTypePaymentMethod.__table__,
    Template.__table__,
    feature_used,
)


def materialize(conn: Connection) -> None:
    """
    Create the full current schema in an EMPTY store.

    Only called by app.store.open_store when the store records no version;
    running it against a populated store is not supported.
    """
    for table in CATALOG_TABLES:
        table.create(conn)
    insert_default_payment_methods(conn)
    logger.info("Created ledger schema version %d (%d tables)", CURRENT_VERSION, len(CATALOG_TABLES))
