# app/services/payment_methods.py
#
# Payment Method Seeding
# Inserts the predefined payment methods into a store and restricts each of
# them to bank accounts. Shared by fresh installs and by the upgrade step that
# introduced payment methods.

import logging
from typing import List

from sqlalchemy import text
from sqlalchemy.engine import Connection

from models import (
    AccountType,
    PREDEFINED_PAYMENT_METHODS,
    TABLE_ACCOUNTTYPE_METHOD,
    TABLE_PAYMENT_METHODS,
)

logger = logging.getLogger(__name__)


def insert_default_payment_methods(conn: Connection) -> List[int]:
    """
    Insert one row per predefined method plus its BANK association.
    Returns the new method ids in insertion order.

    Plain SQL on purpose: this also runs against stores that are mid-upgrade,
    where only the columns present at that version may be assumed.
    """
    insert_method = text(
        f"INSERT INTO {TABLE_PAYMENT_METHODS} (label, type) VALUES (:label, :type)"
    )
    insert_link = text(
        f"INSERT INTO {TABLE_ACCOUNTTYPE_METHOD} (type, method_id) VALUES (:type, :method_id)"
    )

    ids = []
    for label, payment_type in PREDEFINED_PAYMENT_METHODS:
        method_id = conn.execute(
            insert_method, {"label": label, "type": int(payment_type)}
        ).lastrowid
        conn.execute(insert_link, {"type": AccountType.BANK.value, "method_id": method_id})
        ids.append(method_id)

    logger.info("Seeded %d predefined payment methods", len(ids))
    return ids
