# app/labels.py
# Role: Display labels for transactions, computed in SQL at query time.
#       Never stored: category and account labels change independently of
#       the transactions pointing at them.

"""
Label derivation for transactions.

- label_main: peer account for transfer legs; for categorized rows the main
  category (the parent when the row points at a subcategory).
- label_sub: the subcategory label when the row points at a subcategory.
- short_label: peer account for transfer legs, otherwise the row's own
  category label without walking up to the parent.

All three are NULL when there is nothing to show.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import and_, case, func, select
from sqlalchemy.engine import Connection

from models import Account, Category, Transaction

_txn = Transaction.__table__
_peer_account = Account.__table__.alias("peer_account")
_category = Category.__table__.alias("category")
_parent = Category.__table__.alias("parent_category")


@dataclass(frozen=True)
class TransactionLabels:
    main: str
    sub: str
    short: str


def _is_transfer():
    # NULL transfer_peer (pre-upgrade rows) counts as "not a transfer"
    return _txn.c.transfer_peer != 0


def _has_category():
    return func.coalesce(_txn.c.cat_id, 0) != 0


def _peer_account_label():
    return (
        select(_peer_account.c.label)
        .where(_peer_account.c._id == _txn.c.cat_id)
        .scalar_subquery()
    )


def _category_label():
    return select(_category.c.label).where(_category.c._id == _txn.c.cat_id).scalar_subquery()


def _category_parent_id():
    return select(_category.c.parent_id).where(_category.c._id == _txn.c.cat_id).scalar_subquery()


def _parent_category_label():
    return (
        select(_parent.c.label)
        .select_from(_category.join(_parent, _parent.c._id == _category.c.parent_id))
        .where(_category.c._id == _txn.c.cat_id)
        .scalar_subquery()
    )


def label_main():
    return case(
        (_is_transfer(), _peer_account_label()),
        (
            _has_category(),
            case(
                (_category_parent_id() != 0, _parent_category_label()),
                else_=_category_label(),
            ),
        ),
    )


def label_sub():
    return case(
        (
            and_(func.coalesce(_txn.c.transfer_peer, 0) == 0, _has_category(), _category_parent_id() != 0),
            _category_label(),
        ),
    )


def short_label():
    return case(
        (_is_transfer(), _peer_account_label()),
        else_=_category_label(),
    )


def labels_for(conn: Connection, transaction_id: int) -> Optional[TransactionLabels]:
    """
    Labels of one transaction, with missing labels reported as "".
    Returns None if there is no such transaction.
    """
    row = conn.execute(
        select(
            label_main().label("label_main"),
            label_sub().label("label_sub"),
            short_label().label("label"),
        ).where(_txn.c._id == transaction_id)
    ).first()
    if row is None:
        return None
    return TransactionLabels(
        main=row.label_main or "",
        sub=row.label_sub or "",
        short=row.label or "",
    )
