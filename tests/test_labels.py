# tests/test_labels.py
from datetime import datetime

import pytest
from sqlalchemy import select

from db import SessionLocal
from app.labels import TransactionLabels, label_main, label_sub, labels_for, short_label
from models import Account, Category, Transaction


@pytest.fixture
def ledger(fresh_engine):
    """Two accounts, a Food > Groceries tree, one row of each kind."""
    with SessionLocal(bind=fresh_engine) as session:
        checking = Account(label="Checking", opening_balance=0, currency="EUR")
        savings = Account(label="Savings", opening_balance=0, currency="EUR")
        food = Category(label="Food")
        session.add_all([checking, savings, food])
        session.flush()

        groceries = Category(label="Groceries", parent_id=food.id)
        session.add(groceries)
        session.flush()

        when = datetime(2013, 3, 1, 12, 0)
        top = Transaction(comment="restaurant", date=when, amount=-4500, account_id=checking.id, cat_id=food.id)
        sub = Transaction(comment="market", date=when, amount=-2300, account_id=checking.id, cat_id=groceries.id)
        plain = Transaction(comment="misc", date=when, amount=-100, account_id=checking.id)
        out_leg = Transaction(comment="saving", date=when, amount=-10000, account_id=checking.id, cat_id=savings.id)
        in_leg = Transaction(comment="saving", date=when, amount=10000, account_id=savings.id, cat_id=checking.id)
        session.add_all([top, sub, plain, out_leg, in_leg])
        session.flush()
        out_leg.transfer_peer = in_leg.id
        in_leg.transfer_peer = out_leg.id
        session.commit()

        ids = {
            "top": top.id,
            "sub": sub.id,
            "plain": plain.id,
            "out_leg": out_leg.id,
            "in_leg": in_leg.id,
            "food": food.id,
            "groceries": groceries.id,
        }
    return fresh_engine, ids


def _labels(ledger, key):
    engine, ids = ledger
    with engine.connect() as conn:
        return labels_for(conn, ids[key])


class TestLabelsFor:
    def test_main_category(self, ledger):
        assert _labels(ledger, "top") == TransactionLabels(main="Food", sub="", short="Food")

    def test_subcategory_shows_parent_as_main(self, ledger):
        assert _labels(ledger, "sub") == TransactionLabels(main="Food", sub="Groceries", short="Groceries")

    def test_transfer_legs_show_peer_account(self, ledger):
        assert _labels(ledger, "out_leg") == TransactionLabels(main="Savings", sub="", short="Savings")
        assert _labels(ledger, "in_leg") == TransactionLabels(main="Checking", sub="", short="Checking")

    def test_null_transfer_peer_is_not_a_transfer(self, ledger):
        engine, ids = ledger
        txn = Transaction.__table__
        with engine.begin() as conn:
            conn.execute(txn.update().where(txn.c._id == ids["sub"]).values(transfer_peer=None))

        assert _labels(ledger, "sub") == TransactionLabels(main="Food", sub="Groceries", short="Groceries")

    def test_uncategorized(self, ledger):
        assert _labels(ledger, "plain") == TransactionLabels(main="", sub="", short="")

    def test_unknown_transaction(self, ledger):
        engine, _ids = ledger
        with engine.connect() as conn:
            assert labels_for(conn, 12345) is None

    def test_labels_follow_renames(self, ledger):
        engine, ids = ledger
        with engine.begin() as conn:
            conn.execute(Category.__table__.update().where(Category.__table__.c._id == ids["food"]).values(label="Eating"))

        assert _labels(ledger, "sub") == TransactionLabels(main="Eating", sub="Groceries", short="Groceries")


class TestLabelExpressions:
    def test_usable_in_a_listing(self, ledger):
        engine, ids = ledger
        txn = Transaction.__table__
        with engine.connect() as conn:
            listing = conn.execute(
                select(txn.c._id, label_main(), label_sub(), short_label()).order_by(txn.c._id)
            ).all()

        assert listing == [
            (ids["top"], "Food", None, "Food"),
            (ids["sub"], "Food", "Groceries", "Groceries"),
            (ids["plain"], None, None, None),
            (ids["out_leg"], "Savings", None, "Savings"),
            (ids["in_leg"], "Checking", None, "Checking"),
        ]

    def test_transfer_flag(self, ledger):
        engine, ids = ledger
        with SessionLocal(bind=engine) as session:
            assert session.get(Transaction, ids["out_leg"]).is_transfer
            assert not session.get(Transaction, ids["plain"]).is_transfer
