# models.py
# Role: Schema description for the ledger store (current version).
#       Table names, column keys, enumerations, and the SQLAlchemy ORM models
#       for every table. Built once at import time and shared by the catalog
#       (fresh installs) and the migration engine (upgrades).

from enum import Enum, IntEnum

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    PrimaryKeyConstraint,
    Table,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from db import Base

# -------------------------------------------------------------------
# Table names
# -------------------------------------------------------------------

TABLE_TRANSACTIONS = "transactions"
TABLE_ACCOUNTS = "accounts"
TABLE_CATEGORIES = "categories"
TABLE_PAYMENT_METHODS = "paymentmethods"
TABLE_ACCOUNTTYPE_METHOD = "accounttype_paymentmethod"
TABLE_TEMPLATES = "templates"
TABLE_PAYEE = "payee"
TABLE_FEATURE_USED = "feature_used"

# Pre-20 name of the transactions table (amounts in major units, floats)
TABLE_EXPENSES_LEGACY = "expenses"

# -------------------------------------------------------------------
# Column keys shared between tables
# -------------------------------------------------------------------

KEY_ROWID = "_id"
KEY_DATE = "date"
KEY_AMOUNT = "amount"
KEY_COMMENT = "comment"
KEY_CATID = "cat_id"
KEY_ACCOUNTID = "account_id"
KEY_PAYEE = "payee"
KEY_TRANSFER_PEER = "transfer_peer"
KEY_METHODID = "payment_method_id"
KEY_TITLE = "title"
KEY_LABEL = "label"
KEY_PARENTID = "parent_id"
KEY_USAGES = "usages"

# Default display color for new accounts (ARGB, light grey)
DEFAULT_ACCOUNT_COLOR = -3355444


class AccountType(str, Enum):
    CASH = "CASH"
    BANK = "BANK"
    CCARD = "CCARD"
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"


class PaymentType(IntEnum):
    """Direction a payment method can be used for."""

    EXPENSE = -1
    NEUTRAL = 0
    INCOME = 1


# Payment methods every store starts with; all are restricted to bank accounts.
PREDEFINED_PAYMENT_METHODS = (
    ("CHEQUE", PaymentType.EXPENSE),
    ("CREDITCARD", PaymentType.EXPENSE),
    ("DEPOSIT", PaymentType.INCOME),
    ("DIRECTDEBIT", PaymentType.EXPENSE),
)


# -------------------------------------------------------------------
# ORM models
# -------------------------------------------------------------------


class Transaction(Base):
    """
    One monetary movement on one account.

    Transfers are stored as two rows, one per account, pointing at each other
    through ``transfer_peer``. For a transfer leg ``cat_id`` holds the *other
    account's* id instead of a category. Non-transfers have transfer_peer 0.
    """

    __tablename__ = TABLE_TRANSACTIONS
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(KEY_ROWID, Integer, primary_key=True)
    comment = Column(KEY_COMMENT, Text, nullable=False)
    date = Column(KEY_DATE, DateTime, nullable=False)

    # Minor currency units (cents), never floats
    amount = Column(KEY_AMOUNT, Integer, nullable=False)

    cat_id = Column(KEY_CATID, Integer)
    account_id = Column(KEY_ACCOUNTID, Integer)

    # Payee name; see payee_record
    payee = Column(KEY_PAYEE, Text)

    transfer_peer = Column(KEY_TRANSFER_PEER, Integer, server_default=text("0"), default=0)
    payment_method_id = Column(KEY_METHODID, Integer)

    # Payees are referenced by name, not id. No matching row is a valid state.
    payee_record = relationship(
        "Payee",
        primaryjoin="foreign(Transaction.payee) == Payee.name",
        viewonly=True,
        uselist=False,
    )

    @property
    def is_transfer(self) -> bool:
        return bool(self.transfer_peer)


class Account(Base):
    __tablename__ = TABLE_ACCOUNTS
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(KEY_ROWID, Integer, primary_key=True)
    label = Column(KEY_LABEL, Text, nullable=False)
    opening_balance = Column("opening_balance", Integer)
    description = Column("description", Text)
    currency = Column("currency", Text, nullable=False)
    type = Column("type", Text, server_default=AccountType.CASH.value)
    color = Column("color", Integer, server_default=text(str(DEFAULT_ACCOUNT_COLOR)))


class Category(Base):
    """
    Two-level category tree: parent_id 0 marks a main category, any other
    value is the id of the main category this row is a subcategory of.
    ``usages`` counts selections and is used for ranking.
    """

    __tablename__ = TABLE_CATEGORIES
    __table_args__ = (
        UniqueConstraint(KEY_LABEL, KEY_PARENTID),
        {"sqlite_autoincrement": True},
    )

    id = Column(KEY_ROWID, Integer, primary_key=True)
    label = Column(KEY_LABEL, Text, nullable=False)
    parent_id = Column(KEY_PARENTID, Integer, nullable=False, server_default=text("0"), default=0)
    usages = Column(KEY_USAGES, Integer, server_default=text("0"))

    @property
    def is_main(self) -> bool:
        return not self.parent_id


class Payee(Base):
    """Payees and payers share one table."""

    __tablename__ = TABLE_PAYEE
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(KEY_ROWID, Integer, primary_key=True)
    name = Column("name", Text, unique=True, nullable=False)


class PaymentMethod(Base):
    __tablename__ = TABLE_PAYMENT_METHODS
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(KEY_ROWID, Integer, primary_key=True)
    label = Column(KEY_LABEL, Text, nullable=False)
    type = Column("type", Integer, server_default=text("0"))


class AccountTypePaymentMethod(Base):
    """Which payment methods are offered for which account types."""

    __tablename__ = TABLE_ACCOUNTTYPE_METHOD
    __table_args__ = (PrimaryKeyConstraint("type", "method_id"),)

    type = Column("type", Text)
    method_id = Column("method_id", Integer)


class Template(Base):
    """Prototype for recurring transactions; unique title per account."""

    __tablename__ = TABLE_TEMPLATES
    __table_args__ = (
        UniqueConstraint(KEY_ACCOUNTID, KEY_TITLE),
        {"sqlite_autoincrement": True},
    )

    id = Column(KEY_ROWID, Integer, primary_key=True)
    comment = Column(KEY_COMMENT, Text, nullable=False)
    amount = Column(KEY_AMOUNT, Integer, nullable=False)
    cat_id = Column(KEY_CATID, Integer)
    account_id = Column(KEY_ACCOUNTID, Integer)
    payee = Column(KEY_PAYEE, Text)
    transfer_peer = Column(KEY_TRANSFER_PEER, Integer, server_default=text("0"), default=0)
    payment_method_id = Column(KEY_METHODID, Integer)
    title = Column(KEY_TITLE, Text, nullable=False)
    usages = Column(KEY_USAGES, Integer, server_default=text("0"))


# One row per feature activation. Append-only, no key, counted on demand.
feature_used = Table(
    TABLE_FEATURE_USED,
    Base.metadata,
    Column("feature", Text, nullable=False),
)
