"""SQLAlchemy models for balancekit database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    CheckConstraint,
    event,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


class Account(Base):
    """Chart-of-accounts node."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    type = Column(String, nullable=False)
    unit = Column(String, nullable=False, default="USD")
    parent_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    parent = relationship("Account", remote_side=[id], backref="children")
    entries = relationship("Entry", back_populates="account")


class Transaction(Base):
    """Transaction header; owns its entries."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False)
    description = Column(String, nullable=True)
    reference = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    # Derived from entries, recomputed on every entry write
    is_balanced = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    entries = relationship(
        "Entry",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by=lambda: [Entry.position, Entry.id],
    )


class Entry(Base):
    """Ledger entry (line item)."""

    __tablename__ = "entries"

    id = Column(Integer, primary_key=True)
    transaction_id = Column(
        Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False
    )
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    type = Column(String, nullable=False)
    unit = Column(String, nullable=False, default="USD")
    description = Column(String, nullable=True)
    generated_kind = Column(String, nullable=True)
    position = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_entry_amount_positive"),
        CheckConstraint("type IN ('debit', 'credit')", name="ck_entry_type"),
    )

    # Relationships
    transaction = relationship("Transaction", back_populates="entries")
    account = relationship("Account", back_populates="entries")


class Rule(Base):
    """Rule model. ``type`` discriminates edit, merge and complementary rules."""

    __tablename__ = "rules"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    type = Column(String, nullable=False)
    pattern = Column(String, nullable=False)
    entry_type = Column(String, nullable=False, default="both")
    auto_apply = Column(Boolean, default=False, nullable=False)
    priority = Column(Integer, default=0, nullable=False)
    is_enabled = Column(Boolean, default=True, nullable=False)
    is_invalid = Column(Boolean, default=False, nullable=False)
    invalid_reason = Column(String, nullable=True)
    # Variant payloads
    new_description = Column(String, nullable=True)
    max_date_difference = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    source_accounts = relationship(
        "RuleSourceAccount",
        back_populates="rule",
        cascade="all, delete-orphan",
        order_by="RuleSourceAccount.account_id",
    )
    destinations = relationship(
        "RuleDestination",
        back_populates="rule",
        cascade="all, delete-orphan",
        order_by="RuleDestination.position",
    )


class RuleSourceAccount(Base):
    """Account filter of a rule. Account ids may dangle once an account is deleted."""

    __tablename__ = "rule_source_accounts"

    rule_id = Column(Integer, ForeignKey("rules.id", ondelete="CASCADE"), primary_key=True)
    account_id = Column(Integer, primary_key=True)

    rule = relationship("Rule", back_populates="source_accounts")


class RuleDestination(Base):
    """Destination split of a complementary rule."""

    __tablename__ = "rule_destinations"

    id = Column(Integer, primary_key=True)
    rule_id = Column(Integer, ForeignKey("rules.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    account_id = Column(Integer, nullable=False)
    ratio = Column(Numeric(10, 6), nullable=True)
    absolute_amount = Column(Numeric(14, 2), nullable=True)

    rule = relationship("Rule", back_populates="destinations")


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """Turn on foreign key enforcement for SQLite connections."""
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
