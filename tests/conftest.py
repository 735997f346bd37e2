"""Shared pytest fixtures for balancekit tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal

import pytest

from balancekit.database.factories import create_sqlite_database
from balancekit.domain.account import AccountService
from balancekit.domain.complementary import ComplementaryMatchService
from balancekit.domain.entities import CREDIT, DEBIT, Entry
from balancekit.domain.mass_edit import MassEditService
from balancekit.domain.restructure import TransactionRestructureService
from balancekit.domain.rule import RuleService
from balancekit.domain.rule_application import RuleApplicationService
from balancekit.domain.transaction import TransactionService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for CLI tests that open their own connection
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def account_service(temp_db):
    return AccountService(temp_db)


@pytest.fixture
def transaction_service(temp_db):
    return TransactionService(temp_db)


@pytest.fixture
def rule_service(temp_db):
    return RuleService(temp_db)


@pytest.fixture
def rule_application_service(temp_db):
    return RuleApplicationService(temp_db)


@pytest.fixture
def match_service(temp_db):
    return ComplementaryMatchService(temp_db)


@pytest.fixture
def restructure_service(temp_db):
    return TransactionRestructureService(temp_db)


@pytest.fixture
def mass_edit_service(temp_db):
    return MassEditService(temp_db)


@pytest.fixture
def accounts(account_service):
    """Create a small chart of accounts and return name -> ID."""
    return {
        "Checking": account_service.create_account("Checking", "asset"),
        "Groceries": account_service.create_account("Groceries", "expense"),
        "Household": account_service.create_account("Household", "expense"),
        "Salary": account_service.create_account("Salary", "income"),
        "Savings EUR": account_service.create_account("Savings EUR", "asset", unit="EUR"),
    }


@pytest.fixture
def make_transaction(transaction_service, accounts):
    """Create a transaction from (account name, type, amount) tuples."""

    def _make(description, entries, txn_date=date(2024, 3, 10), **kwargs):
        return transaction_service.create_transaction(
            date=txn_date,
            description=description,
            entries=[
                Entry(account_id=accounts[name], amount=Decimal(str(amount)), type=entry_type)
                for name, entry_type, amount in entries
            ],
            **kwargs,
        )

    return _make


@pytest.fixture
def one_sided_debit(make_transaction):
    """An imported card payment with only its debit side recorded."""
    return make_transaction("GROCER OUTLET #12", [("Checking", DEBIT, "100.00")])


@pytest.fixture
def one_sided_credit(make_transaction):
    return make_transaction("Card refund", [("Checking", CREDIT, "100.00")], txn_date=date(2024, 3, 12))


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
