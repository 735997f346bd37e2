"""Account domain service."""

import logging
from typing import Optional

from balancekit.database.base import Database
from balancekit.domain.entities import ACCOUNT_TYPES, DEFAULT_UNIT, Account as AccountEntity
from balancekit.domain.errors import (
    NotFoundError,
    ValidationError,
    account_delete_blocked,
    account_has_children,
    account_not_found,
)
from balancekit.domain.rule import RuleService

logger = logging.getLogger(__name__)


class AccountService:
    """Service for looking up and maintaining accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(
        self,
        name: str,
        type: str,
        unit: str = DEFAULT_UNIT,
        parent_id: Optional[int] = None,
    ) -> int:
        """Create a new account.

        Args:
            name: Account name (unique)
            type: One of asset, liability, income, expense, equity
            unit: Currency or asset symbol
            parent_id: Optional parent account ID

        Returns:
            Account ID

        Raises:
            ValidationError: If the name is taken or the type is unknown
            NotFoundError: If the parent account doesn't exist
        """
        if not name or not name.strip():
            raise ValidationError("Account name is required")
        if type not in ACCOUNT_TYPES:
            raise ValidationError(
                f"Invalid account type '{type}'. Expected one of: {', '.join(ACCOUNT_TYPES)}"
            )
        if self.get_account_by_name(name) is not None:
            raise ValidationError(f"Account with name '{name}' already exists")
        if parent_id is not None and self.db.get_account(parent_id) is None:
            raise NotFoundError(account_not_found(parent_id))

        return self.db.create_account(
            name=name.strip(), type=type, unit=(unit or DEFAULT_UNIT).strip(), parent_id=parent_id
        )

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID, or None."""
        return self.db.get_account(account_id)

    def require_account(self, account_id: int) -> AccountEntity:
        """Get account by ID.

        Raises:
            NotFoundError: If the account doesn't exist
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def get_account_by_name(self, name: str) -> Optional[AccountEntity]:
        for account in self.db.list_accounts():
            if account.name == name:
                return account
        return None

    def list_accounts(self) -> list[AccountEntity]:
        return self.db.list_accounts()

    def delete_account(self, account_id: int) -> int:
        """Delete an account and flag every rule that referenced it.

        Returns:
            Number of rules marked invalid

        Raises:
            NotFoundError: If the account doesn't exist
            ValidationError: If entries are still posted to the account or
                child accounts still point at it
        """
        account = self.require_account(account_id)

        entry_count = self.db.get_account_entry_count(account_id)
        if entry_count > 0:
            raise ValidationError(account_delete_blocked(account_id, entry_count))

        child_count = sum(1 for acc in self.db.list_accounts() if acc.parent_id == account_id)
        if child_count > 0:
            raise ValidationError(account_has_children(account_id, child_count))

        with self.db.unit_of_work("delete account"):
            self.db.delete_account(account_id)
            invalidated = RuleService(self.db).invalidate_rules_for_account(
                account_id, f"Account '{account.name}' was deleted"
            )

        logger.info("Deleted account %s, invalidated %d rule(s)", account_id, invalidated)
        return invalidated
