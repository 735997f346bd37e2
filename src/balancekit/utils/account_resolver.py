"""Utility for resolving account names to IDs."""

from balancekit.domain.account import AccountService
from balancekit.domain.errors import NotFoundError, account_not_found


def resolve_account(account_service: AccountService, account: str | int) -> int:
    """Resolve account name or ID to account ID.

    Numeric strings are treated as IDs first, then as names.

    Raises:
        NotFoundError: If no account has that ID or name
    """
    if isinstance(account, int):
        return account_service.require_account(account).id

    text = account.strip()
    if text.isdigit() and account_service.get_account(int(text)) is not None:
        return int(text)

    found = account_service.get_account_by_name(text)
    if found is None:
        if text.isdigit():
            raise NotFoundError(account_not_found(int(text)))
        raise NotFoundError(f"Account '{text}' not found")
    return found.id
