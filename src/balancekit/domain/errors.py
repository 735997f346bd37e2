"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for callers that only care about "bad request".
    """


class ValidationError(DomainError):
    """Malformed rule, query or a violated precondition. Never retried."""


class NotFoundError(DomainError):
    """Referenced transaction, entry, rule or account does not exist."""


class InternalError(DomainError):
    """Storage failure or unexpected exception while computing a result."""


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def entry_not_found(entry_id: int) -> str:
    """Return message for missing entry."""
    return f"Entry {entry_id} not found"


def rule_not_found(rule_id: int) -> str:
    """Return message for missing rule."""
    return f"Rule {rule_id} not found"


def invalid_pattern(pattern: str, reason: str) -> str:
    """Return message for a pattern that does not compile."""
    return f"Invalid pattern '{pattern}': {reason}"


def opposite_types_required(source_id: int, target_id: int) -> str:
    """Return message when two transactions lean the same way."""
    return (
        f"Cannot merge transactions {source_id} and {target_id}: "
        "opposite types required"
    )


def account_delete_blocked(account_id: int, entry_count: int) -> str:
    """Return message when an account still has entries posted to it."""
    return (
        f"Cannot delete account {account_id}: it has {entry_count} "
        f"entr{'ies' if entry_count != 1 else 'y'}. "
        "Please move or delete them first."
    )


def account_has_children(account_id: int, child_count: int) -> str:
    """Return message when other accounts still have this one as parent."""
    return (
        f"Cannot delete account {account_id}: it has {child_count} "
        f"child account{'s' if child_count != 1 else ''}. "
        "Please delete or re-parent them first."
    )
