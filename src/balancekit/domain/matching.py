"""Rule-to-transaction matching.

``matches`` is the only matching predicate in the code base. Per-transaction
application, bulk application, rule previews and the mass engine all call
it, so their semantics cannot drift apart.
"""

import re
from functools import lru_cache
from typing import Optional

from balancekit.domain.entities import BOTH, Entry, MatchCriteria, Transaction
from balancekit.domain.errors import ValidationError, invalid_pattern


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> re.Pattern:
    """Compile a case-insensitive description pattern.

    Raises:
        ValidationError: If the pattern is not a valid regular expression
    """
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise ValidationError(invalid_pattern(pattern, str(e))) from e


def description_matches(pattern: Optional[str], description: Optional[str]) -> bool:
    """An empty pattern matches everything; a missing description matches nothing else."""
    if not pattern:
        return True
    if not description:
        return False
    return compile_pattern(pattern).search(description) is not None


def entry_passes_filter(entry: Entry, criteria: MatchCriteria) -> bool:
    if criteria.entry_type != BOTH and entry.type != criteria.entry_type:
        return False
    if criteria.source_accounts and entry.account_id not in criteria.source_accounts:
        return False
    return True


def matches(criteria: MatchCriteria, transaction: Transaction) -> bool:
    """Return True if ``transaction`` satisfies the pattern and entry filters.

    Rules and mass queries pass their ``criteria`` property.
    """

    if not description_matches(criteria.pattern, transaction.description):
        return False

    if criteria.entry_type == BOTH and not criteria.source_accounts:
        return True

    return any(entry_passes_filter(entry, criteria) for entry in transaction.entries)


def find_source_entry(criteria: MatchCriteria, transaction: Transaction) -> Optional[Entry]:
    """First entry passing the filters with a positive amount."""
    for entry in transaction.entries:
        if entry.amount > 0 and entry_passes_filter(entry, criteria):
            return entry
    return None
