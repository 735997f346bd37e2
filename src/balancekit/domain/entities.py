"""Domain model entities for balancekit.

These are pure data classes representing business concepts, independent of
database schema. Services and the pure balancing algorithms only ever see
these types; the database layer maps its ORM rows onto them.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from typing import Any, ClassVar, Optional, Union

DEBIT = "debit"
CREDIT = "credit"
BOTH = "both"

ENTRY_TYPES = (DEBIT, CREDIT)
ENTRY_FILTERS = (DEBIT, CREDIT, BOTH)

ACCOUNT_TYPES = ("asset", "liability", "income", "expense", "equity")
DEFAULT_UNIT = "USD"

GENERATED_COMPLEMENTARY = "complementary"

RULE_EDIT = "edit"
RULE_MERGE = "merge"
RULE_COMPLEMENTARY = "complementary"
RULE_TYPES = (RULE_EDIT, RULE_MERGE, RULE_COMPLEMENTARY)


@dataclass(frozen=True)
class Account:
    """Chart-of-accounts node. Only its type and unit matter to the engine."""

    id: int
    name: str
    type: str
    unit: str
    parent_id: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class GeneratedMarker:
    """Provenance tag carried only by engine-generated entries."""

    kind: str


@dataclass(frozen=True)
class Entry:
    """One line item of a transaction.

    The amount is always a positive magnitude; direction lives in ``type``.
    ``id`` and ``transaction_id`` are None for entries not yet stored.
    """

    account_id: int
    amount: Decimal
    type: str
    unit: str = DEFAULT_UNIT
    description: Optional[str] = None
    generated: Optional[GeneratedMarker] = None
    id: Optional[int] = None
    transaction_id: Optional[int] = None

    def is_generated(self, kind: Optional[str] = None) -> bool:
        """Return True if the engine produced this entry (optionally of ``kind``)."""
        if self.generated is None:
            return False
        return kind is None or self.generated.kind == kind


@dataclass(frozen=True)
class Transaction:
    """Transaction aggregate with its ordered entries.

    ``is_balanced`` is the cached flag as stored; it is always recomputed by
    the database layer whenever entries change.
    """

    id: int
    date: date
    description: Optional[str]
    reference: Optional[str]
    notes: Optional[str]
    entries: tuple[Entry, ...]
    is_balanced: bool
    created_at: datetime

    def entry(self, entry_id: int) -> Optional[Entry]:
        """Return the entry with ``entry_id`` or None."""
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def has_generated_entries(self, kind: str = GENERATED_COMPLEMENTARY) -> bool:
        """Return True if any entry carries the given provenance kind."""
        return any(entry.is_generated(kind) for entry in self.entries)


@dataclass(frozen=True)
class DestinationSpec:
    """Where a complementary split sends money: a ratio or a fixed amount."""

    account_id: int
    ratio: Optional[Decimal] = None
    absolute_amount: Optional[Decimal] = None


@dataclass(frozen=True)
class EditPayload:
    """Edit rules replace the transaction description."""

    new_description: str


@dataclass(frozen=True)
class MergePayload:
    """Merge rules pair transactions up to ``max_date_difference`` days apart."""

    max_date_difference: int


@dataclass(frozen=True)
class ComplementaryPayload:
    """Complementary rules generate offsetting entries."""

    destination_accounts: tuple[DestinationSpec, ...]


RulePayload = Union[EditPayload, MergePayload, ComplementaryPayload]


@dataclass(frozen=True)
class MatchCriteria:
    """The matchable part of a rule or an ad-hoc query."""

    pattern: Optional[str]
    source_accounts: tuple[int, ...] = ()
    entry_type: str = BOTH


@dataclass(frozen=True)
class Rule:
    """Stored rule: shared base fields plus a variant payload tagged by ``rule_type``."""

    id: int
    name: str
    rule_type: str
    pattern: str
    payload: RulePayload
    source_accounts: tuple[int, ...] = ()
    entry_type: str = BOTH
    auto_apply: bool = False
    priority: int = 0
    is_enabled: bool = True
    is_invalid: bool = False
    invalid_reason: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def criteria(self) -> MatchCriteria:
        return MatchCriteria(
            pattern=self.pattern,
            source_accounts=self.source_accounts,
            entry_type=self.entry_type,
        )

    def referenced_accounts(self) -> set[int]:
        """Return every account id this rule points at."""
        account_ids = set(self.source_accounts)
        if isinstance(self.payload, ComplementaryPayload):
            account_ids.update(d.account_id for d in self.payload.destination_accounts)
        return account_ids


@dataclass(frozen=True)
class MassQuery:
    """Date-bounded, optionally filtered selection of transactions."""

    start_date: Optional[date]
    end_date: Optional[date]
    pattern: Optional[str] = None
    source_accounts: tuple[int, ...] = ()

    @property
    def criteria(self) -> MatchCriteria:
        return MatchCriteria(pattern=self.pattern, source_accounts=self.source_accounts)


@dataclass(frozen=True)
class ComplementaryAdd:
    """Append ratio splits that offset a fully unbalanced transaction."""

    type: ClassVar[str] = "ComplementaryAdd"
    destination: tuple[DestinationSpec, ...]


@dataclass(frozen=True)
class EditFields:
    """Assign header fields (description, reference, notes)."""

    type: ClassVar[str] = "EditFields"
    fields: dict[str, Any]


@dataclass(frozen=True)
class MergeInto:
    """Replace generated entries with a real counterpart transaction."""

    type: ClassVar[str] = "MergeInto"
    max_date_difference: int = 15


MassAction = Union[ComplementaryAdd, EditFields, MergeInto]


# Result records returned by services


@dataclass(frozen=True)
class ApplyResult:
    """Outcome of applying the first applicable rule to one transaction."""

    success: bool
    message: str
    transaction_id: int
    applied_rule: Optional[int] = None
    created_entries: tuple[Entry, ...] = ()
    is_now_balanced: bool = False


@dataclass(frozen=True)
class BulkDetail:
    """Per-transaction line in a bulk report."""

    transaction_id: int
    status: str
    message: str
    applied_rule: Optional[int] = None


@dataclass
class BulkApplyResult:
    """Aggregate report of a bulk rule application."""

    total: int = 0
    successful: int = 0
    skipped: int = 0
    failed: int = 0
    cancelled: bool = False
    details: list[BulkDetail] = field(default_factory=list)


@dataclass(frozen=True)
class ProgressSnapshot:
    """Pushed to an optional progress callback between batch items."""

    processed: int
    matched: int
    modified: int


@dataclass(frozen=True)
class EligibilityPreview:
    """Count of candidates and how many the action would touch."""

    total_candidates: int
    eligible_count: int


@dataclass(frozen=True)
class MassError:
    """A transaction the mass engine could not process."""

    transaction_id: int
    message: str


@dataclass
class MassApplyResult:
    """Counters for a mass apply run."""

    processed: int = 0
    eligible: int = 0
    modified: int = 0
    failed: int = 0
    cancelled: bool = False
    errors: list[MassError] = field(default_factory=list)


@dataclass(frozen=True)
class MoveResult:
    """Destination after a single entry move and what happened to the source."""

    transaction: Transaction
    source_transaction_id: int
    source_deleted: bool


@dataclass(frozen=True)
class SplitResult:
    """Both halves of a split transaction."""

    source: Transaction
    created: Transaction


@dataclass(frozen=True)
class RuleTestResult:
    """Dry-run of a rule against a sample description and amount."""

    is_match: bool
    destination_entries: tuple[Any, ...] = ()


@dataclass(frozen=True)
class RulePreview:
    """Transactions an unsaved rule would match."""

    matching_transactions: tuple[Transaction, ...]
    total_matching: int
    total_unbalanced: int
