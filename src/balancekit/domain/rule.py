"""Rule domain service: validation, storage and dry runs."""

import logging
from typing import Optional, Sequence

from balancekit.database.base import Database
from balancekit.domain.balance import to_decimal
from balancekit.domain.entities import (
    BOTH,
    ENTRY_FILTERS,
    RULE_COMPLEMENTARY,
    RULE_EDIT,
    RULE_MERGE,
    RULE_TYPES,
    ComplementaryPayload,
    DestinationSpec,
    MatchCriteria,
    Rule as RuleEntity,
    RulePreview,
    RuleTestResult,
)
from balancekit.domain.errors import NotFoundError, ValidationError, account_not_found, rule_not_found
from balancekit.domain.matching import compile_pattern, description_matches, matches
from balancekit.domain.splits import compute_destination_entries, validate_destinations

logger = logging.getLogger(__name__)

MIN_MERGE_DAYS = 1
MAX_MERGE_DAYS = 15


class RuleService:
    """Service for managing balancing and categorization rules.

    Every rule is validated when it is created or updated, so the
    applicators never meet a malformed rule.
    """

    def __init__(self, db: Database):
        """Initialize rule service.

        Args:
            db: Database instance
        """
        self.db = db

    def _validate(
        self,
        name: str,
        rule_type: str,
        pattern: str,
        source_accounts: Sequence[int],
        entry_type: str,
        priority: int,
        new_description: Optional[str],
        max_date_difference: Optional[int],
        destinations: Sequence[DestinationSpec],
    ) -> None:
        if not name or not name.strip():
            raise ValidationError("Rule name is required")
        if rule_type not in RULE_TYPES:
            raise ValidationError(
                f"Invalid rule type '{rule_type}'. Expected one of: {', '.join(RULE_TYPES)}"
            )
        if not pattern or not pattern.strip():
            raise ValidationError("Pattern for matching descriptions is required")
        compile_pattern(pattern)
        if entry_type not in ENTRY_FILTERS:
            raise ValidationError(
                f"Invalid entry type '{entry_type}'. Expected one of: {', '.join(ENTRY_FILTERS)}"
            )
        if priority < 0:
            raise ValidationError("Priority must not be negative")

        if rule_type == RULE_EDIT:
            if not new_description or not new_description.strip():
                raise ValidationError("Edit rules require a new description")
        elif rule_type == RULE_MERGE:
            if max_date_difference is None or not (
                MIN_MERGE_DAYS <= max_date_difference <= MAX_MERGE_DAYS
            ):
                raise ValidationError(
                    f"Merge rules require a max date difference between "
                    f"{MIN_MERGE_DAYS} and {MAX_MERGE_DAYS} days"
                )
        elif rule_type == RULE_COMPLEMENTARY:
            validate_destinations(destinations)

        self._require_accounts(list(source_accounts) + [d.account_id for d in destinations])

    def _require_accounts(self, account_ids: Sequence[int]) -> None:
        wanted = set(account_ids)
        known = self.db.get_account_units(wanted)
        missing = sorted(wanted - set(known))
        if missing:
            raise NotFoundError(account_not_found(missing[0]))

    @staticmethod
    def _normalize_destinations(destinations: Sequence[DestinationSpec]) -> list[DestinationSpec]:
        return [
            DestinationSpec(
                account_id=d.account_id,
                ratio=to_decimal(d.ratio) if d.ratio is not None else None,
                absolute_amount=(
                    to_decimal(d.absolute_amount) if d.absolute_amount is not None else None
                ),
            )
            for d in destinations
        ]

    def create_rule(
        self,
        name: str,
        rule_type: str,
        pattern: str,
        source_accounts: Sequence[int] = (),
        entry_type: str = BOTH,
        auto_apply: bool = False,
        priority: int = 0,
        is_enabled: bool = True,
        description: Optional[str] = None,
        new_description: Optional[str] = None,
        max_date_difference: Optional[int] = None,
        destinations: Sequence[DestinationSpec] = (),
    ) -> int:
        """Create a rule.

        Args:
            name: Rule name
            rule_type: edit, merge or complementary
            pattern: Regular expression matched case-insensitively against descriptions
            source_accounts: Account IDs an entry must be on (empty means any)
            entry_type: debit, credit or both
            auto_apply: Apply automatically when transactions are created
            priority: Higher priorities are tried first
            is_enabled: Disabled rules are never applied
            description: Optional free text
            new_description: Replacement description (edit rules)
            max_date_difference: Days two transactions may be apart (merge rules)
            destinations: Destination splits (complementary rules)

        Returns:
            Rule ID

        Raises:
            ValidationError: If the rule is malformed
            NotFoundError: If a referenced account doesn't exist
        """
        destinations = self._normalize_destinations(destinations) if rule_type == RULE_COMPLEMENTARY else []
        self._validate(
            name=name,
            rule_type=rule_type,
            pattern=pattern,
            source_accounts=source_accounts,
            entry_type=entry_type,
            priority=priority,
            new_description=new_description,
            max_date_difference=max_date_difference,
            destinations=destinations,
        )

        rule_id = self.db.create_rule(
            name=name.strip(),
            rule_type=rule_type,
            pattern=pattern.strip(),
            source_accounts=source_accounts,
            entry_type=entry_type,
            auto_apply=auto_apply,
            priority=priority,
            is_enabled=is_enabled,
            description=description,
            new_description=new_description if rule_type == RULE_EDIT else None,
            max_date_difference=max_date_difference if rule_type == RULE_MERGE else None,
            destinations=destinations,
        )
        logger.info("Created %s rule %s (%s)", rule_type, rule_id, name)
        return rule_id

    def get_rule(self, rule_id: int) -> Optional[RuleEntity]:
        return self.db.get_rule(rule_id)

    def require_rule(self, rule_id: int) -> RuleEntity:
        """Get rule by ID.

        Raises:
            NotFoundError: If the rule doesn't exist
        """
        rule = self.db.get_rule(rule_id)
        if rule is None:
            raise NotFoundError(rule_not_found(rule_id))
        return rule

    def list_rules(
        self,
        enabled_only: bool = False,
        auto_apply_only: bool = False,
        rule_type: Optional[str] = None,
    ) -> list[RuleEntity]:
        """List rules, highest priority first (ties by creation order)."""
        return self.db.list_rules(
            enabled_only=enabled_only, auto_apply_only=auto_apply_only, rule_type=rule_type
        )

    def update_rule(
        self,
        rule_id: int,
        name: Optional[str] = None,
        pattern: Optional[str] = None,
        source_accounts: Optional[Sequence[int]] = None,
        entry_type: Optional[str] = None,
        auto_apply: Optional[bool] = None,
        priority: Optional[int] = None,
        is_enabled: Optional[bool] = None,
        description: Optional[str] = None,
        new_description: Optional[str] = None,
        max_date_difference: Optional[int] = None,
        destinations: Optional[Sequence[DestinationSpec]] = None,
    ) -> None:
        """Update a rule; the merged result is validated like a new rule.

        A successful update clears a previous invalid flag, since every
        referenced account has just been checked.

        Raises:
            NotFoundError: If the rule or a referenced account doesn't exist
            ValidationError: If the updated rule would be malformed
        """
        current = self.require_rule(rule_id)
        payload = current.payload

        merged_destinations: list[DestinationSpec] = []
        if current.rule_type == RULE_COMPLEMENTARY:
            merged_destinations = self._normalize_destinations(
                destinations if destinations is not None else payload.destination_accounts
            )

        self._validate(
            name=name if name is not None else current.name,
            rule_type=current.rule_type,
            pattern=pattern if pattern is not None else current.pattern,
            source_accounts=source_accounts if source_accounts is not None else current.source_accounts,
            entry_type=entry_type if entry_type is not None else current.entry_type,
            priority=priority if priority is not None else current.priority,
            new_description=(
                new_description
                if new_description is not None
                else getattr(payload, "new_description", None)
            ),
            max_date_difference=(
                max_date_difference
                if max_date_difference is not None
                else getattr(payload, "max_date_difference", None)
            ),
            destinations=merged_destinations,
        )

        with self.db.unit_of_work("update rule"):
            self.db.update_rule(
                rule_id,
                name=name,
                pattern=pattern,
                source_accounts=source_accounts,
                entry_type=entry_type,
                auto_apply=auto_apply,
                priority=priority,
                is_enabled=is_enabled,
                description=description,
                new_description=new_description,
                max_date_difference=max_date_difference,
                destinations=merged_destinations if destinations is not None else None,
            )
            if current.is_invalid:
                self.db.set_rule_invalid(rule_id, False)

    def set_enabled(self, rule_id: int, is_enabled: bool) -> None:
        self.require_rule(rule_id)
        self.db.update_rule(rule_id, is_enabled=is_enabled)

    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule.

        Raises:
            NotFoundError: If the rule doesn't exist
        """
        self.require_rule(rule_id)
        self.db.delete_rule(rule_id)
        logger.info("Deleted rule %s", rule_id)

    def invalidate_rules_for_account(self, account_id: int, reason: str) -> int:
        """Mark every rule referencing ``account_id`` as invalid.

        Returns:
            Number of rules flagged
        """
        flagged = 0
        for rule in self.db.list_rules():
            if account_id in rule.referenced_accounts():
                self.db.set_rule_invalid(rule.id, True, reason)
                flagged += 1
        return flagged

    def test_rule(self, rule_id: int, description: str, amount) -> RuleTestResult:
        """Check a sample description and preview the splits it would produce.

        Only the pattern is checked; account and entry-type filters need a
        real transaction.

        Raises:
            NotFoundError: If the rule doesn't exist
            ValidationError: If description or amount is missing
        """
        if not description or amount is None:
            raise ValidationError("Description and amount are required for testing")
        amount = to_decimal(amount)
        if amount <= 0:
            raise ValidationError("Amount must be positive")

        rule = self.require_rule(rule_id)
        is_match = description_matches(rule.pattern, description)
        splits = ()
        if is_match and isinstance(rule.payload, ComplementaryPayload):
            splits = tuple(compute_destination_entries(amount, rule.payload.destination_accounts))
        return RuleTestResult(is_match=is_match, destination_entries=splits)

    def preview_matching(
        self,
        pattern: str,
        source_accounts: Sequence[int] = (),
        entry_type: str = BOTH,
    ) -> RulePreview:
        """List stored transactions an unsaved rule would match.

        Raises:
            ValidationError: If the pattern is missing or invalid
        """
        if not pattern:
            raise ValidationError("A pattern is required for previewing rules")
        compile_pattern(pattern)
        if entry_type not in ENTRY_FILTERS:
            raise ValidationError(f"Invalid entry type '{entry_type}'")

        criteria = MatchCriteria(
            pattern=pattern, source_accounts=tuple(source_accounts), entry_type=entry_type
        )
        transactions = self.db.list_transactions()
        matching = tuple(t for t in transactions if matches(criteria, t))
        unbalanced = sum(1 for t in transactions if not t.is_balanced)
        return RulePreview(
            matching_transactions=matching,
            total_matching=len(matching),
            total_unbalanced=unbalanced,
        )
