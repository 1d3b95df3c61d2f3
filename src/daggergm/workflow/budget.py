"""Regeneration budget tracking.

Each adventure carries two bounded counters: scaffold regenerations (max
10) and expansion regenerations (max 20, refinements included). The
budget is checked before any LLM call and committed (re-checked and
incremented) inside the same transaction that persists the generated
content, so a failed call never consumes budget and concurrent calls can
never push a counter past its limit.
"""

from __future__ import annotations

from daggergm.core.constants import EXPANSION_REGENERATION_LIMIT, SCAFFOLD_REGENERATION_LIMIT
from daggergm.core.exceptions import LimitExceededError
from daggergm.core.logging import get_logger
from daggergm.models.adventure import Adventure
from daggergm.models.enums import RegenerationKind
from daggergm.models.results import BudgetStatus, RegenerationCounts

logger = get_logger(__name__)

_COUNTER_FIELDS = {
    RegenerationKind.SCAFFOLD: "scaffold_regens_used",
    RegenerationKind.EXPANSION: "expansion_regens_used",
}


class RegenerationBudget:
    """Bounded per-adventure regeneration counters."""

    def __init__(
        self,
        *,
        scaffold_limit: int = SCAFFOLD_REGENERATION_LIMIT,
        expansion_limit: int = EXPANSION_REGENERATION_LIMIT,
    ) -> None:
        self._limits = {
            RegenerationKind.SCAFFOLD: scaffold_limit,
            RegenerationKind.EXPANSION: expansion_limit,
        }

    def limit(self, kind: RegenerationKind) -> int:
        return self._limits[kind]

    def used(self, adventure: Adventure, kind: RegenerationKind) -> int:
        return getattr(adventure, _COUNTER_FIELDS[kind])

    def check(self, adventure: Adventure, kind: RegenerationKind) -> BudgetStatus:
        """Report a counter without changing anything."""
        return BudgetStatus(kind=kind, used=self.used(adventure, kind), limit=self.limit(kind))

    def check_and_reserve(self, adventure: Adventure, kind: RegenerationKind) -> BudgetStatus:
        """Ensure one more regeneration is available before calling the LLM.

        Raises:
            LimitExceededError: If the counter has reached its limit.
        """
        status = self.check(adventure, kind)
        if not status.allowed:
            logger.info(
                "Regeneration limit reached",
                adventure_id=adventure.id,
                kind=str(kind),
                used=status.used,
                limit=status.limit,
            )
            raise LimitExceededError(
                f"{kind.capitalize()} regeneration limit reached ({status.used}/{status.limit})",
                kind=str(kind),
                used=status.used,
                limit=status.limit,
            )
        return status

    def commit(self, adventure: Adventure, kind: RegenerationKind) -> Adventure:
        """Return a copy of ``adventure`` with the counter incremented.

        Called on the freshly read record inside the persistence
        transaction; the limit is checked again against that record.

        Raises:
            LimitExceededError: If a concurrent call used the last slot.
        """
        status = self.check_and_reserve(adventure, kind)
        return adventure.evolve(**{_COUNTER_FIELDS[kind]: status.used + 1})

    def counts(self, adventure: Adventure) -> RegenerationCounts:
        """Used and remaining regenerations for both counters."""
        scaffold = self.check(adventure, RegenerationKind.SCAFFOLD)
        expansion = self.check(adventure, RegenerationKind.EXPANSION)
        return RegenerationCounts(
            scaffold_used=scaffold.used,
            scaffold_remaining=scaffold.remaining,
            expansion_used=expansion.used,
            expansion_remaining=expansion.remaining,
        )


__all__ = [
    "RegenerationBudget",
]
