"""Bounded budget selection for comparisons."""

from typing import Iterable, List, Optional, Tuple

import structlog

from budgetflow.config.errors import InvariantViolation, SelectionError
from budgetflow.config.settings import settings
from budgetflow.models.budget import BudgetEntity

logger = structlog.get_logger()

MIN_COMPARISON_SIZE = 2


class ComparisonSelector:
    """Ordered set of budgets chosen for comparison.

    The selection never holds the same budget twice and never grows past
    ``max_size``; adding beyond the bound is rejected and leaves the
    selection unchanged. Rejections are reported through ``error``.

    ``revision`` increases on every change so callers can tell whether a
    result computed for an earlier selection is still current.
    """

    def __init__(self, max_size: Optional[int] = None):
        self.max_size = max_size if max_size is not None else settings.max_comparisons
        self._selected: List[BudgetEntity] = []
        self.error: Optional[str] = None
        self.revision = 0

    @property
    def selected(self) -> Tuple[BudgetEntity, ...]:
        return tuple(self._selected)

    @property
    def selected_ids(self) -> List[str]:
        return [budget.id for budget in self._selected]

    @property
    def size(self) -> int:
        return len(self._selected)

    @property
    def can_compare(self) -> bool:
        return self.size >= MIN_COMPARISON_SIZE

    @property
    def has_max_selection(self) -> bool:
        return self.size >= self.max_size

    def is_selected(self, budget_id: str) -> bool:
        return any(budget.id == budget_id for budget in self._selected)

    def toggle(self, budget: BudgetEntity) -> bool:
        """Remove ``budget`` if selected, otherwise append it.

        Returns:
            True if the selection changed, False if the add was rejected.
        """
        if self.is_selected(budget.id):
            self._selected = [b for b in self._selected if b.id != budget.id]
            self._changed()
            logger.debug("comparison_budget_deselected", budget_id=budget.id, size=self.size)
            return True

        if self.has_max_selection:
            self.error = SelectionError.limit_exceeded(self.max_size).message
            logger.info("comparison_selection_rejected", budget_id=budget.id, max_size=self.max_size)
            return False

        self._selected.append(budget)
        self.error = None
        self._changed()
        logger.debug("comparison_budget_selected", budget_id=budget.id, size=self.size)
        return True

    def select_many(self, budgets: Iterable[BudgetEntity]) -> bool:
        """Replace the selection with ``budgets``.

        Duplicates collapse to their first occurrence. A list larger than the
        bound is rejected as a whole.
        """
        unique: List[BudgetEntity] = []
        for budget in budgets:
            if all(b.id != budget.id for b in unique):
                unique.append(budget)

        if len(unique) > self.max_size:
            self.error = SelectionError.limit_exceeded(self.max_size).message
            logger.info("comparison_selection_rejected", requested=len(unique), max_size=self.max_size)
            return False

        self._selected = unique
        self.error = None
        self._changed()
        return True

    def clear(self) -> None:
        self._selected = []
        self.error = None
        self._changed()

    def clear_error(self) -> None:
        self.error = None

    def _changed(self) -> None:
        self.revision += 1
        self._check_invariants()

    def _check_invariants(self) -> None:
        ids = self.selected_ids
        if len(ids) > self.max_size or len(set(ids)) != len(ids):
            raise InvariantViolation(
                "Comparison selection broke its bound or uniqueness",
                details={"ids": ids, "max_size": self.max_size},
            )
