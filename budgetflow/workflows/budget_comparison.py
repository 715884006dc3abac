"""Budget comparison workflow for BudgetFlow.

Loads candidate budgets, keeps the bounded selection, submits comparisons
and exports them. Analytics views are recomputed from the current selection
on every read.
"""

from datetime import date
from typing import List, Optional

import structlog

from budgetflow.config.errors import ComparisonError, GatewayError, SelectionError
from budgetflow.config.settings import settings
from budgetflow.models.budget import BudgetEntity, BudgetFilters, Pagination
from budgetflow.models.comparison import (
    BudgetTotals,
    CategoryDifference,
    ComparisonResult,
    ComparisonStats,
    ExportedFile,
    ExportFormat,
    SignificantChange,
)
from budgetflow.services import comparison_analytics
from budgetflow.services.budget_gateway import BudgetGateway
from budgetflow.utils.scheduling import Debouncer, WorkflowScope
from budgetflow.workflows.comparison_selector import ComparisonSelector

logger = structlog.get_logger()


class BudgetComparisonWorkflow:
    """State and operations of the budget comparison view.

    Remote failures never escape: they are stored as ``error``. Results that
    arrive after the owning scope closed, or after the selection changed, are
    discarded.
    """

    def __init__(
        self,
        gateway: BudgetGateway,
        scope: Optional[WorkflowScope] = None,
        project_id: Optional[str] = None,
        max_comparisons: Optional[int] = None,
        search_delay: Optional[float] = None,
    ):
        self.gateway = gateway
        self.scope = scope or WorkflowScope("budget_comparison")
        self.selector = ComparisonSelector(max_comparisons)
        self.filters = BudgetFilters(project_id=project_id)

        self.available_budgets: List[BudgetEntity] = []
        self.pagination = Pagination()
        self.comparison: Optional[ComparisonResult] = None
        self._comparison_revision = -1
        self.comparison_name = ""

        self.loading_budgets = False
        self.loading_comparison = False
        self.exporting = False
        self.error: Optional[str] = None

        self._load_request = 0
        self._search = Debouncer(
            self.scope,
            settings.search_debounce_seconds if search_delay is None else search_delay,
            self._run_search,
        )

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    @property
    def selected_budgets(self) -> List[BudgetEntity]:
        return list(self.selector.selected)

    @property
    def can_compare(self) -> bool:
        return self.selector.can_compare

    @property
    def has_max_selection(self) -> bool:
        return self.selector.has_max_selection

    def is_budget_selected(self, budget_id: str) -> bool:
        return self.selector.is_selected(budget_id)

    def toggle_budget(self, budget: BudgetEntity) -> bool:
        changed = self.selector.toggle(budget)
        self.error = self.selector.error
        if changed:
            self._drop_stale_comparison()
        return changed

    def select_budgets(self, budgets: List[BudgetEntity]) -> bool:
        changed = self.selector.select_many(budgets)
        self.error = self.selector.error
        if changed:
            self._drop_stale_comparison()
        return changed

    def _drop_stale_comparison(self) -> None:
        """Forget a comparison built for a selection that no longer exists."""
        if self.comparison is not None and self._comparison_revision != self.selector.revision:
            logger.info("comparison_dropped", comparison_id=self.comparison.id, reason="selection_changed")
            self.comparison = None

    def clear_selection(self) -> None:
        """Empty the selection and drop the comparison built from it."""
        self.selector.clear()
        self.comparison = None
        self.error = None

    def set_comparison_name(self, name: str) -> None:
        self.comparison_name = name

    def clear_error(self) -> None:
        self.error = None
        self.selector.clear_error()

    # -------------------------------------------------------------------------
    # Local analytics (recomputed on every read)
    # -------------------------------------------------------------------------

    @property
    def totals_summary(self) -> List[BudgetTotals]:
        return comparison_analytics.compute_totals_summary(self.selector.selected)

    @property
    def stats(self) -> Optional[ComparisonStats]:
        return comparison_analytics.compute_stats(self.selector.selected)

    @property
    def category_differences(self) -> List[CategoryDifference]:
        return comparison_analytics.compute_category_differences(self.selector.selected)

    @property
    def significant_changes(self) -> List[SignificantChange]:
        return comparison_analytics.rank_significant_changes(self.selector.selected)

    # -------------------------------------------------------------------------
    # Candidates
    # -------------------------------------------------------------------------

    async def load_available_budgets(self, filters: Optional[BudgetFilters] = None) -> None:
        """Fetch comparable budgets; only the latest request is applied."""
        if filters is not None:
            self.filters = filters
        self._load_request += 1
        request_id = self._load_request
        self.loading_budgets = True
        self.error = None

        try:
            page = await self.gateway.list_candidate_budgets(self.filters)
        except GatewayError as e:
            if self._is_current_load(request_id):
                self.loading_budgets = False
                self.error = e.message
            return
        except Exception as e:
            logger.exception("comparison_load_failed", error=str(e))
            if self._is_current_load(request_id):
                self.loading_budgets = False
                self.error = f"Failed to load budgets: {str(e)}"
            return

        if not self._is_current_load(request_id):
            logger.info("comparison_load_discarded", request_id=request_id)
            return
        self.available_budgets = page.budgets
        self.pagination = page.pagination
        self.loading_budgets = False
        logger.info("comparison_budgets_loaded", count=len(page.budgets), total=page.pagination.total)

    def _is_current_load(self, request_id: int) -> bool:
        return self.scope.is_active and request_id == self._load_request

    def search(self, term: str) -> None:
        """Debounced search: only the last term typed inside the delay is loaded."""
        self.filters = self.filters.model_copy(update={"search_term": term.strip() or None, "page": 1})
        self._search.trigger()

    def _run_search(self):
        return self.load_available_budgets()

    # -------------------------------------------------------------------------
    # Remote comparison
    # -------------------------------------------------------------------------

    async def perform_comparison(self) -> Optional[ComparisonResult]:
        """Submit the selection to the backend.

        Rejected with an error when fewer than two budgets are selected, and
        ignored while a previous comparison request is in flight.
        """
        if self.loading_comparison:
            logger.info("comparison_submit_ignored_in_flight")
            return None
        if not self.can_compare:
            self.error = SelectionError.too_small().message
            return None

        revision = self.selector.revision
        name = self.comparison_name or f"Comparison {date.today().isoformat()}"
        self.loading_comparison = True
        self.error = None

        try:
            result = await self.gateway.submit_comparison(self.selector.selected_ids, name)
        except GatewayError as e:
            self._finish_comparison(revision, error=e.message)
            return None
        except Exception as e:
            logger.exception("comparison_submit_failed", error=str(e))
            self._finish_comparison(revision, error=f"Failed to compare budgets: {str(e)}")
            return None

        if not self._finish_comparison(revision, result=result):
            return None
        return result

    def _finish_comparison(
        self,
        revision: int,
        result: Optional[ComparisonResult] = None,
        error: Optional[str] = None,
    ) -> bool:
        if not self.scope.is_active:
            logger.info("comparison_result_discarded", reason="scope_closed")
            return False
        self.loading_comparison = False
        if revision != self.selector.revision:
            logger.info("comparison_result_discarded", reason="selection_changed")
            return False
        if error is not None:
            self.error = error
            return True
        self.comparison = result
        self._comparison_revision = revision
        logger.info("comparison_completed", comparison_id=result.id, budgets=len(result.budgets))
        return True

    async def save_comparison(self) -> Optional[ComparisonResult]:
        if self.comparison is None:
            return None
        comparison_id = self.comparison.id
        try:
            result = await self.gateway.save_comparison(
                comparison_id,
                self.comparison_name or self.comparison.name,
            )
        except GatewayError as e:
            if self.scope.is_active:
                self.error = e.message
            return None
        except Exception as e:
            logger.exception("comparison_save_failed", comparison_id=comparison_id, error=str(e))
            if self.scope.is_active:
                self.error = f"Failed to save comparison: {str(e)}"
            return None

        if not self.scope.is_active or self.comparison is None or self.comparison.id != comparison_id:
            return None
        self.comparison = result
        return result

    async def export_comparison(self, export_format: ExportFormat = ExportFormat.PDF) -> Optional[ExportedFile]:
        """Export the current comparison.

        Returns:
            The file for the caller to save, or None on failure.
        """
        if self.comparison is None:
            self.error = ComparisonError.missing("export").message
            return None
        if self.exporting:
            return None

        comparison_id = self.comparison.id
        self.exporting = True
        try:
            exported = await self.gateway.export_comparison(comparison_id, export_format)
        except GatewayError as e:
            if self.scope.is_active:
                self.error = e.message
            return None
        except Exception as e:
            logger.exception("comparison_export_failed", comparison_id=comparison_id, error=str(e))
            if self.scope.is_active:
                self.error = f"Failed to export comparison: {str(e)}"
            return None
        finally:
            self.exporting = False

        if not self.scope.is_active:
            return None
        logger.info("comparison_exported", filename=exported.filename, size=len(exported.content))
        return exported

    def close(self) -> None:
        """Tear down the view: pending searches and late results are dropped."""
        self._search.cancel()
        self.scope.close()
