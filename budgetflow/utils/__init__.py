"""Utility modules for BudgetFlow."""

from budgetflow.utils.log_setup import configure_logging
from budgetflow.utils.scheduling import Debouncer, WorkflowScope

__all__ = [
    "configure_logging",
    "Debouncer",
    "WorkflowScope",
]
