"""BudgetFlow configuration.

This package contains:
- settings: Environment variables and configuration
- errors: Custom exceptions and error codes
"""

from budgetflow.config.settings import settings
from budgetflow.config.errors import BudgetFlowError

__all__ = [
    "settings",
    "BudgetFlowError",
]
