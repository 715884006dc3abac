"""BudgetFlow - construction budget generation and comparison core.

This package contains the non-presentational core of the budget tooling:
- Generation wizard: step validation and the four-step configuration workflow
- Comparison: bounded budget selection and cross-budget analytics
- Remote gateway: request/response boundary to the budgets backend
"""

__version__ = "1.0.0"
