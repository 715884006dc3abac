"""BudgetFlow workflows.

This package contains the stateful controllers driven by UI events:
- BudgetWizardController: four-step budget generation wizard
- ComparisonSelector: bounded multi-selection of budgets
- BudgetComparisonWorkflow: candidate loading, comparison and export
"""

from budgetflow.workflows.budget_wizard import BudgetWizardController
from budgetflow.workflows.comparison_selector import ComparisonSelector
from budgetflow.workflows.budget_comparison import BudgetComparisonWorkflow

__all__ = [
    "BudgetWizardController",
    "ComparisonSelector",
    "BudgetComparisonWorkflow",
]
