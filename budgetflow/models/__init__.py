"""BudgetFlow data models."""
