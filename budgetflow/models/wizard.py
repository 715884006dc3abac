"""Wizard state models for BudgetFlow."""

from typing import Dict, Optional

from pydantic import BaseModel, Field

from budgetflow.models.budget import BudgetConfiguration, BudgetEntity, BudgetTemplate


STEP_TITLES = (
    "Select Template",
    "Basic Configuration",
    "Advanced Configuration",
    "Review and Generate",
)


class WizardState(BaseModel):
    """State owned by one budget generation workflow.

    ``current_step`` is 1-based and stays within ``[1, total_steps]``.
    """

    current_step: int = Field(default=1, ge=1)
    total_steps: int = Field(default=4, ge=1)
    selected_template: Optional[BudgetTemplate] = None
    name: str = ""
    description: str = ""
    config: BudgetConfiguration = Field(default_factory=BudgetConfiguration)

    generating: bool = False
    generated: Optional[BudgetEntity] = None
    error: Optional[str] = None

    class Config:
        validate_assignment = True


class StepInfo(BaseModel):
    """Read-only navigation view of the wizard."""

    current: int
    total: int
    percentage: float
    is_first: bool
    is_last: bool
    can_proceed: bool
    can_go_back: bool
    title: str
    errors: Dict[str, str] = Field(default_factory=dict)
