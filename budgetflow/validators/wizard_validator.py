"""Per-step validation for the budget generation wizard.

Each step maps to a field-level error map. An empty map means the step is
valid; errors are returned as data and never raised.
"""

from typing import Dict, Optional

from budgetflow.models.budget import BudgetConfiguration, BudgetTemplate

MIN_NAME_LENGTH = 3
CONTINGENCY_RANGE = (0.0, 50.0)
TAX_RANGE = (0.0, 30.0)

STEP_TEMPLATE = 1
STEP_BASIC = 2
STEP_ADVANCED = 3
STEP_REVIEW = 4


def _name_error(name: str) -> Optional[str]:
    if not name.strip():
        return "Budget name is required"
    if len(name.strip()) < MIN_NAME_LENGTH:
        return f"Name must be at least {MIN_NAME_LENGTH} characters"
    return None


def _out_of_range(value: Optional[float], bounds) -> bool:
    # Absent values are not checked
    if value is None:
        return False
    low, high = bounds
    return value < low or value > high


def validate_step(
    step: int,
    config: BudgetConfiguration,
    selected_template: Optional[BudgetTemplate],
    name: str,
) -> Dict[str, str]:
    """Validate one wizard step.

    Args:
        step: 1-based wizard step.
        config: Current budget configuration.
        selected_template: Template chosen in step 1, if any.
        name: Budget name entered in step 2.

    Returns:
        Map of field name to error message; empty when the step is valid.
        Unknown steps have no rules and always validate.
    """
    errors: Dict[str, str] = {}

    if step == STEP_TEMPLATE:
        if selected_template is None:
            errors["template"] = "A template must be selected"

    elif step == STEP_BASIC:
        name_error = _name_error(name)
        if name_error:
            errors["name"] = name_error

    elif step == STEP_ADVANCED:
        if _out_of_range(config.contingency_percentage, CONTINGENCY_RANGE):
            errors["contingency"] = "Contingency percentage must be between 0 and 50%"
        if _out_of_range(config.tax_percentage, TAX_RANGE):
            errors["tax"] = "Tax percentage must be between 0 and 30%"

    elif step == STEP_REVIEW:
        # Review re-checks every earlier required field
        if selected_template is None or _name_error(name):
            errors["general"] = "Earlier steps have errors that must be fixed"

    return errors


def is_valid(errors: Dict[str, str]) -> bool:
    return not errors
