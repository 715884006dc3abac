"""Pytest configuration and shared fixtures for BudgetFlow tests."""

import os
import sys
import pytest
from unittest.mock import AsyncMock, MagicMock


# ============================================================================
# Ensure the repository root is importable when running from a checkout
# ============================================================================
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


# ============================================================================
# Gateway Mocks
# ============================================================================

@pytest.fixture
def mock_gateway():
    """Mock BudgetGateway with async operations."""
    from budgetflow.services.budget_gateway import BudgetGateway

    gateway = MagicMock(spec=BudgetGateway)
    gateway.create_budget = AsyncMock()
    gateway.list_candidate_budgets = AsyncMock()
    gateway.list_templates = AsyncMock(return_value=[])
    gateway.submit_comparison = AsyncMock()
    gateway.save_comparison = AsyncMock()
    gateway.export_comparison = AsyncMock()
    return gateway


# ============================================================================
# Workflow Fixtures
# ============================================================================

@pytest.fixture
def wizard(mock_gateway):
    """Wizard controller without auto-advance."""
    from budgetflow.workflows.budget_wizard import BudgetWizardController

    return BudgetWizardController(gateway=mock_gateway, auto_advance=False)


@pytest.fixture
def comparison_workflow(mock_gateway):
    """Comparison workflow with a bound of 4 and no search delay."""
    from budgetflow.workflows.budget_comparison import BudgetComparisonWorkflow

    return BudgetComparisonWorkflow(gateway=mock_gateway, max_comparisons=4, search_delay=0)


# ============================================================================
# Sample Data Fixtures
# ============================================================================

@pytest.fixture
def house_budgets():
    """Three approved alternatives of the same house."""
    from tests.fixtures.mock_budget_data import HOUSE_BASE, HOUSE_PREMIUM, HOUSE_ECONOMY

    return [HOUSE_BASE, HOUSE_PREMIUM, HOUSE_ECONOMY]


@pytest.fixture
def coastal_template():
    from tests.fixtures.mock_budget_data import COASTAL_TEMPLATE

    return COASTAL_TEMPLATE


@pytest.fixture
def created_budget_payload():
    """Backend response for a created budget."""
    return {
        "id": "bud-new",
        "name": "Casa 120m2",
        "status": "draft",
        "budgetType": "complete_project",
        "summary": {
            "materialsTotal": 42000.0,
            "laborTotal": 21000.0,
            "indirectCostsTotal": 6000.0,
            "professionalFeesTotal": 4000.0,
            "contingencyTotal": 3650.0,
            "taxTotal": 9198.0,
            "subtotal": 73000.0,
            "grandTotal": 85848.0,
            "currency": "USD"
        },
        "lineItems": []
    }
