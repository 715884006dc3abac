"""Comparison models for BudgetFlow.

Derived analytics views (statistics, category differences, significant
changes) and the persisted comparison returned by the backend.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ChangeType(str, Enum):
    """Kind of significant change between budgets."""

    COST_INCREASE = "cost_increase"
    COST_DECREASE = "cost_decrease"
    QUANTITY_CHANGE = "quantity_change"
    NEW_ITEM = "new_item"
    REMOVED_ITEM = "removed_item"


class ComparisonType(str, Enum):
    VERSION_COMPARISON = "version_comparison"
    TEMPLATE_COMPARISON = "template_comparison"
    PROJECT_COMPARISON = "project_comparison"


class ExportFormat(str, Enum):
    """File formats a comparison can be exported to."""

    PDF = "pdf"
    EXCEL = "excel"

    @property
    def extension(self) -> str:
        return "xlsx" if self is ExportFormat.EXCEL else "pdf"

    @property
    def media_type(self) -> str:
        if self is ExportFormat.EXCEL:
            return "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        return "application/pdf"


# =============================================================================
# DERIVED VIEWS
# =============================================================================


class BudgetTotals(BaseModel):
    """Per-budget projection of the summary cost components."""

    budget_id: str
    budget_name: str
    total: float
    materials_total: float
    labor_total: float
    indirect_costs_total: float
    professional_fees_total: float
    contingency_and_tax_total: float


class StatPoint(BaseModel):
    """An extreme value and the budget that holds it."""

    value: float
    budget: BudgetTotals


class ComparisonStats(BaseModel):
    """Statistics over the grand totals of the selected budgets."""

    min: StatPoint
    max: StatPoint
    average: float
    variance: float = Field(description="(max - min) / average * 100; 0 when average is 0")
    total_difference: float
    count: int


class CategoryValue(BaseModel):
    budget_id: str
    value: float
    percentage: float = Field(description="Difference from the category minimum, in percent")


class CategoryDifference(BaseModel):
    """Values of one category across the selected budgets."""

    category: str
    values: List[CategoryValue]
    max_difference: float
    avg_value: float


class SignificantChange(BaseModel):
    """A typed delta between two budgets with its signed cost impact."""

    type: ChangeType
    category: str
    description: str
    impact: float
    budget_id: Optional[str] = None
    recommendation: Optional[str] = None


# =============================================================================
# PERSISTED COMPARISON
# =============================================================================


class ComparisonAnalysis(BaseModel):
    total_variance: float = Field(default=0.0, alias="totalVariance")
    significant_changes: List[SignificantChange] = Field(
        default_factory=list,
        alias="significantChanges"
    )
    cost_differences: List[Dict[str, Any]] = Field(default_factory=list, alias="costDifferences")

    class Config:
        populate_by_name = True


class ComparisonResult(BaseModel):
    """Comparison persisted by the backend."""

    id: str
    name: str
    budgets: List[str] = Field(default_factory=list, description="Compared budget IDs")
    type: ComparisonType = Field(default=ComparisonType.VERSION_COMPARISON)
    analysis: Optional[ComparisonAnalysis] = None
    recommendations: List[str] = Field(default_factory=list)


class ExportedFile(BaseModel):
    """Binary export ready to be saved by the caller."""

    filename: str
    media_type: str
    content: bytes
