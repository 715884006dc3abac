"""Budget document models for BudgetFlow.

Pydantic models for budgets, templates and the generation configuration
exchanged with the budgets backend. Wire format uses camelCase aliases.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class GeographicalZone(str, Enum):
    """Geographic zone used for regional pricing."""

    QUITO = "QUITO"
    GUAYAQUIL = "GUAYAQUIL"
    CUENCA = "CUENCA"
    COSTA = "COSTA"
    SIERRA = "SIERRA"
    ORIENTE = "ORIENTE"
    INSULAR = "INSULAR"


class ProjectType(str, Enum):
    """Kind of construction project a template targets."""

    RESIDENTIAL_SINGLE = "RESIDENTIAL_SINGLE"
    RESIDENTIAL_MULTI = "RESIDENTIAL_MULTI"
    COMMERCIAL_SMALL = "COMMERCIAL_SMALL"
    COMMERCIAL_LARGE = "COMMERCIAL_LARGE"
    INDUSTRIAL = "INDUSTRIAL"
    INFRASTRUCTURE = "INFRASTRUCTURE"
    RENOVATION = "RENOVATION"
    SPECIALIZED = "SPECIALIZED"


class BudgetStatus(str, Enum):
    """Lifecycle status of a budget."""

    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    REVISED = "revised"
    FINAL = "final"
    ARCHIVED = "archived"


class BudgetType(str, Enum):
    """What a budget prices."""

    MATERIALS_ONLY = "materials_only"
    COMPLETE_PROJECT = "complete_project"
    LABOR_MATERIALS = "labor_materials"
    PROFESSIONAL_ESTIMATE = "professional_estimate"


# Only these statuses are offered as comparison candidates
COMPARABLE_STATUSES = (BudgetStatus.APPROVED, BudgetStatus.FINAL)


# =============================================================================
# CONFIGURATION
# =============================================================================


class CustomMaterial(BaseModel):
    """Ad-hoc material line added by the user."""

    material_id: Optional[str] = Field(default=None, alias="materialId")
    description: str
    unit: str
    quantity: float = Field(ge=0)
    unit_price: float = Field(alias="unitPrice", ge=0)
    category: Optional[str] = None

    class Config:
        populate_by_name = True


class CustomLaborCost(BaseModel):
    """Ad-hoc labor line added by the user."""

    type: str
    description: str
    quantity: float = Field(ge=0)
    rate: float = Field(ge=0)
    unit: str


class BudgetConfiguration(BaseModel):
    """Budget generation settings accumulated by the wizard.

    Every field has a default so a partially filled configuration is always
    a complete object. Percentage bounds are not enforced here; the wizard
    validator reports them as field errors instead.
    """

    include_labor: bool = Field(default=True, alias="includeLabor")
    include_professional_fees: bool = Field(default=True, alias="includeProfessionalFees")
    include_indirect_costs: bool = Field(default=True, alias="includeIndirectCosts")
    contingency_percentage: Optional[float] = Field(
        default=5.0,
        alias="contingencyPercentage",
        description="Contingency percentage (valid range 0-50)"
    )
    tax_percentage: Optional[float] = Field(
        default=12.0,
        alias="taxPercentage",
        description="Tax percentage (valid range 0-30)"
    )
    geographical_zone: GeographicalZone = Field(
        default=GeographicalZone.QUITO,
        alias="geographicalZone"
    )
    currency: str = Field(default="USD")
    exchange_rate: Optional[float] = Field(default=None, alias="exchangeRate", gt=0)
    waste_factors: Optional[Dict[str, float]] = Field(default=None, alias="wasteFactors")
    custom_materials: List[CustomMaterial] = Field(default_factory=list, alias="customMaterials")
    custom_labor_costs: List[CustomLaborCost] = Field(default_factory=list, alias="customLaborCosts")

    class Config:
        populate_by_name = True

    def patch(self, updates: Dict[str, Any]) -> "BudgetConfiguration":
        """Return a new configuration with ``updates`` shallow-merged in.

        Keys may be field names or their camelCase aliases.

        Raises:
            pydantic.ValidationError: If an update has the wrong type.
        """
        merged = self.model_dump()
        for key, value in updates.items():
            merged[resolve_field_name(key)] = value
        return BudgetConfiguration.model_validate(merged)

    def to_api_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def resolve_field_name(key: str) -> str:
    """Resolve a camelCase alias to the BudgetConfiguration field name."""
    if key in BudgetConfiguration.model_fields:
        return key
    for name, info in BudgetConfiguration.model_fields.items():
        if info.alias == key:
            return name
    raise KeyError(f"Unknown configuration field: {key}")


# =============================================================================
# TEMPLATES
# =============================================================================


class BudgetTemplate(BaseModel):
    """Budget template the wizard starts from."""

    id: str
    name: str
    description: str = ""
    project_type: ProjectType = Field(
        default=ProjectType.RESIDENTIAL_SINGLE,
        alias="projectType"
    )
    geographical_zone: GeographicalZone = Field(
        default=GeographicalZone.QUITO,
        alias="geographicalZone"
    )
    waste_factors: Optional[Dict[str, float]] = Field(default=None, alias="wasteFactors")
    is_verified: bool = Field(default=False, alias="isVerified")

    class Config:
        populate_by_name = True


# =============================================================================
# BUDGETS
# =============================================================================


class BudgetSummary(BaseModel):
    """Cost summary of a priced budget."""

    materials_total: float = Field(default=0.0, alias="materialsTotal")
    labor_total: float = Field(default=0.0, alias="laborTotal")
    indirect_costs_total: float = Field(default=0.0, alias="indirectCostsTotal")
    professional_fees_total: float = Field(default=0.0, alias="professionalFeesTotal")
    contingency_total: float = Field(default=0.0, alias="contingencyTotal")
    tax_total: float = Field(default=0.0, alias="taxTotal")
    subtotal: float = Field(default=0.0)
    grand_total: float = Field(default=0.0, alias="grandTotal")
    currency: str = Field(default="USD")
    exchange_rate: Optional[float] = Field(default=None, alias="exchangeRate")

    class Config:
        populate_by_name = True

    @property
    def contingency_and_tax_total(self) -> float:
        return self.contingency_total + self.tax_total


class BudgetLineItem(BaseModel):
    """Priced line of a budget."""

    id: str
    category: str
    description: str
    unit: str = ""
    quantity: float = 0.0
    unit_price: float = Field(default=0.0, alias="unitPrice")
    total_cost: float = Field(default=0.0, alias="totalCost")

    class Config:
        populate_by_name = True


class BudgetEntity(BaseModel):
    """A persisted, priced construction budget.

    Treated as immutable by the wizard and comparison layers.
    """

    id: str
    name: str
    description: Optional[str] = None
    status: BudgetStatus = Field(default=BudgetStatus.DRAFT)
    budget_type: BudgetType = Field(default=BudgetType.COMPLETE_PROJECT, alias="budgetType")
    summary: BudgetSummary = Field(default_factory=BudgetSummary)
    line_items: List[BudgetLineItem] = Field(default_factory=list, alias="lineItems")
    category_totals: Optional[Dict[str, float]] = Field(
        default=None,
        alias="categories",
        description="Explicit per-category totals; derived from the summary when absent"
    )

    class Config:
        populate_by_name = True
        frozen = True

    @property
    def categories(self) -> Dict[str, float]:
        """Named cost categories, in a stable order."""
        if self.category_totals is not None:
            return dict(self.category_totals)
        summary = self.summary
        return {
            "materials": summary.materials_total,
            "labor": summary.labor_total,
            "indirect_costs": summary.indirect_costs_total,
            "professional_fees": summary.professional_fees_total,
            "contingency": summary.contingency_total,
            "tax": summary.tax_total,
        }


# =============================================================================
# REQUESTS
# =============================================================================


class CreateBudgetRequest(BaseModel):
    """Request to create a budget from wizard state."""

    name: str
    description: Optional[str] = None
    project_id: Optional[str] = Field(default=None, alias="projectId")
    budget_type: BudgetType = Field(alias="budgetType")
    calculation_result_id: Optional[str] = Field(default=None, alias="calculationResultId")
    budget_template_id: Optional[str] = Field(default=None, alias="budgetTemplateId")
    configuration: BudgetConfiguration

    class Config:
        populate_by_name = True

    def to_api_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class BudgetFilters(BaseModel):
    """Filters for listing budgets."""

    project_id: Optional[str] = Field(default=None, alias="projectId")
    status: Optional[BudgetStatus] = None
    budget_type: Optional[BudgetType] = Field(default=None, alias="budgetType")
    search_term: Optional[str] = Field(default=None, alias="searchTerm")
    date_from: Optional[str] = Field(default=None, alias="dateFrom")
    date_to: Optional[str] = Field(default=None, alias="dateTo")
    page: int = Field(default=1, ge=1)
    limit: Optional[int] = Field(default=None, ge=1)

    class Config:
        populate_by_name = True


class Pagination(BaseModel):
    page: int = 1
    limit: int = 20
    total: int = 0
    pages: int = 0


class BudgetPage(BaseModel):
    """One page of budgets returned by the backend."""

    budgets: List[BudgetEntity] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)
