"""Comparison analytics for BudgetFlow.

Pure functions over an ordered selection of budgets. Nothing here is cached:
callers recompute on every read, so derived views always match the current
selection. An empty selection yields None or an empty list, never an error.

Percentages use the same baseline convention throughout: the spread is
measured relative to a reference value, and a zero reference yields 0 instead
of an infinite or NaN percentage.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from budgetflow.models.budget import BudgetEntity, BudgetLineItem
from budgetflow.models.comparison import (
    BudgetTotals,
    CategoryDifference,
    CategoryValue,
    ChangeType,
    ComparisonStats,
    SignificantChange,
    StatPoint,
)

# Minimum relative category delta (percent) reported as a cost change
SIGNIFICANT_CHANGE_THRESHOLD = 5.0

# Cost increases above this percentage carry a recommendation
RECOMMENDATION_THRESHOLD = 15.0


def percent_difference(value: float, baseline: float) -> float:
    """Return ``(value - baseline) / baseline * 100``, or 0 when baseline is 0."""
    if baseline == 0:
        return 0.0
    return (value - baseline) / baseline * 100


# =============================================================================
# TOTALS AND STATISTICS
# =============================================================================


def compute_totals_summary(budgets: Sequence[BudgetEntity]) -> List[BudgetTotals]:
    """Project each budget onto its summary cost components and grand total."""
    return [
        BudgetTotals(
            budget_id=budget.id,
            budget_name=budget.name,
            total=budget.summary.grand_total,
            materials_total=budget.summary.materials_total,
            labor_total=budget.summary.labor_total,
            indirect_costs_total=budget.summary.indirect_costs_total,
            professional_fees_total=budget.summary.professional_fees_total,
            contingency_and_tax_total=budget.summary.contingency_and_tax_total,
        )
        for budget in budgets
    ]


def compute_stats(budgets: Sequence[BudgetEntity]) -> Optional[ComparisonStats]:
    """Compute min/max/average/variance over grand totals.

    Ties for min or max go to the first budget in selection order.

    Returns:
        ComparisonStats, or None for an empty selection.
    """
    totals = compute_totals_summary(budgets)
    if not totals:
        return None

    lowest = highest = totals[0]
    for entry in totals[1:]:
        if entry.total < lowest.total:
            lowest = entry
        if entry.total > highest.total:
            highest = entry

    average = sum(entry.total for entry in totals) / len(totals)
    spread = highest.total - lowest.total
    variance = spread / average * 100 if average != 0 else 0.0

    return ComparisonStats(
        min=StatPoint(value=lowest.total, budget=lowest),
        max=StatPoint(value=highest.total, budget=highest),
        average=average,
        variance=variance,
        total_difference=spread,
        count=len(totals),
    )


# =============================================================================
# CATEGORY DIFFERENCES
# =============================================================================


def _collect_categories(budgets: Iterable[BudgetEntity]) -> Dict[str, List[Tuple[str, float]]]:
    """Group (budget_id, value) pairs by category in first-seen order."""
    collected: Dict[str, List[Tuple[str, float]]] = {}
    for budget in budgets:
        for category, value in budget.categories.items():
            collected.setdefault(category, []).append((budget.id, value))
    return collected


def compute_category_differences(budgets: Sequence[BudgetEntity]) -> List[CategoryDifference]:
    """Compare every category across the selected budgets.

    Budgets that lack a category are left out of that category rather than
    counted as zero. Each value's percentage is its difference from the
    smallest value present in the category.
    """
    differences = []
    for category, entries in _collect_categories(budgets).items():
        baseline = min(value for _, value in entries)
        values = [
            CategoryValue(
                budget_id=budget_id,
                value=value,
                percentage=percent_difference(value, baseline),
            )
            for budget_id, value in entries
        ]
        differences.append(CategoryDifference(
            category=category,
            values=values,
            max_difference=max(abs(item.percentage) for item in values),
            avg_value=sum(value for _, value in entries) / len(entries),
        ))
    return differences


# =============================================================================
# SIGNIFICANT CHANGES
# =============================================================================


def rank_changes(changes: Iterable[SignificantChange]) -> List[SignificantChange]:
    """Sort changes by descending absolute impact, keeping input order on ties."""
    return sorted(changes, key=lambda change: abs(change.impact), reverse=True)


def _category_changes(reference: BudgetEntity, other: BudgetEntity) -> List[SignificantChange]:
    ref_categories = reference.categories
    other_categories = other.categories
    changes = []

    ordered = list(ref_categories) + [c for c in other_categories if c not in ref_categories]
    for category in ordered:
        if category not in other_categories:
            changes.append(SignificantChange(
                type=ChangeType.REMOVED_ITEM,
                category=category,
                description=f"{category} is not included in {other.name}",
                impact=-ref_categories[category],
                budget_id=other.id,
            ))
            continue

        if category not in ref_categories:
            changes.append(SignificantChange(
                type=ChangeType.NEW_ITEM,
                category=category,
                description=f"{category} is only included in {other.name}",
                impact=other_categories[category],
                budget_id=other.id,
            ))
            continue

        base_value = ref_categories[category]
        delta = other_categories[category] - base_value
        if delta == 0:
            continue

        percentage = percent_difference(other_categories[category], base_value)
        if base_value != 0 and abs(percentage) < SIGNIFICANT_CHANGE_THRESHOLD:
            continue

        increase = delta > 0
        recommendation = None
        if increase and (base_value == 0 or percentage >= RECOMMENDATION_THRESHOLD):
            recommendation = (
                f"Review {category} costs in {other.name}: they exceed "
                f"{reference.name} by {delta:,.2f}"
            )

        changes.append(SignificantChange(
            type=ChangeType.COST_INCREASE if increase else ChangeType.COST_DECREASE,
            category=category,
            description=(
                f"{category} {'increases' if increase else 'decreases'} "
                f"{abs(percentage):.1f}% in {other.name} compared to {reference.name}"
            ),
            impact=delta,
            budget_id=other.id,
            recommendation=recommendation,
        ))

    return changes


def _quantity_changes(reference: BudgetEntity, other: BudgetEntity) -> List[SignificantChange]:
    ref_items: Dict[Tuple[str, str], BudgetLineItem] = {}
    for item in reference.line_items:
        ref_items.setdefault((item.category, item.description), item)

    changes = []
    for item in other.line_items:
        base = ref_items.get((item.category, item.description))
        if base is None or base.quantity == item.quantity:
            continue
        changes.append(SignificantChange(
            type=ChangeType.QUANTITY_CHANGE,
            category=item.category,
            description=(
                f"{item.description}: quantity {base.quantity:g} -> "
                f"{item.quantity:g} {item.unit}".rstrip()
            ),
            impact=(item.quantity - base.quantity) * item.unit_price,
            budget_id=other.id,
        ))
    return changes


def rank_significant_changes(budgets: Sequence[BudgetEntity]) -> List[SignificantChange]:
    """Derive and rank the significant changes of a selection.

    The first budget in selection order is the reference; every other budget
    is compared against it category by category and line by line.

    Returns:
        Full ranked list (consumers take a prefix for display); empty for
        fewer than two budgets.
    """
    if len(budgets) < 2:
        return []

    reference = budgets[0]
    changes: List[SignificantChange] = []
    for other in budgets[1:]:
        changes.extend(_category_changes(reference, other))
        changes.extend(_quantity_changes(reference, other))
    return rank_changes(changes)
