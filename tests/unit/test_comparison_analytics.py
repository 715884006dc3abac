"""Unit tests for comparison analytics."""

import math

import pytest

from budgetflow.models.budget import BudgetLineItem
from budgetflow.models.comparison import ChangeType, SignificantChange
from budgetflow.services.comparison_analytics import (
    compute_category_differences,
    compute_stats,
    compute_totals_summary,
    percent_difference,
    rank_changes,
    rank_significant_changes,
)
from tests.fixtures.mock_budget_data import make_budget


class TestComputeStats:
    """Statistics over grand totals."""

    def test_three_budget_spread(self):
        budgets = [make_budget("a", 80000), make_budget("b", 100000), make_budget("c", 120000)]
        stats = compute_stats(budgets)

        assert stats.min.value == 80000
        assert stats.min.budget.budget_id == "a"
        assert stats.max.value == 120000
        assert stats.max.budget.budget_id == "c"
        assert stats.average == 100000
        assert stats.variance == pytest.approx(40.0)
        assert stats.total_difference == 40000
        assert stats.count == 3

    def test_two_budgets(self):
        stats = compute_stats([make_budget("a", 50000), make_budget("b", 55000)])

        assert stats.min.value == 50000
        assert stats.max.value == 55000
        assert stats.average == 52500
        assert stats.variance == pytest.approx(9.52, abs=0.01)
        assert stats.total_difference == 5000
        assert stats.count == 2

    def test_zero_average_reports_zero_variance(self):
        stats = compute_stats([make_budget("a", 0), make_budget("b", 0)])

        assert stats.variance == 0
        assert not math.isnan(stats.variance)
        assert not math.isinf(stats.variance)

    def test_ties_go_to_first_budget(self):
        budgets = [make_budget("a", 70000), make_budget("b", 70000), make_budget("c", 90000), make_budget("d", 90000)]
        stats = compute_stats(budgets)
        assert stats.min.budget.budget_id == "a"
        assert stats.max.budget.budget_id == "c"

    def test_empty_selection_returns_none(self):
        assert compute_stats([]) is None


class TestTotalsSummary:

    def test_projection(self):
        totals = compute_totals_summary([make_budget("a", 100000, name="Base")])
        assert len(totals) == 1
        entry = totals[0]
        assert entry.budget_name == "Base"
        assert entry.total == 100000
        assert entry.materials_total == 50000
        assert entry.labor_total == 30000
        assert entry.contingency_and_tax_total == pytest.approx(5000)

    def test_empty(self):
        assert compute_totals_summary([]) == []


class TestCategoryDifferences:
    """Per-category spread relative to the category minimum."""

    def test_first_seen_order_and_missing_values(self, house_budgets):
        differences = compute_category_differences(house_budgets)
        categories = [d.category for d in differences]
        assert categories == ["materials", "labor", "indirect_costs", "professional_fees", "landscaping"]

        fees = differences[3]
        assert [v.budget_id for v in fees.values] == ["bud-base", "bud-premium"]

        landscaping = differences[4]
        assert len(landscaping.values) == 1
        assert landscaping.max_difference == 0

    def test_spread_relative_to_minimum(self, house_budgets):
        materials = compute_category_differences(house_budgets)[0]
        # min 42000, max 62000
        assert materials.max_difference == pytest.approx((62000 - 42000) / 42000 * 100)
        assert materials.avg_value == pytest.approx((50000 + 62000 + 42000) / 3)
        by_budget = {v.budget_id: v.percentage for v in materials.values}
        assert by_budget["bud-economy"] == 0

    def test_zero_minimum_does_not_divide_by_zero(self):
        budgets = [
            make_budget("a", 1000, categories={"fees": 0}),
            make_budget("b", 1000, categories={"fees": 500}),
        ]
        fees = compute_category_differences(budgets)[0]
        assert fees.max_difference == 0

    def test_summary_categories_used_when_not_explicit(self):
        differences = compute_category_differences([make_budget("a", 1000), make_budget("b", 2000)])
        assert [d.category for d in differences][:2] == ["materials", "labor"]

    def test_empty(self):
        assert compute_category_differences([]) == []


def _change(impact):
    return SignificantChange(
        type=ChangeType.COST_INCREASE if impact > 0 else ChangeType.COST_DECREASE,
        category="materials",
        description=f"impact {impact}",
        impact=impact,
    )


class TestRanking:
    """Ordering by absolute impact."""

    def test_descending_absolute_impact(self):
        ranked = rank_changes([_change(500), _change(-2000), _change(120)])
        assert [c.impact for c in ranked] == [-2000, 500, 120]

    def test_ties_keep_input_order(self):
        first, second = _change(300), _change(-300)
        first.description, second.description = "first", "second"
        ranked = rank_changes([_change(10), first, second])
        assert [c.description for c in ranked[:2]] == ["first", "second"]


class TestSignificantChanges:
    """Changes of each budget against the first selected budget."""

    def test_fewer_than_two_budgets(self, house_budgets):
        assert rank_significant_changes(house_budgets[:1]) == []
        assert rank_significant_changes([]) == []

    def test_change_types(self, house_budgets):
        changes = rank_significant_changes(house_budgets)
        by_key = {(c.budget_id, c.category, c.type) for c in changes}

        assert ("bud-premium", "materials", ChangeType.COST_INCREASE) in by_key
        assert ("bud-premium", "landscaping", ChangeType.NEW_ITEM) in by_key
        assert ("bud-economy", "professional_fees", ChangeType.REMOVED_ITEM) in by_key
        assert ("bud-economy", "materials", ChangeType.COST_DECREASE) in by_key
        assert ("bud-premium", "materials", ChangeType.QUANTITY_CHANGE) in by_key

    def test_small_deltas_are_ignored(self, house_budgets):
        changes = rank_significant_changes(house_budgets)
        # labor 30000 -> 31000 is 3.3%
        assert not any(c.budget_id == "bud-premium" and c.category == "labor" for c in changes)
        # identical indirect costs
        assert not any(c.category == "indirect_costs" for c in changes)

    def test_sorted_by_absolute_impact(self, house_budgets):
        impacts = [abs(c.impact) for c in rank_significant_changes(house_budgets)]
        assert impacts == sorted(impacts, reverse=True)
        assert impacts[0] == 12000

    def test_impact_signs(self, house_budgets):
        changes = rank_significant_changes(house_budgets)
        removed = next(c for c in changes if c.type == ChangeType.REMOVED_ITEM)
        assert removed.impact == -8000
        quantity = next(c for c in changes if c.type == ChangeType.QUANTITY_CHANGE)
        assert quantity.impact == pytest.approx(50 * 8.5)

    def test_large_increase_has_recommendation(self, house_budgets):
        changes = rank_significant_changes(house_budgets)
        materials_up = next(
            c for c in changes
            if c.category == "materials" and c.type == ChangeType.COST_INCREASE
        )
        # 24% over the reference
        assert materials_up.recommendation is not None
        decreases = [c for c in changes if c.type == ChangeType.COST_DECREASE]
        assert all(c.recommendation is None for c in decreases)

    def test_increase_from_zero_is_significant(self):
        budgets = [
            make_budget("a", 1000, categories={"fees": 0}),
            make_budget("b", 1500, categories={"fees": 500}),
        ]
        changes = rank_significant_changes(budgets)
        assert len(changes) == 1
        assert changes[0].type == ChangeType.COST_INCREASE
        assert changes[0].impact == 500

    def test_quantity_change_matches_category_and_description(self):
        item = dict(category="materials", unit="m3", unit_price=120.0)
        budgets = [
            make_budget("a", 1000, categories={"materials": 1000}, line_items=[
                BudgetLineItem(id="1", description="Concrete", quantity=10, **item),
            ]),
            make_budget("b", 1000, categories={"materials": 1000}, line_items=[
                BudgetLineItem(id="1", description="Concrete", quantity=8, **item),
                BudgetLineItem(id="2", description="Gravel", quantity=3, **item),
            ]),
        ]
        changes = rank_significant_changes(budgets)
        assert len(changes) == 1
        assert changes[0].type == ChangeType.QUANTITY_CHANGE
        assert changes[0].impact == pytest.approx(-240.0)


def test_percent_difference_zero_baseline():
    assert percent_difference(10, 0) == 0.0
    assert percent_difference(110, 100) == pytest.approx(10.0)
