"""Unit tests for the budget gateway.

Uses httpx.MockTransport so requests go through the real client stack.
"""

import json

import httpx
import pytest

from budgetflow.config.errors import ErrorCode, GatewayError
from budgetflow.models.budget import (
    BudgetConfiguration,
    BudgetFilters,
    BudgetStatus,
    BudgetType,
    CreateBudgetRequest,
    GeographicalZone,
)
from budgetflow.models.comparison import ExportFormat
from budgetflow.services.budget_gateway import BudgetGateway


def _gateway(handler):
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        base_url="http://budgets.test",
    )
    return BudgetGateway(client=client)


class TestListBudgets:

    @pytest.mark.asyncio
    async def test_candidates_limited_to_comparable_statuses(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            seen["path"] = request.url.path
            return httpx.Response(200, json={
                "budgets": [{
                    "id": "bud-1",
                    "name": "Base",
                    "status": "approved",
                    "summary": {"grandTotal": 100000.0},
                }],
                "pagination": {"page": 1, "limit": 20, "total": 1, "pages": 1},
            })

        gateway = _gateway(handler)
        page = await gateway.list_candidate_budgets(BudgetFilters(search_term="casa", project_id="proj-1"))

        assert seen["path"] == "/api/calculation-budgets"
        assert seen["params"]["status"] == "approved,final"
        assert seen["params"]["search"] == "casa"
        assert seen["params"]["projectId"] == "proj-1"
        assert seen["params"]["page"] == "1"
        assert page.budgets[0].summary.grand_total == 100000.0
        assert page.pagination.total == 1

    @pytest.mark.asyncio
    async def test_candidate_status_filter_kept_when_comparable(self):
        seen = {}

        def handler(request):
            seen["status"] = request.url.params.get("status")
            return httpx.Response(200, json={"budgets": []})

        gateway = _gateway(handler)
        await gateway.list_candidate_budgets(BudgetFilters(status=BudgetStatus.FINAL))
        assert seen["status"] == "final"

        await gateway.list_candidate_budgets(BudgetFilters(status=BudgetStatus.DRAFT))
        assert seen["status"] == "approved,final"

    @pytest.mark.asyncio
    async def test_list_budgets_passes_filters(self):
        seen = {}

        def handler(request):
            seen.update(dict(request.url.params))
            return httpx.Response(200, json={"budgets": []})

        gateway = _gateway(handler)
        page = await gateway.list_budgets(BudgetFilters(
            status=BudgetStatus.DRAFT,
            budget_type=BudgetType.MATERIALS_ONLY,
            page=2,
            limit=5,
        ))

        assert seen["status"] == "draft"
        assert seen["budgetType"] == "materials_only"
        assert seen["page"] == "2"
        assert seen["limit"] == "5"
        assert page.budgets == []


class TestCreateBudget:

    @pytest.mark.asyncio
    async def test_sends_camel_case_payload(self, created_budget_payload):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json=created_budget_payload)

        gateway = _gateway(handler)
        request = CreateBudgetRequest(
            name="Casa 120m2",
            budget_type=BudgetType.COMPLETE_PROJECT,
            budget_template_id="tpl-costa",
            configuration=BudgetConfiguration(geographical_zone=GeographicalZone.COSTA),
        )

        budget = await gateway.create_budget(request)

        assert seen["method"] == "POST"
        assert seen["body"]["budgetTemplateId"] == "tpl-costa"
        assert seen["body"]["budgetType"] == "complete_project"
        assert seen["body"]["configuration"]["geographicalZone"] == "COSTA"
        assert seen["body"]["configuration"]["contingencyPercentage"] == 5.0
        assert "description" not in seen["body"]
        assert budget.id == "bud-new"
        assert budget.summary.grand_total == 85848.0

    @pytest.mark.asyncio
    async def test_server_error_message_is_surfaced(self):
        def handler(request):
            return httpx.Response(422, json={"error": {"message": "Template is archived"}})

        gateway = _gateway(handler)
        with pytest.raises(GatewayError) as exc_info:
            await gateway.create_budget(CreateBudgetRequest(
                name="Casa",
                budget_type=BudgetType.MATERIALS_ONLY,
                configuration=BudgetConfiguration(),
            ))

        assert exc_info.value.code == ErrorCode.GATEWAY_HTTP_ERROR
        assert exc_info.value.status_code == 422
        assert exc_info.value.message == "Template is archived"
        assert exc_info.value.operation == "create_budget"

    @pytest.mark.asyncio
    async def test_malformed_payload(self):
        def handler(request):
            return httpx.Response(200, json={"name": "missing id"})

        gateway = _gateway(handler)
        with pytest.raises(GatewayError) as exc_info:
            await gateway.create_budget(CreateBudgetRequest(
                name="Casa",
                budget_type=BudgetType.MATERIALS_ONLY,
                configuration=BudgetConfiguration(),
            ))
        assert exc_info.value.code == ErrorCode.GATEWAY_INVALID_RESPONSE


class TestTransportErrors:

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(GatewayError) as exc_info:
            await _gateway(handler).list_templates()
        assert exc_info.value.code == ErrorCode.GATEWAY_CONNECTION_ERROR

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(GatewayError) as exc_info:
            await _gateway(handler).submit_comparison(["a", "b"], "Comparison")
        assert exc_info.value.code == ErrorCode.GATEWAY_TIMEOUT

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>oops</html>")

        with pytest.raises(GatewayError) as exc_info:
            await _gateway(handler).list_budgets()
        assert exc_info.value.code == ErrorCode.GATEWAY_INVALID_RESPONSE

    @pytest.mark.asyncio
    async def test_status_without_body_message(self):
        def handler(request):
            return httpx.Response(500, content=b"")

        with pytest.raises(GatewayError) as exc_info:
            await _gateway(handler).list_budgets()
        assert exc_info.value.message == "Server responded with status 500"


class TestComparisons:

    @pytest.mark.asyncio
    async def test_submit_comparison(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "id": "cmp-1",
                "name": "Finishes",
                "budgets": ["a", "b"],
                "type": "version_comparison",
                "analysis": {"totalVariance": 18.2, "significantChanges": []},
                "recommendations": ["Prefer budget a"],
            })

        result = await _gateway(handler).submit_comparison(["a", "b"], "Finishes")

        assert seen["path"] == "/api/calculation-budgets/compare"
        assert seen["body"] == {"budgetIds": ["a", "b"], "name": "Finishes", "type": "version_comparison"}
        assert result.analysis.total_variance == 18.2
        assert result.recommendations == ["Prefer budget a"]

    @pytest.mark.asyncio
    async def test_save_comparison(self):
        def handler(request):
            assert request.method == "PUT"
            assert request.url.path == "/api/calculation-budgets/comparison/cmp-1"
            return httpx.Response(200, json={"id": "cmp-1", "name": json.loads(request.content)["name"]})

        result = await _gateway(handler).save_comparison("cmp-1", "Renamed")
        assert result.name == "Renamed"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("export_format,extension", [
        (ExportFormat.PDF, "pdf"),
        (ExportFormat.EXCEL, "xlsx"),
    ])
    async def test_export_comparison(self, export_format, extension):
        def handler(request):
            assert request.url.path == "/api/calculation-budgets/comparison/cmp-1/export"
            assert json.loads(request.content)["format"] == export_format.value
            return httpx.Response(200, content=b"%binary%")

        exported = await _gateway(handler).export_comparison("cmp-1", export_format)

        assert exported.filename == f"budget-comparison-cmp-1.{extension}"
        assert exported.media_type == export_format.media_type
        assert exported.content == b"%binary%"


class TestTemplates:

    @pytest.mark.asyncio
    async def test_list_templates(self):
        seen = {}

        def handler(request):
            seen.update(dict(request.url.params))
            return httpx.Response(200, json={"templates": [{
                "id": "tpl-1",
                "name": "Coast house",
                "geographicalZone": "COSTA",
                "wasteFactors": {"general": 5.0},
            }]})

        templates = await _gateway(handler).list_templates(
            geographical_zone=GeographicalZone.COSTA,
            verified=True,
        )

        assert seen == {"geographicalZone": "COSTA", "verified": "true"}
        assert templates[0].geographical_zone == GeographicalZone.COSTA
        assert templates[0].waste_factors == {"general": 5.0}


@pytest.mark.asyncio
async def test_aclose_releases_client():
    gateway = _gateway(lambda request: httpx.Response(200, json={}))
    await gateway.aclose()
    assert gateway._client is None
