"""Budget gateway for BudgetFlow.

Request/response boundary to the budgets backend over HTTP. Every failure
(transport, HTTP status, malformed payload) is raised as a GatewayError;
workflows catch it and store the message in their state.

No retries happen here: a failed call is retried only when the user
triggers the operation again.
"""

from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError as PydanticValidationError

from budgetflow.config.errors import ErrorCode, GatewayError
from budgetflow.config.settings import settings
from budgetflow.models.budget import (
    COMPARABLE_STATUSES,
    BudgetEntity,
    BudgetFilters,
    BudgetPage,
    BudgetTemplate,
    CreateBudgetRequest,
    GeographicalZone,
    ProjectType,
)
from budgetflow.models.comparison import (
    ComparisonResult,
    ComparisonType,
    ExportedFile,
    ExportFormat,
)

logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)


class BudgetGateway:
    """HTTP client for the budgets backend.

    The httpx client is created lazily unless one is injected (tests pass a
    client built on ``httpx.MockTransport``).
    """

    BUDGETS_PATH = "/api/calculation-budgets"
    COMPARE_PATH = "/api/calculation-budgets/compare"
    COMPARISON_PATH = "/api/calculation-budgets/comparison"
    TEMPLATES_PATH = "/api/budget-templates"

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self._client = client
        self._base_url = base_url or settings.api_base_url
        self._timeout = timeout or settings.api_timeout_seconds

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # -------------------------------------------------------------------------
    # Transport helpers
    # -------------------------------------------------------------------------

    async def _request(self, operation: str, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request and map every failure to GatewayError."""
        logger.info("gateway_request", operation=operation, method=method, path=path)
        try:
            response = await self.client.request(method, path, **kwargs)
            response.raise_for_status()
            return response

        except httpx.TimeoutException as e:
            logger.error("gateway_request_timeout", operation=operation, error=str(e))
            raise GatewayError(
                code=ErrorCode.GATEWAY_TIMEOUT,
                message=f"Request timed out while trying to {operation.replace('_', ' ')}",
                operation=operation,
            ) from e

        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            message = _error_message(e.response) or f"Server responded with status {status_code}"
            logger.error(
                "gateway_request_failed",
                operation=operation,
                status_code=status_code,
                error=message,
            )
            raise GatewayError(
                code=ErrorCode.GATEWAY_HTTP_ERROR,
                message=message,
                operation=operation,
                status_code=status_code,
            ) from e

        except httpx.HTTPError as e:
            logger.error("gateway_connection_failed", operation=operation, error=str(e))
            raise GatewayError(
                code=ErrorCode.GATEWAY_CONNECTION_ERROR,
                message=f"Could not reach the budgets service: {str(e)}",
                operation=operation,
            ) from e

    async def _json(self, operation: str, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._request(operation, method, path, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise GatewayError(
                code=ErrorCode.GATEWAY_INVALID_RESPONSE,
                message="The budgets service returned an invalid response",
                operation=operation,
                status_code=response.status_code,
            ) from e

    @staticmethod
    def _parse(operation: str, model: Type[ModelT], data: Any) -> ModelT:
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            logger.error("gateway_invalid_payload", operation=operation, model=model.__name__, errors=e.error_count())
            raise GatewayError(
                code=ErrorCode.GATEWAY_INVALID_RESPONSE,
                message=f"Unexpected {model.__name__} payload from the budgets service",
                operation=operation,
                details={"errors": [f"{err['loc']}: {err['msg']}" for err in e.errors()[:5]]},
            ) from e

    # -------------------------------------------------------------------------
    # Budgets
    # -------------------------------------------------------------------------

    async def list_budgets(self, filters: Optional[BudgetFilters] = None) -> BudgetPage:
        """List budgets matching filters.

        Args:
            filters: Status, type, search and pagination filters.

        Returns:
            One page of budgets.

        Raises:
            GatewayError: If the request fails.
        """
        filters = filters or BudgetFilters()
        data = await self._json(
            "list_budgets", "GET", self.BUDGETS_PATH,
            params=_filter_params(filters, filters.status.value if filters.status else None),
        )
        return self._parse("list_budgets", BudgetPage, data or {})

    async def list_candidate_budgets(self, filters: Optional[BudgetFilters] = None) -> BudgetPage:
        """List budgets that may be compared (approved or final only)."""
        filters = filters or BudgetFilters()
        if filters.status is not None and filters.status in COMPARABLE_STATUSES:
            status = filters.status.value
        else:
            status = ",".join(s.value for s in COMPARABLE_STATUSES)
        data = await self._json(
            "list_candidate_budgets", "GET", self.BUDGETS_PATH,
            params=_filter_params(filters, status),
        )
        return self._parse("list_candidate_budgets", BudgetPage, data or {})

    async def create_budget(self, request: CreateBudgetRequest) -> BudgetEntity:
        """Create a budget from a generation request.

        Raises:
            GatewayError: If the request fails or the response is malformed.
        """
        data = await self._json(
            "create_budget", "POST", self.BUDGETS_PATH,
            json=request.to_api_dict(),
        )
        budget = self._parse("create_budget", BudgetEntity, data)
        logger.info("budget_created", budget_id=budget.id, name=budget.name)
        return budget

    # -------------------------------------------------------------------------
    # Templates
    # -------------------------------------------------------------------------

    async def list_templates(
        self,
        project_type: Optional[ProjectType] = None,
        geographical_zone: Optional[GeographicalZone] = None,
        verified: Optional[bool] = None,
    ) -> List[BudgetTemplate]:
        params: Dict[str, str] = {}
        if project_type:
            params["projectType"] = project_type.value
        if geographical_zone:
            params["geographicalZone"] = geographical_zone.value
        if verified is not None:
            params["verified"] = str(verified).lower()

        data = await self._json("list_templates", "GET", self.TEMPLATES_PATH, params=params)
        return [
            self._parse("list_templates", BudgetTemplate, item)
            for item in (data or {}).get("templates", [])
        ]

    # -------------------------------------------------------------------------
    # Comparisons
    # -------------------------------------------------------------------------

    async def submit_comparison(
        self,
        budget_ids: Sequence[str],
        name: str,
        comparison_type: ComparisonType = ComparisonType.VERSION_COMPARISON,
    ) -> ComparisonResult:
        """Ask the backend to compute and persist a comparison.

        Raises:
            GatewayError: If the request fails.
        """
        data = await self._json(
            "submit_comparison", "POST", self.COMPARE_PATH,
            json={"budgetIds": list(budget_ids), "name": name, "type": comparison_type.value},
        )
        return self._parse("submit_comparison", ComparisonResult, data)

    async def save_comparison(self, comparison_id: str, name: str) -> ComparisonResult:
        data = await self._json(
            "save_comparison", "PUT", f"{self.COMPARISON_PATH}/{comparison_id}",
            json={"name": name},
        )
        return self._parse("save_comparison", ComparisonResult, data)

    async def export_comparison(
        self,
        comparison_id: str,
        export_format: ExportFormat = ExportFormat.PDF,
    ) -> ExportedFile:
        """Export a comparison document.

        Returns:
            The exported file with a download filename and media type.

        Raises:
            GatewayError: If the request fails.
        """
        response = await self._request(
            "export_comparison", "POST", f"{self.COMPARISON_PATH}/{comparison_id}/export",
            json={
                "format": export_format.value,
                "includeAnalysis": True,
                "includeRecommendations": True,
            },
        )
        return ExportedFile(
            filename=f"budget-comparison-{comparison_id}.{export_format.extension}",
            media_type=export_format.media_type,
            content=response.content,
        )


def _filter_params(filters: BudgetFilters, status: Optional[str]) -> Dict[str, str]:
    params: Dict[str, str] = {}
    if filters.project_id:
        params["projectId"] = filters.project_id
    if status:
        params["status"] = status
    if filters.budget_type:
        params["budgetType"] = filters.budget_type.value
    if filters.search_term:
        params["search"] = filters.search_term
    if filters.date_from:
        params["dateFrom"] = filters.date_from
    if filters.date_to:
        params["dateTo"] = filters.date_to
    params["page"] = str(filters.page)
    params["limit"] = str(filters.limit or settings.budgets_page_size)
    return params


def _error_message(response: httpx.Response) -> Optional[str]:
    """Extract a server-provided error message, if the body carries one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        return error.get("message")
    return body.get("message") or (error if isinstance(error, str) else None)
