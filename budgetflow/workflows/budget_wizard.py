"""Budget generation wizard for BudgetFlow.

Four-step workflow that builds a budget configuration:

1. Select template
2. Basic configuration (name, description)
3. Advanced configuration (percentages, zone, custom lines)
4. Review and generate

Moving forward is gated on the validator reporting no errors for the step
being left. Moving back, and jumping through the step indicator, are never
validated.
"""

from typing import Any, Callable, Dict, Optional, Set

import structlog

from budgetflow.config.errors import GatewayError
from budgetflow.config.settings import settings
from budgetflow.models.budget import (
    BudgetEntity,
    BudgetTemplate,
    BudgetType,
    CreateBudgetRequest,
    resolve_field_name,
)
from budgetflow.models.wizard import STEP_TITLES, StepInfo, WizardState
from budgetflow.services.budget_gateway import BudgetGateway
from budgetflow.utils.scheduling import WorkflowScope
from budgetflow.validators.wizard_validator import is_valid, validate_step

logger = structlog.get_logger()


class BudgetWizardController:
    """Owns the state of one budget generation workflow.

    All mutations are synchronous; the only suspension point is the gateway
    call in ``generate``. Only one generation request may be in flight.
    """

    def __init__(
        self,
        gateway: BudgetGateway,
        scope: Optional[WorkflowScope] = None,
        project_id: Optional[str] = None,
        calculation_result_id: Optional[str] = None,
        on_budget_created: Optional[Callable[[BudgetEntity], None]] = None,
        auto_advance: Optional[bool] = None,
        auto_advance_delay: Optional[float] = None,
        total_steps: Optional[int] = None,
    ):
        self.gateway = gateway
        self.scope = scope or WorkflowScope("budget_wizard")
        self.project_id = project_id
        self.calculation_result_id = calculation_result_id
        self.on_budget_created = on_budget_created
        self.auto_advance = settings.wizard_auto_advance if auto_advance is None else auto_advance
        self.auto_advance_delay = (
            settings.auto_advance_delay_seconds if auto_advance_delay is None else auto_advance_delay
        )
        self._total_steps = total_steps or settings.wizard_total_steps

        self.state = WizardState(total_steps=self._total_steps)
        self._user_set_fields: Set[str] = set()
        self._auto_advance_handle = None
        # Bumped by reset() so a response for a discarded state is ignored
        self._session = 0

    # -------------------------------------------------------------------------
    # Derived views
    # -------------------------------------------------------------------------

    def errors_for(self, step: int) -> Dict[str, str]:
        """Validation errors of ``step`` against the current state."""
        return validate_step(step, self.state.config, self.state.selected_template, self.state.name)

    def is_step_valid(self, step: int) -> bool:
        return is_valid(self.errors_for(step))

    @property
    def validation_errors(self) -> Dict[str, str]:
        return self.errors_for(self.state.current_step)

    @property
    def is_valid(self) -> bool:
        return is_valid(self.validation_errors)

    @property
    def step_info(self) -> StepInfo:
        current = self.state.current_step
        total = self.state.total_steps
        errors = self.validation_errors
        return StepInfo(
            current=current,
            total=total,
            percentage=current / total * 100,
            is_first=current == 1,
            is_last=current == total,
            can_proceed=is_valid(errors) and current < total,
            can_go_back=current > 1,
            title=STEP_TITLES[current - 1] if current <= len(STEP_TITLES) else f"Step {current}",
            errors=errors,
        )

    @property
    def generating(self) -> bool:
        return self.state.generating

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def next_step(self) -> Dict[str, str]:
        """Advance one step if the current step validates.

        Returns:
            Errors of the current step; empty when the move was allowed.
        """
        self._cancel_auto_advance()
        errors = self.validation_errors
        if errors:
            logger.info("wizard_step_blocked", step=self.state.current_step, fields=sorted(errors))
            return errors
        if self.state.current_step < self.state.total_steps:
            self.state.current_step += 1
            logger.info("wizard_step_advanced", step=self.state.current_step)
        return errors

    def prev_step(self) -> bool:
        self._cancel_auto_advance()
        if self.state.current_step > 1:
            self.state.current_step -= 1
            return True
        return False

    def go_to_step(self, step: int) -> bool:
        """Jump straight to ``step`` without validating the steps in between."""
        self._cancel_auto_advance()
        if 1 <= step <= self.state.total_steps:
            self.state.current_step = step
            return True
        return False

    # -------------------------------------------------------------------------
    # Data entry
    # -------------------------------------------------------------------------

    def set_selected_template(self, template: Optional[BudgetTemplate]) -> None:
        """Select a template and seed configuration defaults from it.

        Fields the user already set through ``update_configuration`` keep
        their values. With auto-advance on, leaving step 1 is scheduled after
        a short delay.
        """
        self.state.selected_template = template
        if template is None:
            return

        seeds: Dict[str, Any] = {"geographical_zone": template.geographical_zone}
        if template.waste_factors:
            seeds["waste_factors"] = dict(template.waste_factors)
        seeds = {key: value for key, value in seeds.items() if key not in self._user_set_fields}
        if seeds:
            self.state.config = self.state.config.patch(seeds)

        logger.info("wizard_template_selected", template_id=template.id, seeded=sorted(seeds))

        if self.auto_advance and self.state.current_step == 1:
            self._cancel_auto_advance()
            self._auto_advance_handle = self.scope.call_later(self.auto_advance_delay, self._auto_advance)

    def _auto_advance(self) -> None:
        self._auto_advance_handle = None
        if self.state.current_step == 1:
            self.next_step()

    def _cancel_auto_advance(self) -> None:
        self.scope.cancel(self._auto_advance_handle)
        self._auto_advance_handle = None

    def set_name(self, name: str) -> None:
        self.state.name = name

    def set_description(self, description: str) -> None:
        self.state.description = description

    def update_configuration(self, updates: Optional[Dict[str, Any]] = None, **fields: Any) -> None:
        """Shallow-merge fields into the configuration.

        Accepts a dict (field names or camelCase aliases) and/or keyword
        arguments.
        """
        changes = {**(updates or {}), **fields}
        if not changes:
            return
        config = self.state.config.patch(changes)
        self.state.config = config
        self._user_set_fields.update(resolve_field_name(key) for key in changes)

    def clear_error(self) -> None:
        self.state.error = None

    def reset(self) -> None:
        """Return to step 1 with an empty configuration and no template."""
        self._cancel_auto_advance()
        self._session += 1
        self._user_set_fields.clear()
        self.state = WizardState(total_steps=self._total_steps)
        logger.info("wizard_reset")

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    def pending_errors(self) -> Dict[str, str]:
        """Errors of every step, merged in step order."""
        errors: Dict[str, str] = {}
        for step in range(1, self.state.total_steps + 1):
            for field_name, message in self.errors_for(step).items():
                errors.setdefault(field_name, message)
        return errors

    def build_request(self) -> CreateBudgetRequest:
        config = self.state.config
        template = self.state.selected_template
        return CreateBudgetRequest(
            name=self.state.name.strip(),
            description=self.state.description or None,
            project_id=self.project_id,
            budget_type=BudgetType.COMPLETE_PROJECT if config.include_labor else BudgetType.MATERIALS_ONLY,
            calculation_result_id=self.calculation_result_id,
            budget_template_id=template.id if template else None,
            configuration=config,
        )

    async def generate(self) -> Optional[BudgetEntity]:
        """Create the budget through the gateway.

        Rejected without any remote call until the wizard is on the review
        step with no errors in any step, and while a previous request is
        still in flight. Gateway failures are stored in ``state.error`` and
        leave the configuration untouched for a retry.

        Returns:
            The created budget, or None if rejected, failed or discarded.
        """
        if self.state.generating:
            logger.info("wizard_generate_ignored_in_flight")
            return None

        if self.state.current_step != self.state.total_steps:
            logger.info("wizard_generate_rejected", step=self.state.current_step, reason="not_on_review_step")
            return None

        errors = self.pending_errors()
        if errors:
            logger.info("wizard_generate_rejected", fields=sorted(errors))
            return None

        request = self.build_request()
        session = self._session
        self.state.generating = True
        self.state.error = None

        try:
            budget = await self.gateway.create_budget(request)
        except GatewayError as e:
            self._finish_generation(session, error=e.message)
            return None
        except Exception as e:
            logger.exception("wizard_generate_failed", error=str(e))
            self._finish_generation(session, error=f"Failed to generate budget: {str(e)}")
            return None

        if not self._finish_generation(session, budget=budget):
            return None
        if self.on_budget_created is not None:
            self.on_budget_created(budget)
        return budget

    def _finish_generation(
        self,
        session: int,
        budget: Optional[BudgetEntity] = None,
        error: Optional[str] = None,
    ) -> bool:
        """Apply a generation outcome unless its context is gone."""
        if not self.scope.is_active or session != self._session:
            logger.info("wizard_generate_result_discarded", scope_active=self.scope.is_active)
            return False
        self.state.generating = False
        if error is not None:
            self.state.error = error
            logger.warning("wizard_generate_error", error=error)
            return True
        self.state.generated = budget
        logger.info("wizard_budget_generated", budget_id=budget.id)
        return True

