"""
Workflow definition tests.

Validates:
- Definitions reject unknown states at construction
- legal_targets honours settings toggles
- Custom status entry and exit sets on the planner workflow
- Terminal and archived state sets
"""

import pytest

from ops_kernel.domain.entity import EntityFields
from ops_kernel.domain.status import CustomStatus
from ops_kernel.domain.workflow import Transition, TransitionPayload, WorkflowDefinition
from ops_kernel.exceptions import ValidationError
from ops_modules.planner.config import PlannerSettings
from ops_modules.planner.workflows import PRODUCTION_ORDER_WORKFLOW
from ops_modules.requests.config import RequestSettings
from ops_modules.requests.workflows import PURCHASE_REQUEST_WORKFLOW

FIELDS = EntityFields(
    required=("quantity",),
    editable=frozenset({"quantity"}),
    search=("consecutive",),
    classification="priority",
    date_field="request_date",
)


class TestDefinitionValidation:

    def test_unknown_transition_state(self):
        with pytest.raises(ValueError):
            WorkflowDefinition(
                name="broken",
                entity_type="thing",
                initial_state="a",
                states=("a", "b"),
                transitions=(Transition("a", "c", "go"),),
                terminal_states=frozenset({"b"}),
                final_state="b",
                fields=FIELDS,
            )

    def test_unknown_initial_state(self):
        with pytest.raises(ValueError):
            WorkflowDefinition(
                name="broken",
                entity_type="thing",
                initial_state="z",
                states=("a",),
                transitions=(),
                terminal_states=frozenset(),
                final_state="a",
                fields=FIELDS,
            )


class TestRequestLegality:

    def test_pending_targets(self):
        settings = RequestSettings()
        assert PURCHASE_REQUEST_WORKFLOW.legal_targets("pending", settings) == frozenset(
            {"approved", "cancellation-request", "canceled"}
        )

    def test_warehouse_reception_requires_toggle(self):
        off = RequestSettings(use_warehouse_reception=False)
        on = RequestSettings(use_warehouse_reception=True)
        assert "received-in-warehouse" not in PURCHASE_REQUEST_WORKFLOW.legal_targets("received", off)
        assert "received-in-warehouse" in PURCHASE_REQUEST_WORKFLOW.legal_targets("received", on)

    def test_terminal_states_have_no_targets(self):
        settings = RequestSettings(use_warehouse_reception=True)
        for status in ("received-in-warehouse", "canceled"):
            assert PURCHASE_REQUEST_WORKFLOW.legal_targets(status, settings) == frozenset()

    def test_cancellation_request_only_goes_to_canceled(self):
        targets = PURCHASE_REQUEST_WORKFLOW.legal_targets("cancellation-request", RequestSettings())
        assert targets == frozenset({"canceled"})

    def test_unapproval_request_only_from_approved(self):
        settings = RequestSettings()
        assert "unapproval-request" in PURCHASE_REQUEST_WORKFLOW.legal_targets("approved", settings)
        assert "unapproval-request" not in PURCHASE_REQUEST_WORKFLOW.legal_targets("ordered", settings)
        assert PURCHASE_REQUEST_WORKFLOW.legal_targets("unapproval-request", settings) == frozenset(
            {"pending"}
        )

    def test_unapproval_request_is_not_archived(self):
        assert not PURCHASE_REQUEST_WORKFLOW.is_terminal("unapproval-request")
        assert "unapproval-request" not in PURCHASE_REQUEST_WORKFLOW.archived_states(RequestSettings())

    def test_pending_cannot_skip_to_received(self):
        assert "received" not in PURCHASE_REQUEST_WORKFLOW.legal_targets("pending", RequestSettings())

    def test_archived_states_follow_toggle(self):
        assert PURCHASE_REQUEST_WORKFLOW.archived_states(RequestSettings()) == frozenset(
            {"received", "canceled"}
        )
        assert PURCHASE_REQUEST_WORKFLOW.archived_states(
            RequestSettings(use_warehouse_reception=True)
        ) == frozenset({"received-in-warehouse", "canceled"})

    def test_terminal_states_are_static(self):
        assert PURCHASE_REQUEST_WORKFLOW.is_terminal("received")
        assert PURCHASE_REQUEST_WORKFLOW.is_terminal("received-in-warehouse")
        assert not PURCHASE_REQUEST_WORKFLOW.is_terminal("ordered")

    def test_action_names(self):
        assert PURCHASE_REQUEST_WORKFLOW.action_name("pending", "approved") == "approve"
        assert PURCHASE_REQUEST_WORKFLOW.action_name("ordered", "custom-1") == "set_custom_1"


def _planner_settings(*active: str) -> PlannerSettings:
    return PlannerSettings(
        custom_statuses=tuple(
            CustomStatus(code=f"custom-{i}", label=f"Stage {i}", is_active=f"custom-{i}" in active)
            for i in range(1, 5)
        )
    )


class TestPlannerCustomStatuses:

    def test_active_custom_reachable_from_in_progress(self):
        targets = PRODUCTION_ORDER_WORKFLOW.legal_targets("in-progress", _planner_settings("custom-1"))
        assert "custom-1" in targets
        assert "custom-2" not in targets

    def test_custom_not_reachable_from_pending(self):
        targets = PRODUCTION_ORDER_WORKFLOW.legal_targets("pending", _planner_settings("custom-1"))
        assert "custom-1" not in targets

    def test_custom_exits(self):
        targets = PRODUCTION_ORDER_WORKFLOW.legal_targets(
            "custom-1", _planner_settings("custom-1", "custom-3")
        )
        assert targets == frozenset(
            {"in-progress", "on-hold", "completed", "cancellation-request", "canceled", "custom-3"}
        )

    def test_deactivated_custom_can_still_be_left(self):
        targets = PRODUCTION_ORDER_WORKFLOW.legal_targets("custom-2", _planner_settings())
        assert "in-progress" in targets
        assert "custom-2" not in targets

    def test_no_settings_means_builtin_edges_only(self):
        targets = PRODUCTION_ORDER_WORKFLOW.legal_targets("approved")
        assert targets == frozenset(
            {"in-queue", "in-progress", "on-hold", "unapproval-request", "cancellation-request", "canceled"}
        )

    def test_completed_is_terminal(self):
        assert PRODUCTION_ORDER_WORKFLOW.is_terminal("completed")
        assert PRODUCTION_ORDER_WORKFLOW.legal_targets("completed", PlannerSettings()) == frozenset()


class TestTransitionPayload:

    def test_coerce_none(self):
        assert TransitionPayload.coerce(None) == TransitionPayload()

    def test_coerce_mapping(self):
        payload = TransitionPayload.coerce({"notes": "rush", "delivered_quantity": 4})
        assert payload.notes == "rush"
        assert payload.delivered_quantity == 4

    def test_unknown_key_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            TransitionPayload.coerce({"colour": "red"})
        assert exc_info.value.field == "colour"
