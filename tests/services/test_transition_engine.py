"""
TransitionEngine tests.

Validates:
- Legality, preconditions and side-effects of status changes
- One history row per change with the new status
- previous_status bookkeeping through the cancel branch
- reopen / reject_cancellation / reject_unapproval escape hatches
- Notifications queued in the outbox
"""

import pytest

from ops_config import get_default_settings
from ops_kernel.exceptions import (
    EntityNotFoundError,
    InvalidStateError,
    InvalidTransitionError,
    ValidationError,
)
from ops_kernel.services.entity_store import EntityStore
from ops_kernel.services.settings_service import SettingsService
from ops_kernel.services.transition_engine import TransitionEngine
from ops_modules.requests.orm import PurchaseRequestModel
from ops_modules.requests.service import PURCHASE_REQUEST_BINDING
from tests.factories import request_fields


@pytest.fixture
def store(session, deterministic_clock):
    SettingsService(session, "requests").seed_defaults(get_default_settings("requests"))
    return EntityStore(session, PURCHASE_REQUEST_BINDING, deterministic_clock)


@pytest.fixture
def engine(session, deterministic_clock, store):
    return TransitionEngine(session, PURCHASE_REQUEST_BINDING, deterministic_clock)


@pytest.fixture
def request_id(store):
    return store.create(request_fields(), "ana").id


def _history(engine, entity_id):
    return engine.history.list_for_entity(entity_id)


class TestLegality:

    def test_legal_targets_in_definition_order(self, engine, request_id):
        assert engine.legal_targets(request_id) == ["approved", "cancellation-request", "canceled"]

    def test_illegal_target(self, engine, request_id):
        with pytest.raises(InvalidTransitionError) as exc_info:
            engine.transition(request_id, "received", {"delivered_quantity": 1}, "alice")
        assert exc_info.value.from_status == "pending"
        assert exc_info.value.to_status == "received"

    def test_unknown_target(self, engine, request_id):
        with pytest.raises(InvalidTransitionError):
            engine.transition(request_id, "shipped", actor="alice")

    def test_unknown_entity(self, engine):
        with pytest.raises(EntityNotFoundError):
            engine.transition(404, "approved", actor="alice")

    def test_actor_required(self, engine, request_id):
        with pytest.raises(ValidationError):
            engine.transition(request_id, "approved", actor="")

    def test_rejection_writes_nothing(self, engine, request_id):
        with pytest.raises(InvalidTransitionError):
            engine.transition(request_id, "ordered", actor="alice")
        assert len(_history(engine, request_id)) == 1


class TestApplyTransition:

    def test_approve_stamps_approver_and_history(self, engine, request_id):
        approved = engine.transition(request_id, "approved", {"notes": "ok"}, "alice")
        assert approved.status == "approved"
        assert approved.approved_by == "alice"
        assert approved.last_status_update_by == "alice"
        assert approved.last_status_update_notes == "ok"
        latest = _history(engine, request_id)[0]
        assert (latest.status, latest.updated_by, latest.notes) == ("approved", "alice", "ok")

    def test_order_records_purchase_refs(self, engine, request_id):
        engine.transition(request_id, "approved", actor="alice")
        ordered = engine.transition(
            request_id, "ordered", {"erp_order_number": "PO-77", "manual_supplier": "Acme"}, "bruno"
        )
        assert ordered.erp_order_number == "PO-77"
        assert ordered.manual_supplier == "Acme"

    def test_receive_requires_delivered_quantity(self, engine, request_id):
        engine.transition(request_id, "approved", actor="alice")
        engine.transition(request_id, "ordered", actor="bruno")
        with pytest.raises(ValidationError):
            engine.transition(request_id, "received", actor="bruno")
        assert _history(engine, request_id)[0].status == "ordered"

    def test_receive_records_delivery(self, engine, request_id, deterministic_clock):
        engine.transition(request_id, "approved", actor="alice")
        engine.transition(request_id, "ordered", actor="bruno")
        received = engine.transition(
            request_id, "received", {"delivered_quantity": 9, "defective_quantity": 1}, "bruno"
        )
        assert received.delivered_quantity == 9
        assert received.defective_quantity == 1
        assert received.received_date == deterministic_clock.now()

    def test_approver_not_overwritten_after_reopen(self, engine, request_id):
        engine.transition(request_id, "approved", actor="alice")
        engine.transition(request_id, "canceled", actor="alice")
        engine.reopen(request_id, "alice")
        again = engine.transition(request_id, "approved", actor="carol")
        assert again.approved_by == "alice"


class TestCancelBranch:

    def test_request_snapshots_previous(self, engine, request_id):
        engine.transition(request_id, "approved", actor="alice")
        pending_cancel = engine.transition(
            request_id, "cancellation-request", {"notes": "client withdrew"}, "ana"
        )
        assert pending_cancel.previous_status == "approved"

    def test_cancellation_request_needs_reason(self, engine, request_id):
        with pytest.raises(ValidationError):
            engine.transition(request_id, "cancellation-request", actor="ana")

    def test_reject_restores_previous(self, engine, request_id):
        engine.transition(request_id, "approved", actor="alice")
        engine.transition(request_id, "cancellation-request", {"notes": "x"}, "ana")
        restored = engine.reject_cancellation(request_id, "alice", "still needed")
        assert restored.status == "approved"
        assert restored.previous_status is None
        latest = _history(engine, request_id)[0]
        assert (latest.status, latest.notes) == ("approved", "still needed")

    def test_reject_requires_cancellation_request(self, engine, request_id):
        with pytest.raises(InvalidTransitionError):
            engine.reject_cancellation(request_id, "alice")

    def test_reject_without_snapshot(self, engine, request_id, session):
        engine.transition(request_id, "cancellation-request", {"notes": "x"}, "ana")
        row = session.get(PurchaseRequestModel, request_id)
        row.previous_status = None
        session.flush()
        with pytest.raises(InvalidStateError):
            engine.reject_cancellation(request_id, "alice")

    def test_approve_cancellation_keeps_snapshot(self, engine, request_id):
        engine.transition(request_id, "approved", actor="alice")
        engine.transition(request_id, "cancellation-request", {"notes": "x"}, "ana")
        canceled = engine.transition(request_id, "canceled", actor="alice")
        assert canceled.previous_status == "approved"


class TestUnapprovalBranch:

    def test_request_needs_notes(self, engine, request_id):
        engine.transition(request_id, "approved", actor="alice")
        with pytest.raises(ValidationError):
            engine.transition(request_id, "unapproval-request", actor="ana")

    def test_only_approved_can_request_unapproval(self, engine, request_id):
        with pytest.raises(InvalidTransitionError):
            engine.transition(request_id, "unapproval-request", {"notes": "wrong item"}, "ana")

    def test_request_snapshots_approved(self, engine, request_id):
        engine.transition(request_id, "approved", actor="alice")
        asked = engine.transition(request_id, "unapproval-request", {"notes": "wrong item"}, "ana")
        assert asked.status == "unapproval-request"
        assert asked.previous_status == "approved"
        assert engine.legal_targets(request_id) == ["pending"]

    def test_granted_unapproval_returns_to_pending(self, engine, request_id):
        engine.transition(request_id, "approved", actor="alice")
        engine.transition(request_id, "unapproval-request", {"notes": "wrong item"}, "ana")
        granted = engine.transition(request_id, "pending", actor="alice")
        assert granted.status == "pending"
        assert granted.previous_status is None
        assert granted.approved_by == "alice"
        assert _history(engine, request_id)[0].status == "pending"

    def test_reject_restores_approved(self, engine, request_id):
        engine.transition(request_id, "approved", actor="alice")
        engine.transition(request_id, "unapproval-request", {"notes": "wrong item"}, "ana")
        restored = engine.reject_unapproval(request_id, "alice", "item is right")
        assert restored.status == "approved"
        assert restored.previous_status is None
        latest = _history(engine, request_id)[0]
        assert (latest.status, latest.notes) == ("approved", "item is right")

    def test_reject_requires_unapproval_request(self, engine, request_id):
        engine.transition(request_id, "approved", actor="alice")
        with pytest.raises(InvalidTransitionError):
            engine.reject_unapproval(request_id, "alice")

    def test_reject_cancellation_does_not_accept_unapproval(self, engine, request_id):
        engine.transition(request_id, "approved", actor="alice")
        engine.transition(request_id, "unapproval-request", {"notes": "wrong item"}, "ana")
        with pytest.raises(InvalidTransitionError):
            engine.reject_cancellation(request_id, "alice")


class TestReopen:

    def test_reopen_terminal(self, engine, request_id):
        engine.transition(request_id, "canceled", actor="alice")
        reopened = engine.reopen(request_id, "alice", "mistake")
        assert reopened.status == "pending"
        assert reopened.reopened is True
        assert reopened.previous_status is None
        latest = _history(engine, request_id)[0]
        assert (latest.status, latest.notes) == ("pending", "reopened: mistake")

    def test_reopen_without_notes(self, engine, request_id):
        engine.transition(request_id, "canceled", actor="alice")
        engine.reopen(request_id, "alice")
        assert _history(engine, request_id)[0].notes == "reopened"

    def test_reopen_open_entity(self, engine, request_id):
        with pytest.raises(InvalidTransitionError):
            engine.reopen(request_id, "alice")


class TestOutbox:

    def test_creator_is_notified_of_others_changes(self, engine, request_id):
        engine.transition(request_id, "approved", actor="alice")
        (notification,) = engine.outbox
        assert notification.target_user_id == "ana"
        assert notification.message == "Purchase request SC-00001 was updated to: Approved"
        assert notification.link == "/dashboard/requests?search=SC-00001"

    def test_own_change_is_silent(self, engine, request_id):
        engine.transition(request_id, "cancellation-request", {"notes": "dup"}, "ana")
        assert engine.outbox == []

    def test_lookup_resolves_target(self, session, deterministic_clock, store, request_id):
        engine = TransitionEngine(
            session, PURCHASE_REQUEST_BINDING, deterministic_clock, user_lookup={"ana": 42}.get
        )
        engine.transition(request_id, "approved", actor="alice")
        assert engine.outbox[0].target_user_id == 42

    def test_unknown_creator_is_skipped(self, session, deterministic_clock, store, request_id):
        engine = TransitionEngine(
            session, PURCHASE_REQUEST_BINDING, deterministic_clock, user_lookup=lambda name: None
        )
        engine.transition(request_id, "approved", actor="alice")
        assert engine.outbox == []
