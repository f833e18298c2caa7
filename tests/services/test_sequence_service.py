"""
Consecutive code allocation tests.

Validates:
- First value is 1 and values strictly increase per scope
- Scopes are independent
- A rolled-back allocation is handed out again, never skipped into reuse
- reset only moves forward
"""

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from ops_kernel.exceptions import SettingsError, ValidationError
from ops_kernel.models.settings import WorkflowSettingRecord
from ops_kernel.services.sequence_service import SequenceService, format_code


class TestFormatCode:

    def test_zero_padded_to_five(self):
        assert format_code("SC-", 7) == "SC-00007"

    def test_wider_numbers_are_not_truncated(self):
        assert format_code("OP-", 123456) == "OP-123456"


class TestNextValue:

    def test_fresh_scope_starts_at_one(self, session):
        service = SequenceService(session)
        assert service.current_value("requests") is None
        assert service.next_value("requests") == 1
        assert service.next_value("requests") == 2
        assert service.current_value("requests") == 2

    def test_scopes_are_independent(self, session):
        service = SequenceService(session)
        service.next_value("requests")
        service.next_value("requests")
        assert service.next_value("planner") == 1

    def test_rolled_back_allocation_is_not_observable(self, session):
        service = SequenceService(session)
        assert service.next_value("requests") == 1
        session.commit()
        assert service.next_value("requests") == 2
        session.rollback()
        assert service.next_value("requests") == 2

    def test_corrupt_counter(self, session):
        session.add(WorkflowSettingRecord(scope="requests", key="next_number", value="seven"))
        session.flush()
        with pytest.raises(SettingsError):
            SequenceService(session).next_value("requests")

    @settings(max_examples=25, suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(count=st.integers(min_value=1, max_value=30))
    def test_values_strictly_increase(self, session, count):
        service = SequenceService(session)
        scope = f"fuzz-{count}"
        start = (service.current_value(scope) or 0) + 1
        values = [service.next_value(scope) for _ in range(count)]
        assert values == list(range(start, start + count))


class TestReset:

    def test_reset_forward(self, session):
        service = SequenceService(session)
        service.next_value("planner")
        service.reset("planner", 500)
        assert service.next_value("planner") == 500

    def test_reset_backwards_is_rejected(self, session):
        service = SequenceService(session)
        for _ in range(3):
            service.next_value("planner")
        with pytest.raises(ValidationError):
            service.reset("planner", 2)

    def test_reset_requires_integer(self, session):
        with pytest.raises(ValidationError):
            SequenceService(session).reset("planner", "10")
