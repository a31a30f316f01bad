from datetime import datetime

import pytest

from paintprogress.services.records import INITIAL_STATE, STATES, TERMINAL_STATE
from paintprogress.services.transitions import TransitionError, apply_transition
from paintprogress.services.validation import validate_entry

OLD_TIMESTAMP = datetime(2024, 1, 1)


def _unit(model_count: int = 5, progress: int = 3):
    record = validate_entry(
        {"name": "Spearmen", "modelCount": model_count, "progressCount": progress}
    )
    record.updated_at = OLD_TIMESTAMP
    return record


def _character(model_count: int = 1):
    record = validate_entry(
        {"name": "Magic Lord", "category": "Character", "modelCount": model_count}
    )
    record.updated_at = OLD_TIMESTAMP
    return record


def test_unit_cannot_advance_with_missing_models() -> None:
    record = _unit()

    with pytest.raises(TransitionError) as excinfo:
        apply_transition(record, {"state": STATES[1]})

    assert "5/5" in str(excinfo.value)
    assert record.state == INITIAL_STATE
    assert record.progress_count == 3
    assert record.updated_at == OLD_TIMESTAMP


def test_unit_advances_once_progress_is_complete() -> None:
    record = _unit()

    apply_transition(record, {"progressCount": 5})
    result = apply_transition(record, {"state": STATES[1]})

    assert result is record
    assert record.state == STATES[1]
    assert record.updated_at > OLD_TIMESTAMP


def test_progress_and_state_in_one_request() -> None:
    record = _unit()

    apply_transition(record, {"progressCount": 5, "state": TERMINAL_STATE})

    assert record.progress_count == 5
    assert record.state == TERMINAL_STATE


def test_rejected_request_does_not_apply_progress() -> None:
    record = _unit()

    with pytest.raises(TransitionError):
        apply_transition(record, {"progressCount": 4, "state": STATES[2]})

    assert record.progress_count == 3


def test_unit_can_always_return_to_initial_state() -> None:
    record = _unit(progress=5)
    apply_transition(record, {"state": STATES[2]})

    apply_transition(record, {"progressCount": 1, "state": INITIAL_STATE})

    assert record.state == INITIAL_STATE
    assert record.progress_count == 1


def test_unit_progress_is_clamped() -> None:
    record = _unit()

    apply_transition(record, {"progress_count": 40})

    assert record.progress_count == 5
    assert record.updated_at > OLD_TIMESTAMP


def test_character_ignores_requested_progress() -> None:
    record = _character(model_count=2)

    apply_transition(record, {"progressCount": 0, "state": TERMINAL_STATE})

    assert record.progress_count == 2
    assert record.state == TERMINAL_STATE


@pytest.mark.parametrize(
    "request_payload",
    [
        {"state": "Glazed"},
        {"progressCount": -1},
        {"progressCount": "3"},
        {"progressCount": 501},
        "Build",
    ],
)
def test_malformed_requests_are_rejected(request_payload) -> None:
    record = _unit()

    with pytest.raises(TransitionError):
        apply_transition(record, request_payload)

    assert record.updated_at == OLD_TIMESTAMP


def test_empty_request_changes_nothing() -> None:
    record = _unit()

    apply_transition(record, {})

    assert record.progress_count == 3
    assert record.updated_at == OLD_TIMESTAMP
