from datetime import datetime

import pytest

from paintprogress.services.records import INITIAL_STATE, STATES
from paintprogress.services.validation import UNKNOWN_NAME, repair_record, validate_entry


def _stored_payload(**overrides) -> dict:
    payload = {
        "id": "abc123",
        "name": "Spearmen",
        "faction": "Empire",
        "category": "Unit",
        "modelCount": 10,
        "progressCount": 4,
        "details": "Musician",
        "command": {"champion": 0, "musician": 1, "bannerBearer": 0},
        "state": STATES[1],
        "createdAt": "2024-05-01T10:00:00",
        "updatedAt": "2024-05-02T10:00:00",
    }
    payload.update(overrides)
    return payload


CORRUPTED_RECORDS = [
    {},
    None,
    "not a record",
    _stored_payload(id=""),
    _stored_payload(id=17),
    _stored_payload(name=None),
    _stored_payload(faction=5),
    _stored_payload(category="Monster"),
    _stored_payload(modelCount=-3),
    _stored_payload(modelCount="10"),
    _stored_payload(modelCount=True),
    _stored_payload(state="Glazed"),
    _stored_payload(command=None),
    _stored_payload(command={"champion": 1}),
    _stored_payload(command={"champion": -1, "musician": 1.5, "bannerBearer": "1"}),
    _stored_payload(progressCount=25),
    _stored_payload(progressCount=-2),
    _stored_payload(progressCount=None),
    _stored_payload(details=["a"]),
    _stored_payload(createdAt="yesterday"),
    _stored_payload(category="Character", progressCount=3),
    _stored_payload(category="Character", command={"champion": 1, "musician": 0, "bannerBearer": 0}),
]


def test_valid_record_is_left_alone() -> None:
    result = repair_record(_stored_payload())

    assert result.changed is False
    assert result.record.id == "abc123"
    assert result.record.progress_count == 4
    assert result.record.created_at == datetime(2024, 5, 1, 10, 0)


@pytest.mark.parametrize("raw", CORRUPTED_RECORDS)
def test_corrupted_records_are_flagged(raw) -> None:
    assert repair_record(raw).changed is True


@pytest.mark.parametrize("raw", CORRUPTED_RECORDS + [_stored_payload()])
def test_repair_is_idempotent(raw) -> None:
    first = repair_record(raw)

    assert repair_record(first.record).changed is False
    assert repair_record(first.record.to_payload()).changed is False


@pytest.mark.parametrize("raw", CORRUPTED_RECORDS)
def test_repaired_records_hold_invariants(raw) -> None:
    record = repair_record(raw).record

    assert 0 <= record.progress_count <= record.model_count
    if record.is_character:
        assert record.progress_count == record.model_count
        assert record.command.is_empty()


def test_repair_uses_nearest_valid_values() -> None:
    record = repair_record(
        {
            "id": None,
            "name": "",
            "category": "Unit",
            "modelCount": 0,
            "progressCount": 7,
            "state": "Glazed",
            "command": {"musician": 0},
        }
    ).record

    assert record.id and record.id != "None"
    assert record.name == UNKNOWN_NAME
    assert record.faction == ""
    assert record.model_count == 1
    assert record.progress_count == 1
    assert record.state == INITIAL_STATE
    assert record.command.to_payload() == {"champion": 1, "musician": 0, "bannerBearer": 1}


def test_character_progress_is_restored_on_repair() -> None:
    record = repair_record(
        _stored_payload(category="Character", modelCount=3, progressCount=1, command=None)
    ).record

    assert record.progress_count == 3
    assert record.command.is_empty()


def test_snake_case_keys_are_understood() -> None:
    raw = {
        "id": "row-1",
        "name": "Knights",
        "faction": "",
        "category": "Unit",
        "model_count": 5,
        "progress_count": 5,
        "details": "",
        "command": {"champion": 1, "musician": 1, "banner_bearer": 1},
        "state": STATES[-1],
        "created_at": datetime(2024, 1, 1),
        "updated_at": datetime(2024, 1, 2),
    }

    result = repair_record(raw)

    assert result.changed is False
    assert result.record.model_count == 5
    assert result.record.command.banner_bearer == 1


def test_freshly_validated_records_need_no_repair() -> None:
    record = validate_entry({"name": "Wizard", "category": "Character", "modelCount": 1})

    assert repair_record(record).changed is False
