from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from ..config import IMPORT_MAX_ENTRIES
from ..schemas import CommandForm, EntryForm
from .records import (
    CATEGORIES,
    COMMAND_FIELDS,
    INITIAL_STATE,
    STATES,
    UNIT,
    CommandComposition,
    DraftEntry,
    StoredRecord,
    default_manual_command,
    new_record_id,
)

UNKNOWN_NAME = "Unknown Unit"
_MISSING = object()


class EntryValidationError(ValueError):
    """Raised when an entry does not satisfy the record constraints."""

    def __init__(self, errors: list[dict[str, str]]) -> None:
        self.errors = errors
        summary = "; ".join(f"{item['field']}: {item['message']}" for item in errors)
        super().__init__(summary or "Invalid entry")

    def to_payload(self) -> dict[str, Any]:
        return {"error": "Invalid model payload", "fields": self.errors}


class BatchValidationError(EntryValidationError):
    """Raised when one entry of an import batch is invalid; nothing is kept."""

    def __init__(self, index: int, errors: list[dict[str, str]]) -> None:
        self.index = index
        super().__init__(errors)

    def __str__(self) -> str:
        return f"Entry {self.index + 1}: {super().__str__()}"

    def to_payload(self) -> dict[str, Any]:
        return {"error": "Invalid import payload", "index": self.index, "fields": self.errors}


@dataclass(slots=True)
class RepairResult:
    record: StoredRecord
    changed: bool


def _errors_from(exc: ValidationError) -> list[dict[str, str]]:
    errors: list[dict[str, str]] = []
    for item in exc.errors():
        field_name = ".".join(str(part) for part in item.get("loc", ())) or "entry"
        errors.append({"field": field_name, "message": item.get("msg", "invalid value")})
    return errors


def _resolve_command(form: CommandForm | None, defaults: CommandComposition) -> CommandComposition:
    command = CommandComposition(
        champion=defaults.champion,
        musician=defaults.musician,
        banner_bearer=defaults.banner_bearer,
    )
    if form is None:
        return command
    for attr in COMMAND_FIELDS:
        value = getattr(form, attr)
        if value is not None:
            setattr(command, attr, value)
    return command


def settle_invariants(record: StoredRecord) -> StoredRecord:
    """Force the progress/command rules that hold for every stored record."""

    if record.is_character:
        record.progress_count = record.model_count
        record.command = CommandComposition()
    else:
        record.progress_count = max(0, min(record.progress_count, record.model_count))
    return record


def validate_entry(
    entry: DraftEntry | Mapping[str, Any],
    faction: str | None = None,
    *,
    default_command: CommandComposition | None = None,
) -> StoredRecord:
    """Validate a draft or manually entered fields into a new stored record.

    ``faction`` overrides whatever faction the entry carries. Command slots the
    entry leaves out are taken from ``default_command``, which defaults to the
    manual-entry assumption of one of each.
    """

    if isinstance(entry, DraftEntry):
        payload: Any = entry.to_payload()
    elif isinstance(entry, Mapping):
        payload = dict(entry)
    else:
        raise EntryValidationError([{"field": "entry", "message": "must be an object"}])
    if faction is not None:
        payload["faction"] = faction

    try:
        form = EntryForm.model_validate(payload)
    except ValidationError as exc:
        raise EntryValidationError(_errors_from(exc)) from exc

    now = datetime.utcnow()
    record = StoredRecord(
        id=new_record_id(),
        name=form.name,
        faction=form.faction,
        category=form.category,
        model_count=form.model_count,
        progress_count=form.progress_count,
        details=form.details,
        command=_resolve_command(form.command, default_command or default_manual_command()),
        state=form.state or INITIAL_STATE,
        created_at=now,
        updated_at=now,
    )
    return settle_invariants(record)


def validate_batch(
    entries: Sequence[DraftEntry | Mapping[str, Any]],
    faction: str | None = None,
    *,
    default_command: CommandComposition | None = None,
) -> list[StoredRecord]:
    """Validate every entry or none: the first failure aborts the batch."""

    if isinstance(entries, (str, bytes)) or not isinstance(entries, Sequence):
        raise EntryValidationError([{"field": "entries", "message": "must be a list"}])
    if not entries:
        raise EntryValidationError(
            [{"field": "entries", "message": "at least one entry is required"}]
        )
    if len(entries) > IMPORT_MAX_ENTRIES:
        raise EntryValidationError(
            [{"field": "entries", "message": f"at most {IMPORT_MAX_ENTRIES} entries are allowed"}]
        )

    records: list[StoredRecord] = []
    for index, entry in enumerate(entries):
        try:
            records.append(validate_entry(entry, faction, default_command=default_command))
        except EntryValidationError as exc:
            raise BatchValidationError(index, exc.errors) from exc
    return records


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _read(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return _MISSING


def _record_fields(record: StoredRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "name": record.name,
        "faction": record.faction,
        "category": record.category,
        "model_count": record.model_count,
        "progress_count": record.progress_count,
        "details": record.details,
        "command": record.command.to_payload(),
        "state": record.state,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }


def _repair_timestamp(value: Any) -> tuple[datetime, bool]:
    if isinstance(value, datetime):
        return value, False
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            parsed = None
        if parsed is not None:
            if parsed.tzinfo is not None:
                parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
            return parsed, False
    return datetime.utcnow(), True


def _repair_command(raw_command: Any, category: str) -> tuple[CommandComposition, bool]:
    source = raw_command if isinstance(raw_command, Mapping) else {}
    changed = not isinstance(raw_command, Mapping)
    command = CommandComposition()
    for attr, key in COMMAND_FIELDS.items():
        value = _read(source, key, attr)
        if category != UNIT:
            if value != 0 or not _is_count(value):
                changed = True
            continue
        if _is_count(value) and value >= 0:
            setattr(command, attr, value)
        else:
            setattr(command, attr, 1)
            changed = True
    return command, changed


def repair_record(record_like: StoredRecord | Mapping[str, Any] | Any) -> RepairResult:
    """Heal a persisted record into a valid ``StoredRecord``.

    Every field falls back to its nearest valid value. ``changed`` tells the
    caller whether anything had to be rewritten, so it can decide whether to
    persist. Running this on its own output never reports a change.
    """

    if isinstance(record_like, StoredRecord):
        raw: Mapping[str, Any] = _record_fields(record_like)
    elif isinstance(record_like, Mapping):
        raw = record_like
    else:
        raw = {}
    changed = False

    record_id = _read(raw, "id")
    if not isinstance(record_id, str) or not record_id.strip():
        record_id = new_record_id()
        changed = True

    name = _read(raw, "name")
    if not isinstance(name, str) or not name.strip():
        name = UNKNOWN_NAME
        changed = True

    faction = _read(raw, "faction")
    if not isinstance(faction, str):
        faction = ""
        changed = True

    category = _read(raw, "category")
    if category not in CATEGORIES:
        category = UNIT
        changed = True

    model_count = _read(raw, "modelCount", "model_count")
    if not _is_count(model_count) or model_count < 1:
        model_count = 1
        changed = True

    details = _read(raw, "details")
    if not isinstance(details, str):
        details = ""
        changed = True

    state = _read(raw, "state")
    if state not in STATES:
        state = INITIAL_STATE
        changed = True

    command, command_changed = _repair_command(_read(raw, "command"), category)
    changed = changed or command_changed

    progress = _read(raw, "progressCount", "progress_count")
    if category != UNIT:
        expected = model_count
    elif _is_count(progress):
        expected = max(0, min(progress, model_count))
    else:
        expected = 0
    if progress != expected or not _is_count(progress):
        changed = True

    created_at, created_changed = _repair_timestamp(_read(raw, "createdAt", "created_at"))
    updated_at, updated_changed = _repair_timestamp(_read(raw, "updatedAt", "updated_at"))
    changed = changed or created_changed or updated_changed

    record = StoredRecord(
        id=record_id,
        name=name,
        faction=faction,
        category=category,
        model_count=model_count,
        progress_count=expected,
        details=details,
        command=command,
        state=state,
        created_at=created_at,
        updated_at=updated_at,
    )
    return RepairResult(record=record, changed=changed)
