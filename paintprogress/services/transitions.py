from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from ..schemas import TransitionForm
from .records import INITIAL_STATE, StoredRecord

logger = logging.getLogger(__name__)


class TransitionError(ValueError):
    """Raised when a state or progress change is not allowed for a record."""


def _read_request(request: TransitionForm | Mapping[str, Any]) -> TransitionForm:
    if isinstance(request, TransitionForm):
        return request
    if not isinstance(request, Mapping):
        raise TransitionError("Invalid state payload")
    try:
        return TransitionForm.model_validate(dict(request))
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}"
            for item in exc.errors()
        )
        raise TransitionError(f"Invalid state payload ({details})") from exc


def apply_transition(
    record: StoredRecord, request: TransitionForm | Mapping[str, Any]
) -> StoredRecord:
    """Apply a ``{state?, progressCount?}`` change to ``record`` in place.

    Characters always count as fully progressed. A unit can only leave the
    initial state once every model is accounted for. A rejected request
    leaves the record untouched.
    """

    form = _read_request(request)

    if record.is_character:
        progress = record.model_count
    elif form.progress_count is not None:
        progress = min(form.progress_count, record.model_count)
    else:
        progress = record.progress_count

    if (
        form.state is not None
        and form.state != INITIAL_STATE
        and not record.is_character
        and progress != record.model_count
    ):
        logger.debug(
            "Rejected move of %s to %s with %s/%s models done",
            record.id,
            form.state,
            progress,
            record.model_count,
        )
        raise TransitionError(
            f"{record.name} needs progress {record.model_count}/{record.model_count} "
            f"before it can move to {form.state} (currently {progress}/{record.model_count})"
        )

    record.progress_count = progress
    if form.state is not None:
        record.state = form.state
    if form.state is not None or form.progress_count is not None:
        record.touch()
    return record
