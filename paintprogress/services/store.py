from __future__ import annotations

import json
import logging
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from .. import models
from .records import StoredRecord
from .validation import repair_record

logger = logging.getLogger(__name__)


def _row_payload(row: models.Miniature) -> dict[str, Any]:
    command: Any = None
    if row.command_json:
        try:
            command = json.loads(row.command_json)
        except json.JSONDecodeError:
            command = None
    return {
        "id": row.id,
        "name": row.name,
        "faction": row.faction,
        "category": row.category,
        "model_count": row.model_count,
        "progress_count": row.progress_count,
        "details": row.details,
        "command": command,
        "state": row.state,
        "created_at": row.created_at,
        "updated_at": row.updated_at,
    }


def _apply_to_row(row: models.Miniature, record: StoredRecord) -> None:
    row.id = record.id
    row.name = record.name
    row.faction = record.faction
    row.category = record.category
    row.model_count = record.model_count
    row.progress_count = record.progress_count
    row.details = record.details
    row.command_json = json.dumps(record.command.to_payload(), ensure_ascii=False)
    row.state = record.state
    row.created_at = record.created_at
    row.updated_at = record.updated_at


def _new_row(record: StoredRecord) -> models.Miniature:
    row = models.Miniature()
    _apply_to_row(row, record)
    return row


def _load_row(row: models.Miniature) -> tuple[StoredRecord, bool]:
    result = repair_record(_row_payload(row))
    if result.changed:
        _apply_to_row(row, result.record)
    return result.record, result.changed


def load_records(db: Session) -> list[StoredRecord]:
    """Return every stored record, writing back any rows that needed repair."""

    rows = (
        db.execute(
            select(models.Miniature).order_by(
                models.Miniature.created_at, models.Miniature.id
            )
        )
        .scalars()
        .all()
    )
    records: list[StoredRecord] = []
    repaired = 0
    for row in rows:
        record, changed = _load_row(row)
        records.append(record)
        if changed:
            repaired += 1
    if repaired:
        db.commit()
        logger.info("Repaired %d stored miniatures", repaired)
    return records


def get_record(db: Session, record_id: str) -> StoredRecord | None:
    row = db.get(models.Miniature, record_id)
    if row is None:
        return None
    record, changed = _load_row(row)
    if changed:
        db.commit()
        logger.info("Repaired stored miniature %s", record.id)
    return record


def add_records(db: Session, records: Iterable[StoredRecord]) -> int:
    rows = [_new_row(record) for record in records]
    db.add_all(rows)
    db.commit()
    return len(rows)


def save_record(db: Session, record: StoredRecord) -> None:
    row = db.get(models.Miniature, record.id)
    if row is None:
        db.add(_new_row(record))
    else:
        _apply_to_row(row, record)
    db.commit()


def delete_record(db: Session, record_id: str) -> StoredRecord | None:
    row = db.get(models.Miniature, record_id)
    if row is None:
        return None
    record = repair_record(_row_payload(row)).record
    db.delete(row)
    db.commit()
    logger.info("Deleted miniature %s (%s)", record.id, record.name)
    return record
