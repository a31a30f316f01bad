from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas import ListTextForm
from ..services import list_parser, store
from ..services.records import default_manual_command, default_parsed_command
from ..services.transitions import TransitionError, apply_transition
from ..services.validation import EntryValidationError, validate_batch, validate_entry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["miniatures"])


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="Model not found")


@router.get("/health")
def health() -> dict[str, bool]:
    return {"ok": True}


@router.get("/models")
def list_models(db: Session = Depends(get_db)) -> list[dict[str, Any]]:
    return [record.to_payload() for record in store.load_records(db)]


@router.post("/models", status_code=201)
def create_model(
    payload: Any = Body(...),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    try:
        record = validate_entry(payload, default_command=default_manual_command())
    except EntryValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.to_payload()) from exc

    store.add_records(db, [record])
    logger.info("Added miniature %s (%s)", record.id, record.name)
    return record.to_payload()


@router.post("/models/import", status_code=201)
def import_models(
    payload: Any = Body(...),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    try:
        records = validate_batch(payload, default_command=default_manual_command())
    except EntryValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.to_payload()) from exc

    created = store.add_records(db, records)
    logger.info("Imported %d miniatures", created)
    return {"created": created, "models": [record.to_payload() for record in records]}


@router.post("/models/parse-list")
def parse_army_list(form: ListTextForm) -> dict[str, Any]:
    return list_parser.parse_list(form.text).to_payload()


@router.post("/models/import-list", status_code=201)
def import_army_list(
    form: ListTextForm,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    parsed = list_parser.parse_list(form.text)
    if not parsed.entries:
        raise HTTPException(
            status_code=400,
            detail={"error": "No units or characters recognised in the pasted list"},
        )

    faction = (form.faction or "").strip() or parsed.army_name
    try:
        records = validate_batch(
            parsed.entries, faction, default_command=default_parsed_command()
        )
    except EntryValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.to_payload()) from exc

    created = store.add_records(db, records)
    logger.info("Imported %d miniatures from army list %r", created, parsed.army_name)
    return {
        "created": created,
        "parsedArmyName": parsed.army_name,
        "models": [record.to_payload() for record in records],
    }


@router.patch("/models/{model_id}/state")
def update_model_state(
    model_id: str,
    payload: Any = Body(...),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    record = store.get_record(db, model_id)
    if record is None:
        raise _not_found()

    try:
        apply_transition(record, payload)
    except TransitionError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    store.save_record(db, record)
    return record.to_payload()


@router.delete("/models/{model_id}")
def delete_model(model_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    record = store.delete_record(db, model_id)
    if record is None:
        raise _not_found()
    return {"deleted": True, "id": record.id, "name": record.name}
