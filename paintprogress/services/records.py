from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from ..config import PAINTING_STATES

UNIT = "Unit"
CHARACTER = "Character"
CATEGORIES: tuple[str, ...] = (UNIT, CHARACTER)

STATES: tuple[str, ...] = tuple(PAINTING_STATES)
INITIAL_STATE = STATES[0]
TERMINAL_STATE = STATES[-1]

# attribute name -> key used in JSON payloads
COMMAND_FIELDS: dict[str, str] = {
    "champion": "champion",
    "musician": "musician",
    "banner_bearer": "bannerBearer",
}


def new_record_id() -> str:
    return uuid4().hex


@dataclass(slots=True)
class CommandComposition:
    champion: int = 0
    musician: int = 0
    banner_bearer: int = 0

    def is_empty(self) -> bool:
        return not (self.champion or self.musician or self.banner_bearer)

    def to_payload(self) -> dict[str, int]:
        return {key: getattr(self, attr) for attr, key in COMMAND_FIELDS.items()}


def default_manual_command() -> CommandComposition:
    """Command group assumed for units entered by hand: one of each."""
    return CommandComposition(champion=1, musician=1, banner_bearer=1)


def default_parsed_command() -> CommandComposition:
    """Command group for imported units: only what the list spells out."""
    return CommandComposition()


@dataclass(slots=True)
class DraftEntry:
    """Unvalidated entry produced by the list parser."""

    name: str
    category: str = UNIT
    model_count: int = 1
    details: str = ""
    command: CommandComposition = field(default_factory=default_parsed_command)

    @property
    def is_character(self) -> bool:
        return self.category == CHARACTER

    def add_detail(self, line: str) -> None:
        if not line:
            return
        self.details = f"{self.details}\n{line}" if self.details else line

    def to_payload(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "name": self.name,
            "modelCount": self.model_count,
            "details": self.details,
            "command": self.command.to_payload(),
        }


@dataclass(slots=True)
class StoredRecord:
    id: str
    name: str
    faction: str
    category: str
    model_count: int
    progress_count: int
    details: str
    command: CommandComposition
    state: str
    created_at: datetime
    updated_at: datetime

    @property
    def is_character(self) -> bool:
        return self.category == CHARACTER

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "faction": self.faction,
            "category": self.category,
            "modelCount": self.model_count,
            "progressCount": self.progress_count,
            "details": self.details,
            "command": self.command.to_payload(),
            "state": self.state,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
