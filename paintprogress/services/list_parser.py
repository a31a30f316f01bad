"""Parser for army lists pasted from list-building tools.

The export format looks like::

    Empire of Man [2000 pts]
    ++ Characters [100 pts] ++
    Magic Lord [100 pts]
    - General
    ++ Core [200 pts] ++
    5 Spearmen [80 pts]
    - Musician
    - Champion

Lines are classified one at a time against an ordered table of patterns.
Anything that matches none of them is skipped, so a partially mangled paste
still yields whatever entries can be recognised.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable

from .records import CHARACTER, UNIT, CommandComposition, DraftEntry

logger = logging.getLogger(__name__)

_POINTS = r"\[\s*\d+\s*(?:pts?|points)\s*\]"

SECTION_RE = re.compile(rf"^\+\+\s*(?P<section>.*?)\s*(?:{_POINTS})?\s*\+\+$", re.IGNORECASE)
DIVIDER_RE = re.compile(r"^(?:={3}|-{3}|--(?:\s|$))")
ARMY_NAME_RE = re.compile(rf"^(?![\[-])(?!\d+\s)(?P<name>.+?)\s*{_POINTS}$", re.IGNORECASE)
COUNTED_ENTRY_RE = re.compile(rf"^(?P<count>\d+)\s+(?P<name>.+?)\s*{_POINTS}$", re.IGNORECASE)
ENTRY_RE = re.compile(rf"^(?![\[-])(?P<name>.+?)\s*{_POINTS}$", re.IGNORECASE)
DETAIL_RE = re.compile(r"^-\s*(?P<text>.*)$")

CHARACTER_SECTION_RE = re.compile(r"character", re.IGNORECASE)

# Upgrade keywords found on a unit's detail lines and the command slot they fill.
UPGRADE_KEYWORDS: dict[re.Pattern[str], str] = {
    re.compile(r"\bmusician\b", re.IGNORECASE): "musician",
    re.compile(r"\b(?:battle\s+)?standard\s+bearer\b", re.IGNORECASE): "banner_bearer",
    re.compile(r"\bbanner(?:\s+bearer)?\b", re.IGNORECASE): "banner_bearer",
    re.compile(r"\b(?:champion|preceptor|sergeant)\b", re.IGNORECASE): "champion",
}


@dataclass
class ParsedList:
    army_name: str = ""
    entries: list[DraftEntry] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "parsedArmyName": self.army_name,
            "entries": [entry.to_payload() for entry in self.entries],
        }


@dataclass
class _ParseState:
    result: ParsedList = field(default_factory=ParsedList)
    category: str = UNIT
    current: DraftEntry | None = None
    seen_section: bool = False

    def accepts_army_name(self) -> bool:
        return (
            not self.result.army_name
            and not self.seen_section
            and self.current is None
            and not self.result.entries
        )

    def flush(self) -> None:
        entry = self.current
        if entry is None:
            return
        if entry.is_character:
            entry.command = CommandComposition()
        self.result.entries.append(entry)
        self.current = None

    def start(self, name: str, model_count: int) -> None:
        self.flush()
        self.current = DraftEntry(
            name=name.strip(),
            category=self.category,
            model_count=max(model_count, 1),
        )


def _apply_upgrades(entry: DraftEntry, text: str) -> None:
    for pattern, attr in UPGRADE_KEYWORDS.items():
        if pattern.search(text):
            setattr(entry.command, attr, 1)


def _on_section(state: _ParseState, match: re.Match[str]) -> bool:
    state.flush()
    state.seen_section = True
    section = match.group("section") or ""
    state.category = CHARACTER if CHARACTER_SECTION_RE.search(section) else UNIT
    return True


def _on_divider(state: _ParseState, match: re.Match[str]) -> bool:
    state.flush()
    return True


def _on_army_name(state: _ParseState, match: re.Match[str]) -> bool:
    if not state.accepts_army_name():
        return False
    state.result.army_name = match.group("name").strip()
    return True


def _on_counted_entry(state: _ParseState, match: re.Match[str]) -> bool:
    state.start(match.group("name"), int(match.group("count")))
    return True


def _on_entry(state: _ParseState, match: re.Match[str]) -> bool:
    state.start(match.group("name"), 1)
    return True


def _on_detail(state: _ParseState, match: re.Match[str]) -> bool:
    entry = state.current
    if entry is None:
        return False
    text = match.group("text").strip()
    entry.add_detail(text)
    if not entry.is_character:
        _apply_upgrades(entry, text)
    return True


_LineHandler = Callable[[_ParseState, re.Match[str]], bool]

# Order matters: section and divider lines must win over the entry patterns,
# and the army name is only taken before the first section or entry.
_MATCHERS: tuple[tuple[re.Pattern[str], _LineHandler], ...] = (
    (SECTION_RE, _on_section),
    (DIVIDER_RE, _on_divider),
    (ARMY_NAME_RE, _on_army_name),
    (COUNTED_ENTRY_RE, _on_counted_entry),
    (ENTRY_RE, _on_entry),
    (DETAIL_RE, _on_detail),
)


def _classify(state: _ParseState, line: str) -> bool:
    for pattern, handler in _MATCHERS:
        match = pattern.match(line)
        if match and handler(state, match):
            return True
    return False


def parse_list(raw_text: str | None) -> ParsedList:
    """Turn a pasted army list into draft entries. Never raises."""

    state = _ParseState()
    skipped = 0
    text = raw_text if isinstance(raw_text, str) else ""
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        if not _classify(state, line):
            skipped += 1
    state.flush()

    if skipped:
        logger.debug("Skipped %d unrecognised lines while parsing army list", skipped)
    return state.result
