import json
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DATA_DIR = Path("data")
DATA_DIR.mkdir(exist_ok=True)

DB_URL = os.getenv("DB_URL", "sqlite:///./data/paintprogress.db")
DEBUG = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", "")

DEFAULT_STATES = ["Unbuilt", "Build", "Sprayed", "Undercoated", "Painted"]


def _load_json_list(env_key: str, default: list) -> list:
    raw_value = os.getenv(env_key)
    if not raw_value:
        return default
    try:
        parsed = json.loads(raw_value)
    except json.JSONDecodeError:
        return default
    return parsed if isinstance(parsed, list) else default


def _load_states() -> list[str]:
    values = _load_json_list("PAINTING_STATES", DEFAULT_STATES)
    states: list[str] = []
    for value in values:
        if not isinstance(value, str):
            continue
        text = value.strip()
        if text and text not in states:
            states.append(text)
    return states or list(DEFAULT_STATES)


PAINTING_STATES = _load_states()
IMPORT_MAX_ENTRIES = int(os.getenv("IMPORT_MAX_ENTRIES", "1000"))
