from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


NAME_MAX_LENGTH = 120
FACTION_MAX_LENGTH = 120
DETAILS_MAX_LENGTH = 4000


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class Miniature(TimestampMixin, Base):
    """One stored unit or character and its painting progress.

    SQLite does not enforce the column types, so rows are passed through
    ``validation.repair_record`` on every load instead of being trusted.
    """

    __tablename__ = "miniatures"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False)
    faction: Mapped[str] = mapped_column(String(FACTION_MAX_LENGTH), nullable=False, default="")
    category: Mapped[str] = mapped_column(String(20), nullable=False, default="Unit")
    model_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    progress_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    details: Mapped[str] = mapped_column(Text, nullable=False, default="")
    command_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    state: Mapped[str] = mapped_column(String(40), nullable=False)
