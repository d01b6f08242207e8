from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class EncounterSave(Base):
    __tablename__ = "encounter_saves"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    label: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # тот же pipe-формат, что и в файле сохранения
    snapshot_text: Mapped[str] = mapped_column(Text, nullable=False)

    # для списка сохранений, чтобы не разбирать snapshot_text
    round: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    combatant_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
