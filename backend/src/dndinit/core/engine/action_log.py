from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, List, Optional

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from dndinit.core.engine.state import EncounterState

logger = logging.getLogger(__name__)

MESSAGE_LENGTH = 128  # с терминатором, как в исходном формате лога
EXPORT_RULE = "=" * 48
EXPORT_FOOTER = "--- END OF LOG ---"


class LogEntry(BaseModel):
    round: int
    turn_id: Optional[int] = None
    timestamp: datetime = Field(default_factory=datetime.now)
    message: str


class ActionLog:
    """
    Append-only журнал боя.

    Буфер удваивается при переполнении; если расти дальше нельзя
    (max_capacity или MemoryError), запись теряется, команда
    при этом не падает.
    """

    def __init__(
        self, initial_capacity: int = 10, max_capacity: Optional[int] = None
    ) -> None:
        self.capacity = initial_capacity
        self.max_capacity = max_capacity
        self.dropped = 0
        self._entries: List[LogEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    @property
    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    def _grow(self) -> bool:
        new_capacity = self.capacity * 2
        if self.max_capacity is not None and new_capacity > self.max_capacity:
            return False
        self.capacity = new_capacity
        return True

    def append(self, entry: LogEntry) -> bool:
        if len(self._entries) >= self.capacity and not self._grow():
            self.dropped += 1
            logger.debug("action log is full, dropped: %s", entry.message)
            return False
        try:
            self._entries.append(entry)
        except MemoryError:
            self.dropped += 1
            logger.debug("action log growth failed, dropped: %s", entry.message)
            return False
        return True

    def clear(self) -> None:
        self._entries.clear()


def log_action(state: "EncounterState", message: str) -> None:
    entry = LogEntry(
        round=state.round,
        turn_id=state.current_turn_id,
        message=message[: MESSAGE_LENGTH - 1],
    )
    state.log.append(entry)


def export_log(state: "EncounterState") -> List[LogEntry]:
    """Отдать все записи в порядке поступления и очистить журнал."""
    entries = state.log.entries
    state.log.clear()
    return entries


def render_export(entries: Iterable[LogEntry], now: Optional[datetime] = None) -> List[str]:
    now = now or datetime.now()
    lines = [
        EXPORT_RULE,
        f"COMBAT LOG EXPORT: {now.strftime('%Y-%m-%d %H:%M:%S')}",
        EXPORT_RULE,
    ]
    lines.extend(f"[R{e.round}] {e.message}" for e in entries)
    lines.append(EXPORT_FOOTER)
    lines.append("")
    return lines
