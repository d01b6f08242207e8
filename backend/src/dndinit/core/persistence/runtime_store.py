from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from dndinit.config import TrackerConfig
from dndinit.core.engine.action_log import LogEntry, export_log, render_export
from dndinit.core.engine.state import EncounterState
from dndinit.core.persistence.state_codec import (
    DecodedEncounter,
    PersistenceError,
    decode_lines,
    encode_state,
    load_into,
)
from dndinit.db.models import EncounterSave

logger = logging.getLogger(__name__)


# ---------- файловое хранилище (одна встреча на файл) ----------


class FileLineStore:
    """Построчное чтение/запись текстового файла."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def read_lines(self) -> List[str]:
        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            raise PersistenceError("SAVE_NOT_FOUND", "No save file found.")
        except OSError as exc:
            raise PersistenceError("IO_ERROR", f"Load failed: {exc}")
        try:
            return data.decode("utf-8").splitlines()
        except UnicodeDecodeError as exc:
            # старый трекер писал имена сырыми байтами
            logger.warning("%s is not valid UTF-8 (%s), bad bytes replaced", self.path, exc)
            return data.decode("utf-8", errors="replace").splitlines()

    def write_lines(self, lines: List[str]) -> None:
        try:
            with self.path.open("w", encoding="utf-8") as f:
                f.writelines(line + "\n" for line in lines)
        except OSError as exc:
            raise PersistenceError("IO_ERROR", f"Save failed: {exc}")

    def append_lines(self, lines: List[str]) -> None:
        try:
            with self.path.open("a", encoding="utf-8") as f:
                f.writelines(line + "\n" for line in lines)
        except OSError as exc:
            raise PersistenceError("IO_ERROR", f"Log export failed: {exc}")


def save_file_store(config: TrackerConfig) -> FileLineStore:
    return FileLineStore(config.save_path)


def log_export_store(config: TrackerConfig) -> FileLineStore:
    return FileLineStore(config.log_export_path)


def _require_confirmation(state: EncounterState, confirmed: bool) -> None:
    if state.count > 0 and not confirmed:
        raise PersistenceError(
            "CONFIRMATION_REQUIRED",
            "Loading will wipe current state. Are you sure? (y/n)",
        )


def save_encounter(state: EncounterState, store: FileLineStore) -> int:
    lines = encode_state(state)
    store.write_lines(lines)
    logger.info("saved %d combatants to %s", state.count, store.path)
    return state.count


def load_encounter(
    state: EncounterState, store: FileLineStore, *, confirmed: bool = False
) -> DecodedEncounter:
    """
    Живое состояние меняется только после полного разбора файла.
    Возвращаем DecodedEncounter, в warnings пропущенные строки.
    """
    _require_confirmation(state, confirmed)
    decoded = decode_lines(store.read_lines(), max_combatants=state.max_combatants)
    load_into(state, decoded)
    logger.info(
        "loaded %d combatants from %s (%d warnings)",
        len(decoded.combatants),
        store.path,
        len(decoded.warnings),
    )
    return decoded


def export_log_to(
    state: EncounterState, store: FileLineStore, now: Optional[datetime] = None
) -> List[LogEntry]:
    """Дописать журнал в файл; очищаем его только если запись удалась."""
    if len(state.log) == 0:
        return []
    lines = render_export(state.log.entries, now)
    store.append_lines(lines)
    entries = export_log(state)
    logger.info("exported %d log entries to %s", len(entries), store.path)
    return entries


# ---------- слоты сохранений в БД ----------


def save_snapshot(db: Session, *, label: Optional[str], state: EncounterState) -> EncounterSave:
    row = EncounterSave(
        label=label,
        snapshot_text="\n".join(encode_state(state)),
        round=state.round,
        combatant_count=state.count,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("saved snapshot %s (%r)", row.id, label)
    return row


def list_saves(db: Session) -> List[EncounterSave]:
    return list(db.scalars(select(EncounterSave).order_by(EncounterSave.id.desc())))


def load_snapshot(db: Session, save_id: int) -> DecodedEncounter:
    row = db.get(EncounterSave, save_id)
    if row is None:
        raise PersistenceError("SAVE_NOT_FOUND", f"Save {save_id} not found")
    return decode_lines(row.snapshot_text.splitlines())


def load_latest_snapshot(db: Session) -> Tuple[Optional[int], Optional[DecodedEncounter]]:
    row = db.scalars(select(EncounterSave).order_by(EncounterSave.id.desc()).limit(1)).first()
    if row is None:
        return None, None
    return row.id, decode_lines(row.snapshot_text.splitlines())


def restore_snapshot(
    db: Session,
    state: EncounterState,
    *,
    save_id: Optional[int] = None,
    confirmed: bool = False,
) -> DecodedEncounter:
    _require_confirmation(state, confirmed)
    if save_id is None:
        found_id, decoded = load_latest_snapshot(db)
        if found_id is None or decoded is None:
            raise PersistenceError("SAVE_NOT_FOUND", "No saved snapshots")
    else:
        decoded = load_snapshot(db, save_id)
    load_into(state, decoded)
    return decoded
