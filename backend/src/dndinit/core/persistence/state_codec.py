from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from dndinit.core.engine.action_log import log_action
from dndinit.core.engine.registry import normalize_name, sort_combatants, sort_key
from dndinit.core.engine.state import (
    CONDITION_ORDER,
    DEATH_SAVE_LIMIT,
    MAX_ID,
    CombatantState,
    EncounterState,
    Faction,
)
from dndinit.core.engine.undo import clear_undo

logger = logging.getLogger(__name__)

SEP = "|"
NUM_CONDITIONS = len(CONDITION_ORDER)
CONDITION_MASK = (1 << NUM_CONDITIONS) - 1

# id|name|type|initiative|dex|max_hp|hp|conditions
IDENTITY_FIELDS = 8
# + successes|failures|is_stable|is_dead
DEATH_SAVE_FIELDS = 4
LEGACY_FIELDS = IDENTITY_FIELDS + NUM_CONDITIONS

_FACTION_CODES = {Faction.PLAYER: 0, Faction.ENEMY: 1}
_FACTION_BY_CODE = {v: k for k, v in _FACTION_CODES.items()}


class PersistenceError(Exception):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass
class DecodedEncounter:
    round: int = 1
    next_id: int = 1
    current_turn_id: Optional[int] = None
    selected_id: Optional[int] = None
    turn_started: bool = False
    combatants: List[CombatantState] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _id_or_none(v: int) -> Optional[int]:
    return v if v > 0 else None


# ---------- encode ----------


def encode_combatant(c: CombatantState) -> str:
    fields = [
        c.id,
        c.name,
        _FACTION_CODES[c.faction],
        c.initiative,
        c.dexterity,
        c.max_hp,
        c.hp,
        c.conditions_mask(),
        c.death_save_successes,
        c.death_save_failures,
        int(c.is_stable),
        int(c.is_dead),
    ]
    fields.extend(c.condition_duration.get(cond, 0) for cond in CONDITION_ORDER)
    return SEP.join(str(f) for f in fields)


def encode_state(state: EncounterState) -> List[str]:
    """
    Header + одна строка на бойца, в порядке реестра.
    Шестое поле header (turn_started) необязательное: старые файлы его не пишут.
    """
    header = SEP.join(
        str(v)
        for v in (
            state.round,
            state.next_id,
            state.count,
            state.current_turn_id if state.current_turn_id is not None else -1,
            state.selected_id if state.selected_id is not None else -1,
            int(state.turn_started),
        )
    )
    return [header] + [encode_combatant(c) for c in state.combatants]


# ---------- decode ----------


def _parse_header(line: str) -> tuple[int, int, int, int, int, Optional[bool]]:
    parts = line.strip().split(SEP)
    if len(parts) < 5:
        raise PersistenceError("MALFORMED_HEADER", "Save header is malformed")
    try:
        round_, next_id, count, current, selected = (int(p) for p in parts[:5])
        started = bool(int(parts[5])) if len(parts) > 5 else None
    except ValueError:
        raise PersistenceError("MALFORMED_HEADER", "Save header is malformed")
    return round_, next_id, count, current, selected, started


def _int_or_zero(parts: List[str], i: int) -> int:
    if i >= len(parts):
        return 0
    try:
        return int(parts[i])
    except ValueError:
        return 0


def decode_combatant(line: str) -> CombatantState:
    """ValueError если не хватает обязательных полей или они не числа."""
    parts = line.rstrip("\r\n").split(SEP)
    if len(parts) < IDENTITY_FIELDS:
        raise ValueError(f"expected at least {IDENTITY_FIELDS} fields, got {len(parts)}")

    cid = int(parts[0])
    name = normalize_name(parts[1])
    type_code = int(parts[2])
    initiative = int(parts[3])
    dexterity = int(parts[4])
    max_hp = int(parts[5])
    hp = int(parts[6])
    mask = int(parts[7])

    if cid < 1 or cid > MAX_ID:
        raise ValueError(f"bad id {cid}")
    if not name:
        raise ValueError("empty name")
    if type_code not in _FACTION_BY_CODE:
        raise ValueError(f"bad combatant type {type_code}")
    if max_hp < 1:
        raise ValueError(f"bad max hp {max_hp}")

    # старые сохранения: после 8 полей сразу длительности, без death saves
    legacy = len(parts) < IDENTITY_FIELDS + DEATH_SAVE_FIELDS or len(parts) == LEGACY_FIELDS
    if legacy:
        successes = failures = stable = dead = 0
        dur_start = IDENTITY_FIELDS
    else:
        successes = _int_or_zero(parts, 8)
        failures = _int_or_zero(parts, 9)
        stable = _int_or_zero(parts, 10)
        dead = _int_or_zero(parts, 11)
        dur_start = IDENTITY_FIELDS + DEATH_SAVE_FIELDS

    conditions = {
        cond for i, cond in enumerate(CONDITION_ORDER) if (mask & CONDITION_MASK) & (1 << i)
    }
    durations = {
        cond: max(0, _int_or_zero(parts, dur_start + i))
        for i, cond in enumerate(CONDITION_ORDER)
    }

    return CombatantState(
        id=cid,
        name=name,
        initiative=initiative,
        dexterity=dexterity,
        max_hp=max_hp,
        hp=max(0, min(hp, max_hp)),
        faction=_FACTION_BY_CODE[type_code],
        conditions=conditions,
        condition_duration=durations,
        death_save_successes=max(0, min(successes, DEATH_SAVE_LIMIT)),
        death_save_failures=max(0, min(failures, DEATH_SAVE_LIMIT)),
        is_stable=bool(stable),
        is_dead=bool(dead),
    )


def decode_lines(
    lines: Iterable[str], *, max_combatants: int = 50
) -> DecodedEncounter:
    """
    Разбираем сохранение целиком, не трогая живое состояние.
    Битые строки бойцов пропускаем с предупреждением; на битом header поднимаем PersistenceError.
    """
    it = iter(lines)
    header = None
    for raw in it:
        if raw.strip():
            header = raw
            break
    if header is None:
        raise PersistenceError("EMPTY_SAVE", "Save file is empty")

    round_, _next_id, count, current, selected, started = _parse_header(header)
    out = DecodedEncounter(round=max(1, round_))

    seen: set[int] = set()
    for lineno, raw in enumerate(it, start=2):
        if not raw.strip():
            continue
        if len(out.combatants) >= max_combatants:
            out.warnings.append(f"line {lineno}: combatant limit reached, rest ignored")
            break
        try:
            c = decode_combatant(raw)
        except ValueError as exc:
            out.warnings.append(f"line {lineno}: skipped invalid combatant ({exc})")
            continue
        if c.id in seen:
            out.warnings.append(f"line {lineno}: skipped duplicate id {c.id}")
            continue
        seen.add(c.id)
        out.combatants.append(c)

    if count != len(out.combatants):
        out.warnings.append(
            f"header count {count} does not match {len(out.combatants)} loaded combatants"
        )

    for w in out.warnings:
        logger.warning("load: %s", w)

    # next_id из файла не доверяем
    out.next_id = max(seen) + 1 if seen else 1
    if out.next_id > MAX_ID:
        out.next_id = 1

    out.combatants.sort(key=sort_key)
    first = out.combatants[0].id if out.combatants else None
    out.current_turn_id = _id_or_none(current) if _id_or_none(current) in seen else first
    out.selected_id = _id_or_none(selected) if _id_or_none(selected) in seen else first
    # без флага в файле (старый формат) считаем, что ход уже идёт
    out.turn_started = out.current_turn_id is not None and started is not False
    if not out.combatants:
        out.round = 1
    return out


def load_into(state: EncounterState, decoded: DecodedEncounter) -> None:
    """Полностью заменить реестр, очистить undo и журнал."""
    state.combatants = list(decoded.combatants)
    sort_combatants(state)
    state.round = decoded.round
    state.next_id = decoded.next_id
    state.current_turn_id = decoded.current_turn_id
    state.selected_id = decoded.selected_id
    state.turn_started = decoded.turn_started

    clear_undo(state)
    state.log.clear()
    log_action(state, f"Game Loaded from save file. Round set to {state.round}.")
