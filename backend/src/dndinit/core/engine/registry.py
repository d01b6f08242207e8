from __future__ import annotations

import re
from typing import List, Optional, Tuple

from dndinit.core.engine.action_log import log_action
from dndinit.core.engine.events import (
    ev_combatant_added,
    ev_combatant_removed,
    ev_combatant_renamed,
)
from dndinit.core.engine.state import (
    MAX_ID,
    MAX_NAME_CHARS,
    CombatantState,
    EncounterState,
    Faction,
    bump,
    index_of,
    roll_d20,
)

_SUFFIX_RE = re.compile(r"^(.*?)\s*(\d+)$")


def sort_key(c: CombatantState) -> Tuple[int, int, int]:
    # initiative desc, dexterity desc, id asc
    return (-c.initiative, -c.dexterity, c.id)


def sort_combatants(state: EncounterState) -> None:
    state.combatants.sort(key=sort_key)


def normalize_name(raw: str) -> str:
    return raw.strip()[:MAX_NAME_CHARS].rstrip()


def allocate_id(state: EncounterState) -> int:
    """Следующий свободный id; после MAX_ID начинаем с 1, пропуская занятые."""
    used = {c.id for c in state.combatants}
    cid = state.next_id
    while True:
        if cid > MAX_ID or cid < 1:
            cid = 1
        if cid not in used:
            break
        cid += 1
    state.next_id = cid + 1
    return cid


def _added_event(state: EncounterState, c: CombatantState) -> dict:
    seq, t = bump(state)
    return ev_combatant_added(
        seq=seq,
        t=t,
        round_=state.round,
        turn_owner_id=state.current_turn_id,
        combatant_id=c.id,
        name=c.name,
        faction=c.faction.value,
        initiative=c.initiative,
        max_hp=c.max_hp,
    ).model_dump()


def add_combatant(
    state: EncounterState,
    *,
    faction: Faction,
    name: str,
    initiative: int,
    dexterity: int,
    max_hp: int,
) -> Tuple[Optional[int], List[dict]]:
    if state.count >= state.max_combatants:
        return None, []
    clean = normalize_name(name)
    if not clean:
        return None, []

    was_empty = state.count == 0
    c = CombatantState(
        id=allocate_id(state),
        name=clean,
        initiative=initiative,
        dexterity=dexterity,
        max_hp=max_hp,
        hp=max_hp,
        faction=faction,
    )
    state.combatants.append(c)
    sort_combatants(state)

    state.selected_id = c.id
    if was_empty or state.current_turn_id is None:
        state.current_turn_id = c.id

    log_action(state, f"Added {c.name}: Init {c.initiative}, HP {c.max_hp}.")
    return c.id, [_added_event(state, c)]


def remove_combatant(state: EncounterState, combatant_id: int) -> List[dict]:
    idx = index_of(state, combatant_id)
    if idx == -1:
        return []

    c = state.combatants[idx]
    log_action(state, f"Removed {c.name}.")

    if state.current_turn_id == c.id:
        if state.count > 1:
            state.current_turn_id = state.combatants[(idx + 1) % state.count].id
        else:
            state.current_turn_id = None

    del state.combatants[idx]

    if state.combatants:
        if state.selected_id == c.id or state.get(state.selected_id) is None:
            state.selected_id = state.combatants[min(idx, state.count - 1)].id
    else:
        state.selected_id = None
        state.current_turn_id = None
        state.round = 1
        state.turn_started = False

    seq, t = bump(state)
    return [
        ev_combatant_removed(
            seq=seq,
            t=t,
            round_=state.round,
            turn_owner_id=state.current_turn_id,
            combatant_id=c.id,
            name=c.name,
        ).model_dump()
    ]


def split_numeric_suffix(name: str) -> Tuple[str, Optional[int]]:
    """'Goblin 3' -> ('Goblin', 3); 'Goblin' -> ('Goblin', None)."""
    m = _SUFFIX_RE.match(name)
    if not m or not m.group(1).strip():
        return name.strip(), None
    return m.group(1).strip(), int(m.group(2))


def _numbered_name(base: str, k: int) -> str:
    suffix = f" {k}"
    return base[: MAX_NAME_CHARS - len(suffix)].rstrip() + suffix


def duplicate_combatant(
    state: EncounterState, combatant_id: int, count: int
) -> List[dict]:
    template = state.get(combatant_id)
    if template is None or count < 1:
        return []
    if state.count + count > state.max_combatants:
        return []

    events: List[dict] = []
    base, number = split_numeric_suffix(template.name)

    if number is None:
        old_name = template.name
        template.name = _numbered_name(base, 1)
        seq, t = bump(state)
        events.append(
            ev_combatant_renamed(
                seq=seq,
                t=t,
                round_=state.round,
                turn_owner_id=state.current_turn_id,
                combatant_id=template.id,
                old_name=old_name,
                new_name=template.name,
            ).model_dump()
        )

    used = set()
    for c in state.combatants:
        b, n = split_numeric_suffix(c.name)
        # длинное имя в "<base> k" обрезается, сравниваем с уже обрезанным
        if n is not None and (b == base or c.name == _numbered_name(base, n)):
            used.add(n)

    k = 1
    for _ in range(count):
        while k in used:
            k += 1
        used.add(k)

        copy = CombatantState(
            id=allocate_id(state),
            name=_numbered_name(base, k),
            initiative=roll_d20(state) + template.dexterity,
            dexterity=template.dexterity,
            max_hp=template.max_hp,
            hp=template.max_hp,
            faction=template.faction,
        )
        state.combatants.append(copy)
        log_action(state, f"Added {copy.name}: Init {copy.initiative}, HP {copy.max_hp}.")
        events.append(_added_event(state, copy))

    sort_combatants(state)
    log_action(state, f"Duplicated {template.name}: {count} new.")
    return events
