from __future__ import annotations

from typing import List

from dndinit.core.engine.action_log import log_action
from dndinit.core.engine.events import (
    ev_condition_applied,
    ev_condition_duration_set,
    ev_condition_removed,
)
from dndinit.core.engine.state import (
    CONDITION_ORDER,
    CombatantState,
    Condition,
    EncounterState,
    bump,
)


def set_condition(
    state: EncounterState, c: CombatantState, condition: Condition, *, reason: str
) -> List[dict]:
    if condition in c.conditions:
        return []
    c.conditions.add(condition)
    seq, t = bump(state)
    return [
        ev_condition_applied(
            seq=seq,
            t=t,
            round_=state.round,
            turn_owner_id=state.current_turn_id,
            target_id=c.id,
            condition=condition.value,
            reason=reason,
        ).model_dump()
    ]


def clear_condition(
    state: EncounterState, c: CombatantState, condition: Condition, *, reason: str
) -> List[dict]:
    if condition not in c.conditions:
        return []
    c.conditions.discard(condition)
    c.condition_duration[condition] = 0
    seq, t = bump(state)
    return [
        ev_condition_removed(
            seq=seq,
            t=t,
            round_=state.round,
            turn_owner_id=state.current_turn_id,
            target_id=c.id,
            condition=condition.value,
            reason=reason,
        ).model_dump()
    ]


def toggle_condition(
    state: EncounterState, combatant_id: int, condition: Condition
) -> List[dict]:
    c = state.get(combatant_id)
    if c is None:
        return []

    if condition in c.conditions:
        events = clear_condition(state, c, condition, reason="toggle")
        log_action(state, f"{c.name}: {condition.label} removed.")
    else:
        events = set_condition(state, c, condition, reason="toggle")
        log_action(state, f"{c.name}: {condition.label} applied.")
    return events


def set_duration(
    state: EncounterState, combatant_id: int, condition: Condition, rounds: int
) -> List[dict]:
    c = state.get(combatant_id)
    if c is None or condition not in c.conditions or rounds < 0:
        return []

    c.condition_duration[condition] = rounds
    log_action(state, f"{c.name}: {condition.label} duration set to {rounds}.")

    seq, t = bump(state)
    return [
        ev_condition_duration_set(
            seq=seq,
            t=t,
            round_=state.round,
            turn_owner_id=state.current_turn_id,
            target_id=c.id,
            condition=condition.value,
            rounds=rounds,
        ).model_dump()
    ]


def decay_all(state: EncounterState) -> List[dict]:
    """Раз в раунд (только при переходе вперёд через начало списка)."""
    events: List[dict] = []
    for c in state.combatants:
        for cond in CONDITION_ORDER:
            left = c.condition_duration.get(cond, 0)
            if left <= 0:
                continue
            left -= 1
            c.condition_duration[cond] = left
            if left == 0 and cond in c.conditions:
                events.extend(clear_condition(state, c, cond, reason="expired"))
                log_action(state, f"{c.name}: {cond.label} duration ended.")
    return events
