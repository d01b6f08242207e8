from __future__ import annotations

from typing import List, Optional

from dndinit.core.engine.action_log import log_action
from dndinit.core.engine.conditions import decay_all
from dndinit.core.engine.death_saves import roll_death_save
from dndinit.core.engine.events import (
    ev_initiative_rerolled,
    ev_order_changed,
    ev_round_reverted,
    ev_round_started,
    ev_selection_changed,
    ev_turn_started,
)
from dndinit.core.engine.registry import sort_combatants
from dndinit.core.engine.state import EncounterState, bump, index_of, roll_d20


def _turn_started(state: EncounterState, direction: str) -> dict:
    assert state.current_turn_id is not None
    seq, t = bump(state)
    return ev_turn_started(
        seq=seq,
        t=t,
        round_=state.round,
        turn_owner_id=state.current_turn_id,
        direction=direction,  # type: ignore[arg-type]
    ).model_dump()


def advance_forward(state: EncounterState) -> List[dict]:
    if not state.combatants:
        return []

    events: List[dict] = []
    idx = index_of(state, state.current_turn_id)
    if idx == -1:
        idx = 0
    elif state.turn_started:
        idx += 1
    state.turn_started = True

    if idx >= state.count:
        idx = 0
        state.round += 1
        state.current_turn_id = state.combatants[0].id
        # сначала истекают длительности, потом маркер раунда
        events.extend(decay_all(state))
        log_action(state, f"--- START OF ROUND {state.round} ---")
        seq, t = bump(state)
        events.append(
            ev_round_started(
                seq=seq, t=t, round_=state.round, turn_owner_id=state.current_turn_id
            ).model_dump()
        )

    c = state.combatants[idx]
    state.current_turn_id = c.id
    state.selected_id = c.id
    log_action(state, f"{c.name}'s turn.")
    events.append(_turn_started(state, "forward"))

    # лежащий игрок бросает спасбросок от смерти в начале своего хода
    if c.is_dying:
        events.extend(roll_death_save(state, c.id, automatic=True))
    return events


def advance_backward(state: EncounterState) -> List[dict]:
    if not state.combatants:
        return []

    events: List[dict] = []
    idx = index_of(state, state.current_turn_id)
    if idx == -1:
        idx = 0
    else:
        idx -= 1
    state.turn_started = True

    if idx < 0:
        idx = state.count - 1
        if state.round > 1:
            state.round -= 1
            log_action(state, f"--- END OF ROUND {state.round} (Revert) ---")
            seq, t = bump(state)
            events.append(
                ev_round_reverted(
                    seq=seq,
                    t=t,
                    round_=state.round,
                    turn_owner_id=state.current_turn_id,
                ).model_dump()
            )

    c = state.combatants[idx]
    state.current_turn_id = c.id
    state.selected_id = c.id
    log_action(state, f"Turn reverted to {c.name}.")
    events.append(_turn_started(state, "backward"))
    return events


def reroll_initiative(
    state: EncounterState, combatant_id: int, value: Optional[int] = None
) -> List[dict]:
    c = state.get(combatant_id)
    if c is None:
        return []

    rolled = value is None
    new_value = roll_d20(state) + c.dexterity if value is None else value
    old_value = c.initiative
    c.initiative = new_value
    sort_combatants(state)
    log_action(
        state, f"{c.name} rerolled initiative from {old_value} to {new_value}."
    )

    seq, t = bump(state)
    events = [
        ev_initiative_rerolled(
            seq=seq,
            t=t,
            round_=state.round,
            turn_owner_id=state.current_turn_id,
            combatant_id=c.id,
            old_initiative=old_value,
            new_initiative=new_value,
            rolled=rolled,
        ).model_dump()
    ]
    seq, t = bump(state)
    events.append(
        ev_order_changed(
            seq=seq,
            t=t,
            round_=state.round,
            turn_owner_id=state.current_turn_id,
            order=[x.id for x in state.combatants],
        ).model_dump()
    )

    # раунд 1 (сюрприз/поздние добавления): ход у того, кто теперь первый
    if state.round == 1 and state.current_turn_id != state.combatants[0].id:
        state.current_turn_id = state.combatants[0].id
        events.append(_turn_started(state, "reset"))
    return events


def _selection_event(state: EncounterState) -> dict:
    seq, t = bump(state)
    return ev_selection_changed(
        seq=seq,
        t=t,
        round_=state.round,
        turn_owner_id=state.current_turn_id,
        selected_id=state.selected_id,
    ).model_dump()


def move_selection(state: EncounterState, direction: int) -> List[dict]:
    if not state.combatants:
        return []

    idx = index_of(state, state.selected_id)
    if idx == -1:
        state.selected_id = state.combatants[0].id
    else:
        idx = (idx + direction) % state.count
        state.selected_id = state.combatants[idx].id
    return [_selection_event(state)]


def select(state: EncounterState, combatant_id: int) -> List[dict]:
    if state.get(combatant_id) is None:
        return []
    state.selected_id = combatant_id
    return [_selection_event(state)]
