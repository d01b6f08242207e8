from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import List, Optional

from dndinit.core.engine.action_log import log_action
from dndinit.core.engine.events import ev_undo_applied
from dndinit.core.engine.state import CombatantState, EncounterState, bump


@dataclass
class UndoSnapshot:
    """Полная копия реестра и курсоров (не дифф). next_id не входит."""

    combatants: List[CombatantState] = field(default_factory=list)
    current_turn_id: Optional[int] = None
    selected_id: Optional[int] = None
    round: int = 1
    turn_started: bool = False

    @property
    def count(self) -> int:
        return len(self.combatants)


def take_snapshot(state: EncounterState) -> UndoSnapshot:
    return UndoSnapshot(
        combatants=copy.deepcopy(state.combatants),
        current_turn_id=state.current_turn_id,
        selected_id=state.selected_id,
        round=state.round,
        turn_started=state.turn_started,
    )


def push_undo(state: EncounterState) -> None:
    # переполнение: выкидываем самый старый
    while len(state.undo_stack) >= state.undo_capacity:
        state.undo_stack.pop(0)
    state.undo_stack.append(take_snapshot(state))


def pop_undo(state: EncounterState) -> List[dict]:
    if not state.undo_stack:
        return []

    snap = state.undo_stack.pop()
    state.combatants = copy.deepcopy(snap.combatants)
    state.current_turn_id = snap.current_turn_id
    state.selected_id = snap.selected_id
    state.round = snap.round
    state.turn_started = snap.turn_started

    log_action(state, f"Action UNDONE. Reverted to start of Round {state.round}.")

    seq, t = bump(state)
    return [
        ev_undo_applied(
            seq=seq,
            t=t,
            round_=state.round,
            turn_owner_id=state.current_turn_id,
            remaining=len(state.undo_stack),
        ).model_dump()
    ]


def clear_undo(state: EncounterState) -> None:
    state.undo_stack.clear()
