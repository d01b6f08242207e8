from __future__ import annotations

import logging
from typing import Any, List, Mapping, Tuple

from pydantic import TypeAdapter

from dndinit.core.engine import conditions, death_saves, registry, turns
from dndinit.core.engine.commands import (
    UNDOABLE_COMMANDS,
    AddCombatant,
    ApplyHpChange,
    Command,
    DuplicateCombatant,
    MoveSelection,
    NextTurn,
    PrevTurn,
    RemoveCombatant,
    RerollInitiative,
    RollDeathSave,
    SelectCombatant,
    SetConditionDuration,
    Stabilize,
    ToggleCondition,
    Undo,
)
from dndinit.core.engine.events import ev_command_rejected
from dndinit.core.engine.rules.validator import resolve_target_id, validate_command
from dndinit.core.engine.state import EncounterState, bump
from dndinit.core.engine.undo import pop_undo, push_undo

logger = logging.getLogger(__name__)

_COMMAND_ADAPTER: TypeAdapter[Command] = TypeAdapter(Command)


def parse_command(payload: Mapping[str, Any]) -> Command:
    """dict от слоя отображения -> конкретная команда (pydantic ValidationError при мусоре)."""
    return _COMMAND_ADAPTER.validate_python(dict(payload))


def _reject(state: EncounterState, cmd: Command, code: str, message: str, meta: dict) -> dict:
    seq, t = bump(state)
    return ev_command_rejected(
        seq=seq,
        t=t,
        round_=state.round,
        turn_owner_id=state.current_turn_id,
        actor_id=getattr(cmd, "combatant_id", None),
        command=cmd.model_dump(mode="json"),
        code=code,
        message=message,
        meta=meta,
    ).model_dump()


def apply_command(
    state: EncounterState, cmd: Command
) -> Tuple[EncounterState, List[dict]]:
    """
    Возвращаем (state, events_as_dicts).
    При ошибке валидации возвращаем CommandRejected и НЕ меняем state.
    """
    vr = validate_command(state, cmd)
    if not vr.ok:
        e = vr.errors[0]
        logger.debug("command %s rejected: %s (%s)", cmd.type, e.code, e.message)
        return state, [_reject(state, cmd, e.code, e.message, e.meta)]

    if isinstance(cmd, UNDOABLE_COMMANDS):
        push_undo(state)

    target_id = resolve_target_id(state, cmd)

    if isinstance(cmd, AddCombatant):
        _, events = registry.add_combatant(
            state,
            faction=cmd.faction,
            name=cmd.name,
            initiative=cmd.initiative,
            dexterity=cmd.dexterity,
            max_hp=cmd.max_hp,
        )
        return state, events

    if isinstance(cmd, RemoveCombatant):
        assert target_id is not None
        return state, registry.remove_combatant(state, target_id)

    if isinstance(cmd, DuplicateCombatant):
        assert target_id is not None
        return state, registry.duplicate_combatant(state, target_id, cmd.count)

    if isinstance(cmd, ApplyHpChange):
        assert target_id is not None
        return state, death_saves.apply_hp_change(
            state, target_id, cmd.delta, is_critical=cmd.is_critical
        )

    if isinstance(cmd, RerollInitiative):
        assert target_id is not None
        return state, turns.reroll_initiative(state, target_id, cmd.value)

    if isinstance(cmd, ToggleCondition):
        assert target_id is not None
        return state, conditions.toggle_condition(state, target_id, cmd.condition)

    if isinstance(cmd, SetConditionDuration):
        assert target_id is not None
        return state, conditions.set_duration(state, target_id, cmd.condition, cmd.rounds)

    if isinstance(cmd, NextTurn):
        return state, turns.advance_forward(state)

    if isinstance(cmd, PrevTurn):
        return state, turns.advance_backward(state)

    if isinstance(cmd, MoveSelection):
        return state, turns.move_selection(state, cmd.direction)

    if isinstance(cmd, SelectCombatant):
        return state, turns.select(state, cmd.combatant_id)

    if isinstance(cmd, RollDeathSave):
        assert target_id is not None
        return state, death_saves.roll_death_save(state, target_id)

    if isinstance(cmd, Stabilize):
        assert target_id is not None
        return state, death_saves.stabilize(state, target_id)

    if isinstance(cmd, Undo):
        return state, pop_undo(state)

    # На всякий случай (хотя валидатор уже ловит)
    return state, [_reject(state, cmd, "UNKNOWN_COMMAND", "Unhandled command", {})]


def apply_raw(
    state: EncounterState, payload: Mapping[str, Any]
) -> Tuple[EncounterState, List[dict]]:
    return apply_command(state, parse_command(payload))
