from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from dndinit.core.engine.commands import (
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
    TargetedCommand,
    ToggleCondition,
    Undo,
)
from dndinit.core.engine.registry import normalize_name
from dndinit.core.engine.state import (
    MAX_DURATION,
    MAX_HP_LIMIT,
    STAT_MAX,
    STAT_MIN,
    CombatantState,
    Condition,
    EncounterState,
)

# в имени нельзя разделитель формата сохранения и переводы строк
_FORBIDDEN_NAME_CHARS = ("|", "\n", "\r")


@dataclass
class ValidationError:
    code: str
    message: str
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ValidationResult:
    ok: bool
    errors: List[ValidationError] = field(default_factory=list)


def _err(code: str, message: str, **meta: Any) -> ValidationResult:
    return ValidationResult(
        ok=False, errors=[ValidationError(code=code, message=message, meta=meta)]
    )


_OK = ValidationResult(ok=True)


def resolve_target_id(state: EncounterState, cmd: Command) -> Optional[int]:
    """combatant_id из команды или текущий selected_id."""
    cid = getattr(cmd, "combatant_id", None)
    return state.selected_id if cid is None else cid


def _target(
    state: EncounterState, cmd: TargetedCommand
) -> tuple[Optional[CombatantState], Optional[ValidationResult]]:
    cid = resolve_target_id(state, cmd)
    if cid is None:
        return None, _err("NO_SELECTION", "No combatant selected")
    c = state.get(cid)
    if c is None:
        return None, _err("UNKNOWN_COMBATANT", "Combatant not found", combatant_id=cid)
    return c, None


def _in_range(value: int, lo: int, hi: int) -> bool:
    return lo <= value <= hi


def validate_command(state: EncounterState, cmd: Command) -> ValidationResult:
    if isinstance(cmd, AddCombatant):
        if state.count >= state.max_combatants:
            return _err("REGISTRY_FULL", "List full!", max=state.max_combatants)
        if any(ch in cmd.name for ch in _FORBIDDEN_NAME_CHARS):
            return _err("INVALID_NAME", "Name contains forbidden characters")
        if not normalize_name(cmd.name):
            return _err("INVALID_NAME", "Name must not be empty")
        if not _in_range(cmd.max_hp, 1, MAX_HP_LIMIT):
            return _err(
                "VALUE_OUT_OF_RANGE", "Max HP out of range", field="max_hp", value=cmd.max_hp
            )
        for name in ("initiative", "dexterity"):
            value = getattr(cmd, name)
            if not _in_range(value, STAT_MIN, STAT_MAX):
                return _err(
                    "VALUE_OUT_OF_RANGE", f"{name} out of range", field=name, value=value
                )
        return _OK

    if isinstance(cmd, (NextTurn, PrevTurn)):
        if state.count == 0:
            return _err("NO_COMBATANTS", "No combatants in the encounter")
        return _OK

    if isinstance(cmd, MoveSelection):
        if state.count == 0:
            return _err("NO_COMBATANTS", "No combatants in the encounter")
        return _OK

    if isinstance(cmd, SelectCombatant):
        if state.get(cmd.combatant_id) is None:
            return _err(
                "UNKNOWN_COMBATANT", "Combatant not found", combatant_id=cmd.combatant_id
            )
        return _OK

    if isinstance(cmd, Undo):
        if not state.undo_stack:
            return _err("NOTHING_TO_UNDO", "Nothing to undo!")
        return _OK

    if not isinstance(cmd, TargetedCommand):
        return _err("UNKNOWN_COMMAND", "Unhandled command", type=getattr(cmd, "type", None))

    c, rej = _target(state, cmd)
    if rej is not None:
        return rej
    assert c is not None

    if isinstance(cmd, RemoveCombatant):
        if not cmd.confirmed:
            return _err(
                "CONFIRMATION_REQUIRED", f"Delete {c.name}? (y/n)", combatant_id=c.id
            )
        return _OK

    if isinstance(cmd, DuplicateCombatant):
        remaining = state.max_combatants - state.count
        if cmd.count < 1:
            return _err(
                "VALUE_OUT_OF_RANGE", "Count must be at least 1", field="count", value=cmd.count
            )
        if cmd.count > remaining:
            return _err(
                "DUPLICATE_OVER_CAPACITY",
                "Not enough room for that many copies",
                requested=cmd.count,
                remaining=remaining,
            )
        return _OK

    if isinstance(cmd, ApplyHpChange):
        if cmd.delta == 0:
            return _err("VALUE_OUT_OF_RANGE", "HP change must be non-zero", field="delta")
        if abs(cmd.delta) > MAX_HP_LIMIT * 10:
            return _err(
                "VALUE_OUT_OF_RANGE", "HP change out of range", field="delta", value=cmd.delta
            )
        return _OK

    if isinstance(cmd, RerollInitiative):
        if cmd.value is not None and not _in_range(cmd.value, STAT_MIN, STAT_MAX):
            return _err(
                "VALUE_OUT_OF_RANGE",
                "Initiative out of range",
                field="value",
                value=cmd.value,
            )
        return _OK

    if isinstance(cmd, ToggleCondition):
        # Unconscious у лежащего игрока принадлежит движку HP / death saves
        if cmd.condition == Condition.UNCONSCIOUS and c.is_player and c.hp <= 0:
            return _err(
                "DERIVED_CONDITION",
                "Unconscious is tracked automatically while a player is at 0 HP",
                combatant_id=c.id,
            )
        return _OK

    if isinstance(cmd, SetConditionDuration):
        if cmd.condition not in c.conditions:
            return _err(
                "CONDITION_NOT_ACTIVE",
                "Enable condition first!",
                combatant_id=c.id,
                condition=cmd.condition.value,
            )
        if not _in_range(cmd.rounds, 0, MAX_DURATION):
            return _err(
                "VALUE_OUT_OF_RANGE", "Duration out of range", field="rounds", value=cmd.rounds
            )
        return _OK

    if isinstance(cmd, (RollDeathSave, Stabilize)):
        if not c.is_player:
            return _err("NOT_A_PLAYER", "Only players make death saves", combatant_id=c.id)
        if not c.is_dying:
            return _err(
                "NOT_DYING",
                "Combatant is not dying",
                combatant_id=c.id,
                hp=c.hp,
                is_stable=c.is_stable,
                is_dead=c.is_dead,
            )
        return _OK

    return _err("UNKNOWN_COMMAND", "Unhandled command", type=getattr(cmd, "type", None))
