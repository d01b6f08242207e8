# backend/src/dndinit/core/engine/commands.py

from typing import Literal, Optional, Union
from pydantic import BaseModel, ConfigDict

from dndinit.core.engine.state import Condition, Faction


class CommandBase(BaseModel):
    model_config = ConfigDict(extra="forbid")
    type: str


class TargetedCommand(CommandBase):
    # None -> текущий выбранный (selected_id)
    combatant_id: Optional[int] = None


class AddCombatant(CommandBase):
    type: Literal["AddCombatant"] = "AddCombatant"
    faction: Faction
    name: str
    initiative: int
    dexterity: int = 0
    max_hp: int


class RemoveCombatant(TargetedCommand):
    type: Literal["RemoveCombatant"] = "RemoveCombatant"
    # подтверждение делает вызывающий слой ("Delete X? (y/n)")
    confirmed: bool = False


class DuplicateCombatant(TargetedCommand):
    type: Literal["DuplicateCombatant"] = "DuplicateCombatant"
    count: int = 1


class ApplyHpChange(TargetedCommand):
    type: Literal["ApplyHpChange"] = "ApplyHpChange"
    delta: int  # <0 урон, >0 лечение
    # крит в упор по лежащему -> два провала
    is_critical: bool = False


class RerollInitiative(TargetedCommand):
    type: Literal["RerollInitiative"] = "RerollInitiative"
    value: Optional[int] = None  # None -> d20 + dexterity


class ToggleCondition(TargetedCommand):
    type: Literal["ToggleCondition"] = "ToggleCondition"
    condition: Condition


class SetConditionDuration(TargetedCommand):
    type: Literal["SetConditionDuration"] = "SetConditionDuration"
    condition: Condition
    rounds: int  # 0 = бессрочно


class NextTurn(CommandBase):
    type: Literal["NextTurn"] = "NextTurn"


class PrevTurn(CommandBase):
    type: Literal["PrevTurn"] = "PrevTurn"


class MoveSelection(CommandBase):
    type: Literal["MoveSelection"] = "MoveSelection"
    direction: Literal[-1, 1] = 1


class SelectCombatant(CommandBase):
    type: Literal["SelectCombatant"] = "SelectCombatant"
    combatant_id: int


class RollDeathSave(TargetedCommand):
    type: Literal["RollDeathSave"] = "RollDeathSave"


class Stabilize(TargetedCommand):
    type: Literal["Stabilize"] = "Stabilize"


class Undo(CommandBase):
    type: Literal["Undo"] = "Undo"


Command = Union[
    AddCombatant,
    RemoveCombatant,
    DuplicateCombatant,
    ApplyHpChange,
    RerollInitiative,
    ToggleCondition,
    SetConditionDuration,
    NextTurn,
    PrevTurn,
    MoveSelection,
    SelectCombatant,
    RollDeathSave,
    Stabilize,
    Undo,
]

# команды, перед которыми движок сам кладёт снапшот в undo-стек
UNDOABLE_COMMANDS = (
    AddCombatant,
    RemoveCombatant,
    DuplicateCombatant,
    ApplyHpChange,
    RerollInitiative,
    ToggleCondition,
    SetConditionDuration,
    NextTurn,
    PrevTurn,
    RollDeathSave,
    Stabilize,
)
