from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from random import Random
from typing import TYPE_CHECKING, Dict, List, Optional, Set, Tuple

from dndinit.core.engine.action_log import ActionLog

if TYPE_CHECKING:
    from dndinit.config import TrackerConfig
    from dndinit.core.engine.undo import UndoSnapshot

MAX_COMBATANTS = 50
NAME_LENGTH = 32  # с учётом терминатора в старом формате: в имени максимум 31 символ
MAX_NAME_CHARS = NAME_LENGTH - 1
UNDO_CAPACITY = 10
MAX_ID = 2**31 - 1

# допустимые диапазоны для ввода фасилитатора
MAX_HP_LIMIT = 9999
STAT_MIN, STAT_MAX = -99, 99
MAX_DURATION = 999
DEATH_SAVE_LIMIT = 3


class Faction(str, Enum):
    PLAYER = "player"
    ENEMY = "enemy"


class Condition(str, Enum):
    # порядок важен: индекс = номер бита в сохранении
    BLINDED = "blinded"
    CHARMED = "charmed"
    DEAFENED = "deafened"
    FRIGHTENED = "frightened"
    GRAPPLED = "grappled"
    INCAPACITATED = "incapacitated"
    POISONED = "poisoned"
    PRONE = "prone"
    RESTRAINED = "restrained"
    STUNNED = "stunned"
    INVISIBLE = "invisible"
    PARALYZED = "paralyzed"
    PETRIFIED = "petrified"
    UNCONSCIOUS = "unconscious"
    EXHAUSTION = "exhaustion"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def bit(self) -> int:
        return 1 << CONDITION_ORDER.index(self)


CONDITION_ORDER: List[Condition] = list(Condition)


def _zero_durations() -> Dict[Condition, int]:
    return {c: 0 for c in CONDITION_ORDER}


@dataclass
class CombatantState:
    id: int
    name: str
    initiative: int
    dexterity: int
    max_hp: int
    hp: int
    faction: Faction = Faction.ENEMY

    conditions: Set[Condition] = field(default_factory=set)
    # 0 = бессрочно, пока состояние висит
    condition_duration: Dict[Condition, int] = field(default_factory=_zero_durations)

    # death saves (только для игроков на 0 hp)
    death_save_successes: int = 0
    death_save_failures: int = 0
    is_stable: bool = False
    is_dead: bool = False

    @property
    def is_player(self) -> bool:
        return self.faction == Faction.PLAYER

    @property
    def is_dying(self) -> bool:
        return (
            self.is_player and self.hp <= 0 and not self.is_stable and not self.is_dead
        )

    def clear_death_saves(self) -> None:
        self.death_save_successes = 0
        self.death_save_failures = 0

    def conditions_mask(self) -> int:
        mask = 0
        for c in self.conditions:
            mask |= c.bit
        return mask


@dataclass
class EncounterState:
    round: int = 1
    current_turn_id: Optional[int] = None
    selected_id: Optional[int] = None
    next_id: int = 1
    # False до первого advance: ход уже назначен, но ещё не начался
    turn_started: bool = False

    # порядок хранения == порядок ходов (см. registry.sort_combatants)
    combatants: List[CombatantState] = field(default_factory=list)

    max_combatants: int = MAX_COMBATANTS
    undo_capacity: int = UNDO_CAPACITY
    undo_stack: List["UndoSnapshot"] = field(default_factory=list)

    log: ActionLog = field(default_factory=ActionLog)

    seq: int = 0
    t: int = 0

    rng_seed: int = 0
    rng: Random = field(default_factory=Random)

    @classmethod
    def from_config(cls, config: "TrackerConfig") -> "EncounterState":
        return cls(
            max_combatants=config.max_combatants,
            undo_capacity=config.undo_capacity,
            log=ActionLog(
                initial_capacity=config.log_initial_capacity,
                max_capacity=config.log_max_capacity,
            ),
        )

    def with_seed(self, seed: int) -> "EncounterState":
        self.rng_seed = seed
        self.rng = Random(seed)
        return self

    @property
    def count(self) -> int:
        return len(self.combatants)

    def get(self, combatant_id: Optional[int]) -> Optional[CombatantState]:
        if combatant_id is None:
            return None
        for c in self.combatants:
            if c.id == combatant_id:
                return c
        return None


def index_of(state: EncounterState, combatant_id: Optional[int]) -> int:
    """Линейный поиск по id; -1 если не нашли."""
    if combatant_id is None:
        return -1
    for i, c in enumerate(state.combatants):
        if c.id == combatant_id:
            return i
    return -1


def bump(state: EncounterState) -> Tuple[int, int]:
    state.seq += 1
    state.t += 1
    return state.seq, state.t


def roll_d20(state: EncounterState) -> int:
    return state.rng.randint(1, 20)
