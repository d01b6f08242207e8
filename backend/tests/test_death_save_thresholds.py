from dndinit.core.engine.commands import (
    ApplyHpChange,
    NextTurn,
    RollDeathSave,
    Stabilize,
    ToggleCondition,
)
from dndinit.core.engine.rules.apply import apply_command
from dndinit.core.engine.state import Condition, EncounterState, Faction


def _downed_player(add):
    state = EncounterState()
    pid = add(state, "Aria", 15, 10, faction=Faction.PLAYER)
    state, ev = apply_command(state, ApplyHpChange(combatant_id=pid, delta=-10))
    assert [e["type"] for e in ev] == ["HpChanged", "ConditionApplied", "UnconsciousStateChanged"]
    assert state.get(pid).is_dying
    return state, pid


def _roll(state, pid):
    return apply_command(state, RollDeathSave(combatant_id=pid))


def test_three_successes_stabilize(add, dice):
    state, pid = _downed_player(add)
    dice(state, 10, 15, 19)

    state, _ = _roll(state, pid)
    state, _ = _roll(state, pid)
    state, ev = _roll(state, pid)

    p = state.get(pid)
    assert [e["type"] for e in ev] == ["DeathSaveRolled", "DeathSaveResult", "Stabilized"]
    assert p.is_stable is True
    assert p.is_dead is False
    assert p.death_save_successes == 3
    assert p.hp == 0
    assert Condition.UNCONSCIOUS in p.conditions


def test_three_failures_kill(add, dice):
    state, pid = _downed_player(add)
    dice(state, 2, 9, 5)

    for _ in range(3):
        state, ev = _roll(state, pid)

    p = state.get(pid)
    assert [e["type"] for e in ev] == ["DeathSaveRolled", "DeathSaveResult", "Died"]
    assert ev[-1]["payload"]["reason"] == "death_saves"
    assert p.is_dead is True
    assert p.death_save_failures == 3
    assert state.log.entries[-1].message == "Aria has DIED."


def test_natural_one_counts_double(add, dice):
    state, pid = _downed_player(add)
    dice(state, 1, 4)

    state, ev = _roll(state, pid)
    assert ev[1]["payload"]["outcome"] == "crit_fail"
    assert state.get(pid).death_save_failures == 2

    state, _ = _roll(state, pid)
    assert state.get(pid).is_dead is True
    assert state.get(pid).death_save_failures == 3


def test_natural_twenty_returns_to_one_hp(add, dice):
    state, pid = _downed_player(add)
    dice(state, 3, 4, 20)
    state, _ = _roll(state, pid)
    state, _ = _roll(state, pid)
    assert state.get(pid).death_save_failures == 2

    state, ev = _roll(state, pid)

    p = state.get(pid)
    assert [e["type"] for e in ev] == [
        "DeathSaveRolled",
        "ConditionRemoved",
        "DeathSaveResult",
        "UnconsciousStateChanged",
    ]
    assert p.hp == 1
    assert Condition.UNCONSCIOUS not in p.conditions
    assert (p.death_save_successes, p.death_save_failures) == (0, 0)
    assert not p.is_dying


def test_dead_or_stable_player_cannot_roll(add, dice):
    state, pid = _downed_player(add)

    state, ev = apply_command(state, Stabilize(combatant_id=pid))
    assert [e["type"] for e in ev] == ["Stabilized"]
    assert state.get(pid).is_stable is True

    dice(state)
    state, ev = _roll(state, pid)
    assert ev[0]["payload"]["code"] == "NOT_DYING"

    state, ev = apply_command(state, Stabilize(combatant_id=pid))
    assert ev[0]["payload"]["code"] == "NOT_DYING"


def test_enemies_do_not_make_death_saves(add):
    state = EncounterState()
    gob = add(state, "Goblin", 10, 7)

    state, ev = apply_command(state, ApplyHpChange(combatant_id=gob, delta=-7))
    assert [e["type"] for e in ev] == ["HpChanged"]
    assert state.get(gob).conditions == set()

    state, ev = _roll(state, gob)
    assert ev[0]["payload"]["code"] == "NOT_A_PLAYER"


def test_dying_player_rolls_automatically_on_turn_start(add, dice):
    state = EncounterState()
    gob = add(state, "Goblin", 20)
    pid = add(state, "Aria", 10, 10, faction=Faction.PLAYER)
    state, _ = apply_command(state, ApplyHpChange(combatant_id=pid, delta=-10))
    state, _ = apply_command(state, NextTurn())
    assert state.current_turn_id == gob
    dice(state, 12)

    state, ev = apply_command(state, NextTurn())

    assert [e["type"] for e in ev] == ["TurnStarted", "DeathSaveRolled", "DeathSaveResult"]
    assert ev[1]["payload"] == {"combatant_id": pid, "nat": 12, "automatic": True}
    assert state.get(pid).death_save_successes == 1


def test_unconscious_at_zero_hp_is_not_user_toggleable(add):
    state, pid = _downed_player(add)

    state, ev = apply_command(
        state, ToggleCondition(combatant_id=pid, condition=Condition.UNCONSCIOUS)
    )

    assert ev[0]["payload"]["code"] == "DERIVED_CONDITION"
    assert Condition.UNCONSCIOUS in state.get(pid).conditions
