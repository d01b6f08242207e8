from dndinit.core.engine.commands import ApplyHpChange
from dndinit.core.engine.rules.apply import apply_command
from dndinit.core.engine.state import Condition, EncounterState, Faction


def test_heal_from_zero_clears_dying_state(add):
    state = EncounterState()
    pid = add(state, "Aria", 15, 10, faction=Faction.PLAYER)
    state, _ = apply_command(state, ApplyHpChange(combatant_id=pid, delta=-10))
    state, _ = apply_command(state, ApplyHpChange(combatant_id=pid, delta=-1))
    assert state.get(pid).death_save_failures == 1

    state, ev = apply_command(state, ApplyHpChange(combatant_id=pid, delta=5))

    assert [e["type"] for e in ev] == ["HpChanged", "ConditionRemoved", "UnconsciousStateChanged"]
    p = state.get(pid)
    assert p.hp == 5
    assert Condition.UNCONSCIOUS not in p.conditions
    assert (p.death_save_successes, p.death_save_failures) == (0, 0)
    assert [e.message for e in state.log][-2:] == [
        "Aria healed 5 HP (5/10).",
        "Aria is no longer unconscious.",
    ]


def test_heal_revives_dead_player(add):
    state = EncounterState()
    pid = add(state, "Aria", 15, 10, faction=Faction.PLAYER)
    state, _ = apply_command(state, ApplyHpChange(combatant_id=pid, delta=-30))
    assert state.get(pid).is_dead

    state, ev = apply_command(state, ApplyHpChange(combatant_id=pid, delta=3))

    assert ev[-1]["type"] == "Revived"
    assert ev[-1]["payload"]["hp"] == 3
    assert state.get(pid).is_dead is False


def test_heal_clamps_to_max_hp(add):
    state = EncounterState()
    gob = add(state, "Goblin", 10, 7)
    state, _ = apply_command(state, ApplyHpChange(combatant_id=gob, delta=-2))

    state, ev = apply_command(state, ApplyHpChange(combatant_id=gob, delta=50))

    assert state.get(gob).hp == 7
    assert ev[0]["payload"]["hp_after"] == 7
