from dndinit.core.engine.commands import (
    NextTurn,
    PrevTurn,
    SetConditionDuration,
    ToggleCondition,
)
from dndinit.core.engine.rules.apply import apply_command
from dndinit.core.engine.state import Condition, EncounterState


def _wrap_round(state):
    """Прогнать ходы до начала следующего раунда."""
    start = state.round
    while state.round == start:
        state, ev = apply_command(state, NextTurn())
    return state, ev


def test_condition_with_duration_expires_on_dth_wrap(add):
    state = EncounterState()
    add(state, "A", 20)
    b = add(state, "B", 10)
    state, _ = apply_command(state, NextTurn())

    state, _ = apply_command(state, ToggleCondition(combatant_id=b, condition=Condition.POISONED))
    state, ev = apply_command(
        state, SetConditionDuration(combatant_id=b, condition=Condition.POISONED, rounds=2)
    )
    assert [e["type"] for e in ev] == ["ConditionDurationSet"]
    assert state.log.entries[-1].message == "B: Poisoned duration set to 2."

    state, _ = _wrap_round(state)
    assert Condition.POISONED in state.get(b).conditions
    assert state.get(b).condition_duration[Condition.POISONED] == 1

    state, ev = _wrap_round(state)
    assert [e["type"] for e in ev] == ["ConditionRemoved", "RoundStarted", "TurnStarted"]
    assert ev[0]["payload"]["reason"] == "expired"
    assert Condition.POISONED not in state.get(b).conditions
    assert state.get(b).condition_duration[Condition.POISONED] == 0

    messages = [e.message for e in state.log]
    assert messages.index("B: Poisoned duration ended.") < messages.index(
        "--- START OF ROUND 3 ---"
    )


def test_indefinite_condition_never_expires(add):
    state = EncounterState()
    a = add(state, "A", 20)
    state, _ = apply_command(state, ToggleCondition(combatant_id=a, condition=Condition.PRONE))

    for _ in range(6):
        state, _ = _wrap_round(state)

    assert state.round == 7
    assert Condition.PRONE in state.get(a).conditions


def test_backward_movement_does_not_decay(add):
    state = EncounterState()
    a = add(state, "A", 20)
    b = add(state, "B", 10)
    state, _ = _wrap_round(state)
    assert (state.round, state.current_turn_id) == (2, a)

    state, _ = apply_command(state, ToggleCondition(combatant_id=a, condition=Condition.STUNNED))
    state, _ = apply_command(
        state, SetConditionDuration(combatant_id=a, condition=Condition.STUNNED, rounds=1)
    )
    state, _ = apply_command(state, PrevTurn())

    assert (state.round, state.current_turn_id) == (1, b)
    assert Condition.STUNNED in state.get(a).conditions
    assert state.get(a).condition_duration[Condition.STUNNED] == 1


def test_toggle_off_clears_duration(add):
    state = EncounterState()
    a = add(state, "A", 20)
    state, _ = apply_command(state, ToggleCondition(combatant_id=a, condition=Condition.BLINDED))
    state, _ = apply_command(
        state, SetConditionDuration(combatant_id=a, condition=Condition.BLINDED, rounds=5)
    )

    state, ev = apply_command(state, ToggleCondition(combatant_id=a, condition=Condition.BLINDED))

    assert [e["type"] for e in ev] == ["ConditionRemoved"]
    assert state.get(a).condition_duration[Condition.BLINDED] == 0
    assert state.log.entries[-1].message == "A: Blinded removed."


def test_duration_requires_active_condition(add):
    state = EncounterState()
    a = add(state, "A", 20)

    state, ev = apply_command(
        state, SetConditionDuration(combatant_id=a, condition=Condition.CHARMED, rounds=3)
    )

    assert ev[0]["payload"]["code"] == "CONDITION_NOT_ACTIVE"
    assert ev[0]["payload"]["message"] == "Enable condition first!"
