from dndinit.core.engine.commands import AddCombatant, NextTurn, RemoveCombatant
from dndinit.core.engine.rules.apply import apply_command
from dndinit.core.engine.state import EncounterState, Faction


def test_add_initializes_and_selects_new_combatant(add):
    state = EncounterState()

    state, ev = apply_command(
        state,
        AddCombatant(faction=Faction.PLAYER, name="  Aria  ", initiative=15, dexterity=2, max_hp=20),
    )

    assert [e["type"] for e in ev] == ["CombatantAdded"]
    aria = state.combatants[0]
    assert aria.name == "Aria"
    assert aria.hp == aria.max_hp == 20
    assert aria.conditions == set()
    assert (aria.death_save_successes, aria.death_save_failures) == (0, 0)
    assert not aria.is_stable and not aria.is_dead
    # первый боец получает ход
    assert state.current_turn_id == aria.id
    assert state.selected_id == aria.id
    assert [e.message for e in state.log] == ["Added Aria: Init 15, HP 20."]

    gob = add(state, "Goblin", 10)
    assert state.selected_id == gob
    assert state.current_turn_id == aria.id


def test_remove_requires_confirmation(add):
    state = EncounterState()
    gob = add(state, "Goblin", 10)

    state, ev = apply_command(state, RemoveCombatant(combatant_id=gob))

    assert [e["type"] for e in ev] == ["CommandRejected"]
    assert ev[0]["payload"]["code"] == "CONFIRMATION_REQUIRED"
    assert ev[0]["payload"]["message"] == "Delete Goblin? (y/n)"
    assert state.count == 1


def test_remove_turn_holder_passes_turn_to_next_entry(add):
    state = EncounterState()
    a = add(state, "A", 20)
    b = add(state, "B", 15)
    c = add(state, "C", 10)
    assert state.current_turn_id == a

    state, ev = apply_command(state, RemoveCombatant(combatant_id=a, confirmed=True))
    assert [e["type"] for e in ev] == ["CombatantRemoved"]
    assert state.current_turn_id == b
    assert state.get(a) is None

    state, _ = apply_command(state, NextTurn())  # ход B начинается
    state, _ = apply_command(state, NextTurn())
    assert state.current_turn_id == c

    # последний в списке -> ход переходит по кругу на первого
    state, _ = apply_command(state, RemoveCombatant(combatant_id=c, confirmed=True))
    assert state.current_turn_id == b
    assert state.log.entries[-1].message == "Removed C."


def test_remove_selected_moves_selection_to_same_slot(add):
    state = EncounterState()
    add(state, "A", 20)
    b = add(state, "B", 15)
    c = add(state, "C", 10)

    state.selected_id = b
    state, _ = apply_command(state, RemoveCombatant(confirmed=True))

    assert state.selected_id == c


def test_removing_last_combatant_resets_round(add):
    state = EncounterState()
    x = add(state, "X", 10)
    state, _ = apply_command(state, NextTurn())
    state, _ = apply_command(state, NextTurn())
    assert state.round == 2

    state, _ = apply_command(state, RemoveCombatant(combatant_id=x, confirmed=True))

    assert state.count == 0
    assert state.round == 1
    assert state.current_turn_id is None
    assert state.selected_id is None


def test_ids_are_never_reused(add):
    state = EncounterState()
    a = add(state, "A", 10)
    state, _ = apply_command(state, RemoveCombatant(combatant_id=a, confirmed=True))

    b = add(state, "B", 10)
    assert b != a
    assert b > a
