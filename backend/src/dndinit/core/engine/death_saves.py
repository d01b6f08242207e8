from __future__ import annotations

from typing import List

from dndinit.core.engine.action_log import log_action
from dndinit.core.engine.conditions import clear_condition, set_condition
from dndinit.core.engine.events import (
    ev_death_save_result,
    ev_death_save_rolled,
    ev_died,
    ev_hp_changed,
    ev_revived,
    ev_stabilized,
    ev_unconscious_state_changed,
)
from dndinit.core.engine.state import (
    DEATH_SAVE_LIMIT,
    CombatantState,
    Condition,
    EncounterState,
    bump,
    roll_d20,
)

# Игрок на 0 hp:
#   Active (hp>0) -> Dying (hp==0, копит успехи/провалы)
#   Dying -> Stable (3 успеха / stabilize) | Active (nat 20, 1 hp) | Dead (3 провала)
#   Active -> Dead сразу при massive damage
#   Stable + урон -> снова Dying


def _hp_event(
    state: EncounterState,
    c: CombatantState,
    *,
    delta: int,
    hp_before: int,
    is_critical: bool,
) -> dict:
    seq, t = bump(state)
    return ev_hp_changed(
        seq=seq,
        t=t,
        round_=state.round,
        turn_owner_id=state.current_turn_id,
        target_id=c.id,
        delta=delta,
        hp_before=hp_before,
        hp_after=c.hp,
        is_critical=is_critical,
    ).model_dump()


def _unconscious_event(
    state: EncounterState, c: CombatantState, *, became: bool, reason: str
) -> dict:
    seq, t = bump(state)
    return ev_unconscious_state_changed(
        seq=seq,
        t=t,
        round_=state.round,
        turn_owner_id=state.current_turn_id,
        target_id=c.id,
        became_unconscious=became,
        reason=reason,
    ).model_dump()


def _result_event(state: EncounterState, c: CombatantState, outcome: str) -> dict:
    seq, t = bump(state)
    return ev_death_save_result(
        seq=seq,
        t=t,
        round_=state.round,
        turn_owner_id=state.current_turn_id,
        combatant_id=c.id,
        successes=c.death_save_successes,
        failures=c.death_save_failures,
        outcome=outcome,
    ).model_dump()


def _knock_out(state: EncounterState, c: CombatantState) -> List[dict]:
    c.is_stable = False
    c.clear_death_saves()
    events = set_condition(state, c, Condition.UNCONSCIOUS, reason="hp_0")
    log_action(state, f"{c.name} is UNCONSCIOUS.")
    events.append(_unconscious_event(state, c, became=True, reason="hp_0"))
    return events


def _die(
    state: EncounterState, c: CombatantState, *, reason: str, reset_counters: bool
) -> List[dict]:
    c.hp = 0
    c.is_dead = True
    c.is_stable = False
    if reset_counters:
        c.clear_death_saves()
    else:
        c.death_save_failures = min(c.death_save_failures, DEATH_SAVE_LIMIT)

    events = set_condition(state, c, Condition.UNCONSCIOUS, reason="dead")
    log_action(state, f"{c.name} has DIED.")

    seq, t = bump(state)
    events.append(
        ev_died(
            seq=seq,
            t=t,
            round_=state.round,
            turn_owner_id=state.current_turn_id,
            target_id=c.id,
            reason=reason,
        ).model_dump()
    )
    return events


def record_failure(state: EncounterState, c: CombatantState, failures: int) -> List[dict]:
    """Провал(ы) спасброска от смерти из-за урона по лежащему игроку."""
    if not c.is_player or c.is_dead or c.hp > 0:
        return []

    if c.is_stable:
        # стабильный снова начинает умирать, счётчики с нуля
        c.is_stable = False
        c.clear_death_saves()

    c.death_save_failures += failures
    log_action(
        state,
        f"{c.name} suffers {failures} death save failure(s) "
        f"[{c.death_save_successes}S/{c.death_save_failures}F].",
    )
    events = [_result_event(state, c, "damage_fail")]

    if c.death_save_failures >= DEATH_SAVE_LIMIT:
        events.extend(_die(state, c, reason="death_saves", reset_counters=False))
    return events


def apply_hp_change(
    state: EncounterState, combatant_id: int, delta: int, is_critical: bool = False
) -> List[dict]:
    c = state.get(combatant_id)
    if c is None or delta == 0:
        return []

    # hp может прийти "грязным" (загрузка/ручная правка), нормализуем
    c.hp = max(0, min(c.hp, c.max_hp))
    hp_before = c.hp
    events: List[dict] = []

    if delta < 0:
        damage = -delta

        if c.is_player and not c.is_dead:
            # massive damage: остаток урона после 0 hp >= max hp
            if hp_before > 0 and damage - hp_before >= c.max_hp:
                c.hp = 0
                log_action(state, f"{c.name} took {damage} damage ({c.hp}/{c.max_hp}).")
                events.append(
                    _hp_event(
                        state, c, delta=delta, hp_before=hp_before, is_critical=is_critical
                    )
                )
                log_action(state, f"{c.name} is killed outright by massive damage.")
                events.extend(_die(state, c, reason="massive_damage", reset_counters=True))
                return events

            if hp_before <= 0:
                log_action(state, f"{c.name} took {damage} damage ({c.hp}/{c.max_hp}).")
                events.append(
                    _hp_event(
                        state, c, delta=delta, hp_before=hp_before, is_critical=is_critical
                    )
                )
                events.extend(record_failure(state, c, 2 if is_critical else 1))
                return events

        c.hp = max(0, hp_before - damage)
        log_action(state, f"{c.name} took {damage} damage ({c.hp}/{c.max_hp}).")
        events.append(
            _hp_event(state, c, delta=delta, hp_before=hp_before, is_critical=is_critical)
        )

        if c.is_player and not c.is_dead and hp_before > 0 and c.hp == 0:
            events.extend(_knock_out(state, c))
        return events

    c.hp = min(c.max_hp, hp_before + delta)
    log_action(state, f"{c.name} healed {delta} HP ({c.hp}/{c.max_hp}).")
    events.append(_hp_event(state, c, delta=delta, hp_before=hp_before, is_critical=False))

    if c.is_player and hp_before <= 0 and c.hp > 0:
        was_dead = c.is_dead
        c.is_dead = False
        c.is_stable = False
        c.clear_death_saves()
        events.extend(clear_condition(state, c, Condition.UNCONSCIOUS, reason="healed"))
        log_action(state, f"{c.name} is no longer unconscious.")
        events.append(_unconscious_event(state, c, became=False, reason="healed"))
        if was_dead:
            seq, t = bump(state)
            events.append(
                ev_revived(
                    seq=seq,
                    t=t,
                    round_=state.round,
                    turn_owner_id=state.current_turn_id,
                    target_id=c.id,
                    hp=c.hp,
                    reason="healed",
                ).model_dump()
            )
    return events


def roll_death_save(
    state: EncounterState, combatant_id: int, *, automatic: bool = False
) -> List[dict]:
    c = state.get(combatant_id)
    if c is None or not c.is_dying:
        return []

    nat = roll_d20(state)
    seq, t = bump(state)
    events = [
        ev_death_save_rolled(
            seq=seq,
            t=t,
            round_=state.round,
            turn_owner_id=state.current_turn_id,
            combatant_id=c.id,
            nat=nat,
            automatic=automatic,
        ).model_dump()
    ]

    # nat 20: приходит в сознание с 1 HP
    if nat == 20:
        c.hp = 1
        c.is_stable = False
        c.clear_death_saves()
        events.extend(
            clear_condition(state, c, Condition.UNCONSCIOUS, reason="death_save_nat20")
        )
        log_action(state, f"{c.name} rolled a natural 20 and regains 1 HP!")
        events.append(_result_event(state, c, "revived"))
        events.append(
            _unconscious_event(state, c, became=False, reason="death_save_nat20")
        )
        return events

    # nat 1: 2 провала
    if nat == 1:
        c.death_save_failures += 2
        outcome = "crit_fail"
    elif nat >= 10:
        c.death_save_successes += 1
        outcome = "success"
    else:
        c.death_save_failures += 1
        outcome = "fail"

    log_action(
        state,
        f"{c.name} death save: rolled {nat} ({outcome.replace('_', ' ')}) "
        f"[{c.death_save_successes}S/{c.death_save_failures}F].",
    )

    if c.death_save_failures >= DEATH_SAVE_LIMIT:
        c.death_save_failures = DEATH_SAVE_LIMIT
        events.append(_result_event(state, c, outcome))
        events.extend(_die(state, c, reason="death_saves", reset_counters=False))
        return events

    if c.death_save_successes >= DEATH_SAVE_LIMIT:
        c.death_save_successes = DEATH_SAVE_LIMIT
        c.is_stable = True
        events.append(_result_event(state, c, "stabilized"))
        log_action(state, f"{c.name} is STABLE.")
        seq, t = bump(state)
        events.append(
            ev_stabilized(
                seq=seq,
                t=t,
                round_=state.round,
                turn_owner_id=state.current_turn_id,
                target_id=c.id,
                reason="death_saves",
            ).model_dump()
        )
        return events

    events.append(_result_event(state, c, outcome))
    return events


def stabilize(state: EncounterState, combatant_id: int) -> List[dict]:
    """Ручная стабилизация (Medicine check и т.п.)."""
    c = state.get(combatant_id)
    if c is None or not c.is_dying:
        return []

    c.is_stable = True
    c.clear_death_saves()
    log_action(state, f"{c.name} was stabilized.")

    seq, t = bump(state)
    return [
        ev_stabilized(
            seq=seq,
            t=t,
            round_=state.round,
            turn_owner_id=state.current_turn_id,
            target_id=c.id,
            reason="stabilize_action",
        ).model_dump()
    ]
