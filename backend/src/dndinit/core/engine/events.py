from __future__ import annotations

from typing import Any, Literal, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, ConfigDict


class EventEnvelope(BaseModel):
    model_config = ConfigDict(extra="forbid")

    event_id: UUID = Field(default_factory=uuid4)
    seq: int
    t: int
    type: str

    round: int
    turn_owner_id: Optional[int] = None
    actor_id: Optional[int] = None

    payload: dict[str, Any] = Field(default_factory=dict)


def ev_command_rejected(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[int],
    actor_id: Optional[int],
    command: dict,
    code: str,
    message: str,
    meta: dict,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="CommandRejected",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=actor_id,
        payload={
            "command": command,
            "code": code,
            "message": message,
            "meta": meta,
        },
    )


def ev_combatant_added(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[int],
    combatant_id: int,
    name: str,
    faction: str,
    initiative: int,
    max_hp: int,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="CombatantAdded",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=combatant_id,
        payload={
            "combatant_id": combatant_id,
            "name": name,
            "faction": faction,
            "initiative": initiative,
            "max_hp": max_hp,
        },
    )


def ev_combatant_removed(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[int],
    combatant_id: int,
    name: str,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="CombatantRemoved",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=combatant_id,
        payload={"combatant_id": combatant_id, "name": name},
    )


def ev_combatant_renamed(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[int],
    combatant_id: int,
    old_name: str,
    new_name: str,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="CombatantRenamed",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=combatant_id,
        payload={
            "combatant_id": combatant_id,
            "old_name": old_name,
            "new_name": new_name,
        },
    )


def ev_initiative_rerolled(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[int],
    combatant_id: int,
    old_initiative: int,
    new_initiative: int,
    rolled: bool,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="InitiativeRerolled",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=combatant_id,
        payload={
            "combatant_id": combatant_id,
            "old_initiative": old_initiative,
            "new_initiative": new_initiative,
            "rolled": rolled,
        },
    )


def ev_order_changed(
    *, seq: int, t: int, round_: int, turn_owner_id: Optional[int], order: list[int]
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="OrderChanged",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=None,
        payload={"order": order},
    )


def ev_hp_changed(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[int],
    target_id: int,
    delta: int,
    hp_before: int,
    hp_after: int,
    is_critical: bool = False,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="HpChanged",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=target_id,
        payload={
            "target_id": target_id,
            "delta": delta,
            "hp_before": hp_before,
            "hp_after": hp_after,
            "is_critical": is_critical,
        },
    )


def ev_unconscious_state_changed(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[int],
    target_id: int,
    became_unconscious: bool,
    reason: str,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="UnconsciousStateChanged",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=target_id,
        payload={
            "target_id": target_id,
            "became_unconscious": became_unconscious,
            "reason": reason,  # "hp_0" | "healed" | "death_save_nat20" | "toggle"
        },
    )


def ev_condition_applied(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[int],
    target_id: int,
    condition: str,
    reason: str,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="ConditionApplied",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=target_id,
        payload={"target_id": target_id, "condition": condition, "reason": reason},
    )


def ev_condition_removed(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[int],
    target_id: int,
    condition: str,
    reason: str,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="ConditionRemoved",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=target_id,
        payload={"target_id": target_id, "condition": condition, "reason": reason},
    )


def ev_condition_duration_set(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[int],
    target_id: int,
    condition: str,
    rounds: int,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="ConditionDurationSet",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=target_id,
        payload={"target_id": target_id, "condition": condition, "rounds": rounds},
    )


def ev_round_started(
    *, seq: int, t: int, round_: int, turn_owner_id: Optional[int]
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="RoundStarted",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=None,
        payload={"round": round_},
    )


def ev_round_reverted(
    *, seq: int, t: int, round_: int, turn_owner_id: Optional[int]
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="RoundReverted",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=None,
        payload={"round": round_},
    )


def ev_turn_started(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: int,
    direction: Literal["forward", "backward", "reset"] = "forward",
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="TurnStarted",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=turn_owner_id,
        payload={"combatant_id": turn_owner_id, "direction": direction},
    )


def ev_selection_changed(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[int],
    selected_id: Optional[int],
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="SelectionChanged",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=selected_id,
        payload={"selected_id": selected_id},
    )


def ev_death_save_rolled(
    *, seq: int, t: int, round_: int, turn_owner_id: Optional[int], combatant_id: int, nat: int, automatic: bool
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="DeathSaveRolled",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=combatant_id,
        payload={"combatant_id": combatant_id, "nat": nat, "automatic": automatic},
    )


def ev_death_save_result(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[int],
    combatant_id: int,
    successes: int,
    failures: int,
    outcome: str,  # "success" | "fail" | "crit_fail" | "revived" | "stabilized" | "dead" | "damage_fail"
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="DeathSaveResult",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=combatant_id,
        payload={
            "combatant_id": combatant_id,
            "successes": successes,
            "failures": failures,
            "outcome": outcome,
        },
    )


def ev_stabilized(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[int],
    target_id: int,
    reason: str,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="Stabilized",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=target_id,
        payload={"target_id": target_id, "reason": reason},
    )


def ev_died(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[int],
    target_id: int,
    reason: str,  # "death_saves" | "massive_damage"
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="Died",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=target_id,
        payload={"target_id": target_id, "reason": reason},
    )


def ev_revived(
    *,
    seq: int,
    t: int,
    round_: int,
    turn_owner_id: Optional[int],
    target_id: int,
    hp: int,
    reason: str,
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="Revived",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=target_id,
        payload={"target_id": target_id, "hp": hp, "reason": reason},
    )


def ev_undo_applied(
    *, seq: int, t: int, round_: int, turn_owner_id: Optional[int], remaining: int
) -> EventEnvelope:
    return EventEnvelope(
        seq=seq,
        t=t,
        type="UndoApplied",
        round=round_,
        turn_owner_id=turn_owner_id,
        actor_id=None,
        payload={"remaining": remaining},
    )
