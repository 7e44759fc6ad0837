from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional

from dhsim.core.engine.commands import (
    AdversaryConditionChangePayload,
    AdversaryCreatePayload,
    CharacterStatePatchPayload,
    ConditionChangePayload,
    CountdownUpdatePayload,
)
from dhsim.core.engine.events import (
    REJ_COUNTDOWN_BEFORE_MISMATCH,
    REJ_COUNTDOWN_UPDATE_NO_MUTATION,
    Rejection,
)
from dhsim.core.engine.state import (
    LIFE_STATE_ALIVE,
    AdversaryState,
    CharacterState,
    CountdownState,
    SnapshotState,
    conditions_equal,
    normalize_conditions,
)


def _err(code: str, message: str) -> Rejection:
    return Rejection(code=code, message=message)


# --- snapshot accessors: всегда копия, исходный snapshot не трогаем ---


def snapshot_character_state(
    snapshot: SnapshotState, character_id: str
) -> Optional[CharacterState]:
    character_id = (character_id or "").strip()
    if not character_id:
        return None
    character = snapshot.character_states.get(character_id)
    if character is None:
        return None
    return replace(
        character,
        character_id=character_id,
        campaign_id=snapshot.campaign_id,
        life_state=character.life_state or LIFE_STATE_ALIVE,
        conditions=list(character.conditions),
    )


def snapshot_adversary_state(
    snapshot: SnapshotState, adversary_id: str
) -> Optional[AdversaryState]:
    adversary_id = (adversary_id or "").strip()
    if not adversary_id:
        return None
    adversary = snapshot.adversary_states.get(adversary_id)
    if adversary is None:
        return None
    return replace(
        adversary,
        adversary_id=adversary_id,
        campaign_id=snapshot.campaign_id,
        conditions=list(adversary.conditions),
    )


def snapshot_countdown_state(
    snapshot: SnapshotState, countdown_id: str
) -> Optional[CountdownState]:
    countdown_id = (countdown_id or "").strip()
    if not countdown_id:
        return None
    countdown = snapshot.countdown_states.get(countdown_id)
    if countdown is None:
        return None
    return replace(countdown, countdown_id=countdown_id, campaign_id=snapshot.campaign_id)


# --- no-mutation detectors ---


def is_character_state_patch_no_mutation(
    snapshot: SnapshotState, payload: CharacterStatePatchPayload
) -> bool:
    character = snapshot_character_state(snapshot, payload.character_id)
    if character is None:
        return False

    if payload.hp_after is not None:
        if character.hp != payload.hp_after:
            return False
    elif (
        payload.hp_before is not None
        and character.hp == 0
        and character.hp != payload.hp_before
    ):
        # персонаж уже на 0 HP, а before устарел: даём восстановлению пройти
        return False

    checks = (
        (payload.hope_after, character.hope),
        (payload.hope_max_after, character.hope_max),
        (payload.stress_after, character.stress),
        (payload.armor_after, character.armor),
        (payload.life_state_after, character.life_state),
    )
    for after, current in checks:
        if after is not None and after != current:
            return False
    return True


def is_condition_change_no_mutation(
    snapshot: SnapshotState, payload: ConditionChangePayload
) -> bool:
    character = snapshot_character_state(snapshot, payload.character_id)
    if character is None:
        return False
    return conditions_equal(character.conditions, payload.conditions_after)


def is_adversary_condition_change_no_mutation(
    snapshot: SnapshotState, payload: AdversaryConditionChangePayload
) -> bool:
    adversary = snapshot_adversary_state(snapshot, payload.adversary_id)
    if adversary is None:
        return False
    return conditions_equal(adversary.conditions, payload.conditions_after)


def has_missing_condition_removals(
    current: Iterable[str], removed: Optional[Iterable[str]]
) -> bool:
    current_set = set(normalize_conditions(current))
    return any(c not in current_set for c in normalize_conditions(removed))


def has_missing_character_condition_removals(
    snapshot: SnapshotState, payload: ConditionChangePayload
) -> bool:
    if not payload.removed:
        return False
    character = snapshot_character_state(snapshot, payload.character_id)
    if character is None:
        return False
    return has_missing_condition_removals(character.conditions, payload.removed)


def has_missing_adversary_condition_removals(
    snapshot: SnapshotState, payload: AdversaryConditionChangePayload
) -> bool:
    if not payload.removed:
        return False
    adversary = snapshot_adversary_state(snapshot, payload.adversary_id)
    if adversary is None:
        return False
    return has_missing_condition_removals(adversary.conditions, payload.removed)


def is_countdown_update_no_mutation(
    snapshot: SnapshotState, payload: CountdownUpdatePayload
) -> bool:
    countdown = snapshot_countdown_state(snapshot, payload.countdown_id)
    if countdown is None:
        return False
    if countdown.current != payload.after:
        return False
    if payload.looped and not countdown.looping:
        return False
    return True


def countdown_update_rejection(
    snapshot: SnapshotState, payload: CountdownUpdatePayload
) -> Optional[Rejection]:
    countdown = snapshot_countdown_state(snapshot, payload.countdown_id)
    if countdown is not None and payload.before != countdown.current:
        return _err(
            REJ_COUNTDOWN_BEFORE_MISMATCH,
            "countdown before does not match current state",
        )
    if is_countdown_update_no_mutation(snapshot, payload):
        return _err(REJ_COUNTDOWN_UPDATE_NO_MUTATION, "countdown update is unchanged")
    return None


def damage_before_mismatch(
    hp: int,
    armor: int,
    hp_before: Optional[int],
    armor_before: Optional[int],
) -> bool:
    if hp_before is not None and hp != hp_before:
        return True
    if armor_before is not None and armor != armor_before:
        return True
    return False


def is_adversary_create_no_mutation(
    snapshot: SnapshotState, payload: AdversaryCreatePayload
) -> bool:
    adversary = snapshot_adversary_state(snapshot, payload.adversary_id)
    if adversary is None:
        return False
    return (
        adversary.name == payload.name.strip()
        and adversary.kind == payload.kind.strip()
        and adversary.session_id == payload.session_id.strip()
        and adversary.notes == payload.notes.strip()
        and adversary.hp == payload.hp
        and adversary.hp_max == payload.hp_max
        and adversary.stress == payload.stress
        and adversary.stress_max == payload.stress_max
        and adversary.evasion == payload.evasion
        and adversary.major_threshold == payload.major_threshold
        and adversary.severe_threshold == payload.severe_threshold
        and adversary.armor == payload.armor
    )
