from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from dhsim.core.engine.commands import (
    CMD_ADVERSARY_ACTION_RESOLVE,
    CMD_ADVERSARY_ATTACK_RESOLVE,
    CMD_ADVERSARY_CONDITION_CHANGE,
    CMD_ADVERSARY_CREATE,
    CMD_ADVERSARY_DAMAGE_APPLY,
    CMD_ADVERSARY_DELETE,
    CMD_ADVERSARY_ROLL_RESOLVE,
    CMD_ADVERSARY_UPDATE,
    CMD_ATTACK_RESOLVE,
    CMD_BLAZE_OF_GLORY_RESOLVE,
    CMD_CHARACTER_STATE_PATCH,
    CMD_CHARACTER_TEMPORARY_ARMOR_APPLY,
    CMD_CONDITION_CHANGE,
    CMD_COUNTDOWN_CREATE,
    CMD_COUNTDOWN_DELETE,
    CMD_COUNTDOWN_UPDATE,
    CMD_DAMAGE_APPLY,
    CMD_DAMAGE_ROLL_RESOLVE,
    CMD_DEATH_MOVE_RESOLVE,
    CMD_DOWNTIME_MOVE_APPLY,
    CMD_GM_FEAR_SET,
    CMD_GM_MOVE_APPLY,
    CMD_GROUP_ACTION_RESOLVE,
    CMD_HOPE_SPEND,
    CMD_LOADOUT_SWAP,
    CMD_REACTION_RESOLVE,
    CMD_REST_TAKE,
    CMD_STRESS_SPEND,
    CMD_TAG_TEAM_RESOLVE,
    AdversaryActionResolvePayload,
    AdversaryAttackResolvePayload,
    AdversaryConditionChangePayload,
    AdversaryCreatePayload,
    AdversaryDamageApplyPayload,
    AdversaryDeletePayload,
    AdversaryRollResolvePayload,
    AdversaryUpdatePayload,
    AttackResolvePayload,
    BlazeOfGloryResolvePayload,
    CharacterStatePatchPayload,
    CharacterTemporaryArmorApplyPayload,
    Command,
    ConditionChangePayload,
    CountdownCreatePayload,
    CountdownDeletePayload,
    CountdownUpdatePayload,
    DamageApplyPayload,
    DamageRollResolvePayload,
    DeathMoveResolvePayload,
    DowntimeMoveApplyPayload,
    GMFearSetPayload,
    GMMoveApplyPayload,
    GroupActionResolvePayload,
    HopeSpendPayload,
    LoadoutSwapPayload,
    ReactionResolvePayload,
    RestTakePayload,
    StressSpendPayload,
    TagTeamResolvePayload,
)
from dhsim.core.engine.events import (
    EV_ADVERSARY_ACTION_RESOLVED,
    EV_ADVERSARY_ATTACK_RESOLVED,
    EV_ADVERSARY_CONDITION_CHANGED,
    EV_ADVERSARY_CREATED,
    EV_ADVERSARY_DAMAGE_APPLIED,
    EV_ADVERSARY_DELETED,
    EV_ADVERSARY_ROLL_RESOLVED,
    EV_ADVERSARY_UPDATED,
    EV_ATTACK_RESOLVED,
    EV_BLAZE_OF_GLORY_RESOLVED,
    EV_CHARACTER_STATE_PATCHED,
    EV_CHARACTER_TEMPORARY_ARMOR_APPLIED,
    EV_CONDITION_CHANGED,
    EV_COUNTDOWN_CREATED,
    EV_COUNTDOWN_DELETED,
    EV_COUNTDOWN_UPDATED,
    EV_DAMAGE_APPLIED,
    EV_DAMAGE_ROLL_RESOLVED,
    EV_DEATH_MOVE_RESOLVED,
    EV_DOWNTIME_MOVE_APPLIED,
    EV_GM_FEAR_CHANGED,
    EV_GM_MOVE_APPLIED,
    EV_GROUP_ACTION_RESOLVED,
    EV_LOADOUT_SWAPPED,
    EV_REACTION_RESOLVED,
    EV_REST_TAKEN,
    EV_TAG_TEAM_RESOLVED,
    REJ_ADVERSARY_CONDITION_NO_MUTATION,
    REJ_ADVERSARY_CONDITION_REMOVE_MISSING,
    REJ_ADVERSARY_CREATE_NO_MUTATION,
    REJ_ADVERSARY_DAMAGE_BEFORE_MISMATCH,
    REJ_CHARACTER_STATE_PATCH_NO_MUTATION,
    REJ_COMMAND_TYPE_UNSUPPORTED,
    REJ_CONDITION_CHANGE_NO_MUTATION,
    REJ_CONDITION_CHANGE_REMOVE_MISSING,
    REJ_DAMAGE_ARMOR_SPEND_LIMIT,
    REJ_DAMAGE_BEFORE_MISMATCH,
    REJ_GM_FEAR_AFTER_REQUIRED,
    REJ_GM_FEAR_OUT_OF_RANGE,
    REJ_GM_FEAR_UNCHANGED,
    REJ_PAYLOAD_DECODE_FAILED,
    CharacterStatePatchedPayload,
    Decision,
    GMFearChangedPayload,
    new_event,
)
from dhsim.core.engine.rules.validator import (
    countdown_update_rejection,
    damage_before_mismatch,
    has_missing_adversary_condition_removals,
    has_missing_character_condition_removals,
    is_adversary_condition_change_no_mutation,
    is_adversary_create_no_mutation,
    is_character_state_patch_no_mutation,
    is_condition_change_no_mutation,
    snapshot_adversary_state,
    snapshot_character_state,
)
from dhsim.core.engine.state import (
    GM_FEAR_DEFAULT,
    GM_FEAR_MAX,
    GM_FEAR_MIN,
    SnapshotState,
)

logger = logging.getLogger(__name__)

NowFn = Callable[[], datetime]
P = TypeVar("P", bound=BaseModel)

# одно armor slot на одно применение урона
MAX_ARMOR_SPENT_PER_DAMAGE = 1


class _DecodeFailed(Exception):
    def __init__(self, decision: Decision) -> None:
        super().__init__(decision.rejection.message if decision.rejection else "")
        self.decision = decision


def snapshot_or_default(state: object) -> Tuple[SnapshotState, bool]:
    if isinstance(state, SnapshotState):
        return state, True
    return SnapshotState(gm_fear=GM_FEAR_DEFAULT), False


def _timestamp(now: Optional[NowFn]) -> datetime:
    ts = now() if now is not None else datetime.now(timezone.utc)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _decode(cmd: Command, payload_cls: Type[P]) -> P:
    try:
        return payload_cls.model_validate_json(cmd.payload_json)
    except ValidationError as exc:
        raise _DecodeFailed(
            Decision.reject(
                REJ_PAYLOAD_DECODE_FAILED, f"decode {cmd.type} payload: {exc}"
            )
        ) from exc


def _trim(payload: P, *fields: str) -> P:
    return payload.model_copy(
        update={name: getattr(payload, name).strip() for name in fields}
    )


def _emit(
    cmd: Command,
    payload: BaseModel,
    *,
    event_type: str,
    entity_type: str,
    entity_id: str,
    now: Optional[NowFn],
) -> Decision:
    """entity: явное значение команды > id из payload > campaign."""
    event = new_event(
        cmd,
        type_=event_type,
        entity_type=cmd.entity_type.strip() or entity_type,
        entity_id=cmd.entity_id.strip() or entity_id or cmd.campaign_id,
        payload=payload,
        timestamp=_timestamp(now),
    )
    return Decision.accept(event)


# --- handlers с проверками по snapshot ---


def _decide_gm_fear_set(
    s: SnapshotState, has_state: bool, cmd: Command, now: Optional[NowFn]
) -> Decision:
    p = _decode(cmd, GMFearSetPayload)
    if p.after is None:
        return Decision.reject(REJ_GM_FEAR_AFTER_REQUIRED, "gm fear after is required")
    if p.after < GM_FEAR_MIN or p.after > GM_FEAR_MAX:
        return Decision.reject(
            REJ_GM_FEAR_OUT_OF_RANGE, "gm fear after is out of range"
        )
    before = s.gm_fear if has_state else GM_FEAR_DEFAULT
    if p.after == before:
        return Decision.reject(REJ_GM_FEAR_UNCHANGED, "gm fear after is unchanged")

    out = GMFearChangedPayload(before=before, after=p.after, reason=p.reason.strip())
    return _emit(
        cmd,
        out,
        event_type=EV_GM_FEAR_CHANGED,
        entity_type="campaign",
        entity_id=cmd.campaign_id,
        now=now,
    )


def _decide_character_state_patch(
    s: SnapshotState, has_state: bool, cmd: Command, now: Optional[NowFn]
) -> Decision:
    p = _decode(cmd, CharacterStatePatchPayload)
    if has_state and is_character_state_patch_no_mutation(s, p):
        return Decision.reject(
            REJ_CHARACTER_STATE_PATCH_NO_MUTATION,
            "character state patch is unchanged",
        )
    p = _trim(p, "character_id")
    return _emit(
        cmd,
        p,
        event_type=EV_CHARACTER_STATE_PATCHED,
        entity_type="character",
        entity_id=p.character_id,
        now=now,
    )


def _decide_condition_change(
    s: SnapshotState, has_state: bool, cmd: Command, now: Optional[NowFn]
) -> Decision:
    p = _decode(cmd, ConditionChangePayload)
    if has_state:
        if has_missing_character_condition_removals(s, p):
            return Decision.reject(
                REJ_CONDITION_CHANGE_REMOVE_MISSING,
                "condition remove requires an existing condition",
            )
        if is_condition_change_no_mutation(s, p):
            return Decision.reject(
                REJ_CONDITION_CHANGE_NO_MUTATION, "condition change is unchanged"
            )
    p = _trim(p, "character_id", "source")
    return _emit(
        cmd,
        p,
        event_type=EV_CONDITION_CHANGED,
        entity_type="character",
        entity_id=p.character_id,
        now=now,
    )


def _decide_adversary_condition_change(
    s: SnapshotState, has_state: bool, cmd: Command, now: Optional[NowFn]
) -> Decision:
    p = _decode(cmd, AdversaryConditionChangePayload)
    if has_state:
        if has_missing_adversary_condition_removals(s, p):
            return Decision.reject(
                REJ_ADVERSARY_CONDITION_REMOVE_MISSING,
                "adversary condition remove requires an existing condition",
            )
        if is_adversary_condition_change_no_mutation(s, p):
            return Decision.reject(
                REJ_ADVERSARY_CONDITION_NO_MUTATION,
                "adversary condition change is unchanged",
            )
    p = _trim(p, "adversary_id", "source")
    return _emit(
        cmd,
        p,
        event_type=EV_ADVERSARY_CONDITION_CHANGED,
        entity_type="adversary",
        entity_id=p.adversary_id,
        now=now,
    )


def _decide_hope_spend(
    s: SnapshotState, has_state: bool, cmd: Command, now: Optional[NowFn]
) -> Decision:
    p = _trim(_decode(cmd, HopeSpendPayload), "character_id")
    out = CharacterStatePatchedPayload(
        character_id=p.character_id, hope_before=p.before, hope_after=p.after
    )
    return _emit(
        cmd,
        out,
        event_type=EV_CHARACTER_STATE_PATCHED,
        entity_type="character",
        entity_id=p.character_id,
        now=now,
    )


def _decide_stress_spend(
    s: SnapshotState, has_state: bool, cmd: Command, now: Optional[NowFn]
) -> Decision:
    p = _trim(_decode(cmd, StressSpendPayload), "character_id")
    out = CharacterStatePatchedPayload(
        character_id=p.character_id, stress_before=p.before, stress_after=p.after
    )
    return _emit(
        cmd,
        out,
        event_type=EV_CHARACTER_STATE_PATCHED,
        entity_type="character",
        entity_id=p.character_id,
        now=now,
    )


def _decide_rest_take(
    s: SnapshotState, has_state: bool, cmd: Command, now: Optional[NowFn]
) -> Decision:
    p = _trim(_decode(cmd, RestTakePayload), "rest_type")
    countdown = p.long_term_countdown
    if countdown is not None:
        rejection = countdown_update_rejection(s, countdown)
        if rejection is not None:
            return Decision(rejection=rejection)
        countdown = _trim(countdown, "countdown_id", "reason")
        p = p.model_copy(update={"long_term_countdown": countdown})

    ts = _timestamp(now)
    rest_event = new_event(
        cmd,
        type_=EV_REST_TAKEN,
        entity_type=cmd.entity_type.strip() or "session",
        entity_id=cmd.entity_id.strip() or cmd.campaign_id,
        payload=p,
        timestamp=ts,
    )
    if countdown is None:
        return Decision.accept(rest_event)

    countdown_event = new_event(
        cmd,
        type_=EV_COUNTDOWN_UPDATED,
        entity_type="countdown",
        entity_id=countdown.countdown_id,
        payload=countdown,
        timestamp=ts,
    )
    return Decision.accept(rest_event, countdown_event)


def _decide_countdown_update(
    s: SnapshotState, has_state: bool, cmd: Command, now: Optional[NowFn]
) -> Decision:
    p = _decode(cmd, CountdownUpdatePayload)
    if has_state:
        rejection = countdown_update_rejection(s, p)
        if rejection is not None:
            return Decision(rejection=rejection)
    p = _trim(p, "countdown_id", "reason")
    return _emit(
        cmd,
        p,
        event_type=EV_COUNTDOWN_UPDATED,
        entity_type="countdown",
        entity_id=p.countdown_id,
        now=now,
    )


def _decide_damage_apply(
    s: SnapshotState, has_state: bool, cmd: Command, now: Optional[NowFn]
) -> Decision:
    p = _decode(cmd, DamageApplyPayload)
    if p.armor_spent > MAX_ARMOR_SPENT_PER_DAMAGE:
        return Decision.reject(
            REJ_DAMAGE_ARMOR_SPEND_LIMIT,
            "damage apply can spend at most one armor slot",
        )
    if has_state:
        character = snapshot_character_state(s, p.character_id)
        if character is not None and damage_before_mismatch(
            character.hp, character.armor, p.hp_before, p.armor_before
        ):
            return Decision.reject(
                REJ_DAMAGE_BEFORE_MISMATCH,
                "damage before does not match current state",
            )
    p = _trim(p, "character_id", "damage_type", "source")
    return _emit(
        cmd,
        p,
        event_type=EV_DAMAGE_APPLIED,
        entity_type="character",
        entity_id=p.character_id,
        now=now,
    )


def _decide_adversary_damage_apply(
    s: SnapshotState, has_state: bool, cmd: Command, now: Optional[NowFn]
) -> Decision:
    p = _decode(cmd, AdversaryDamageApplyPayload)
    if p.armor_spent > MAX_ARMOR_SPENT_PER_DAMAGE:
        return Decision.reject(
            REJ_DAMAGE_ARMOR_SPEND_LIMIT,
            "damage apply can spend at most one armor slot",
        )
    if has_state:
        adversary = snapshot_adversary_state(s, p.adversary_id)
        if adversary is not None and damage_before_mismatch(
            adversary.hp, adversary.armor, p.hp_before, p.armor_before
        ):
            return Decision.reject(
                REJ_ADVERSARY_DAMAGE_BEFORE_MISMATCH,
                "adversary damage before does not match current state",
            )
    p = _trim(p, "adversary_id", "damage_type", "source")
    return _emit(
        cmd,
        p,
        event_type=EV_ADVERSARY_DAMAGE_APPLIED,
        entity_type="adversary",
        entity_id=p.adversary_id,
        now=now,
    )


def _decide_adversary_create(
    s: SnapshotState, has_state: bool, cmd: Command, now: Optional[NowFn]
) -> Decision:
    p = _decode(cmd, AdversaryCreatePayload)
    if has_state and is_adversary_create_no_mutation(s, p):
        return Decision.reject(
            REJ_ADVERSARY_CREATE_NO_MUTATION, "adversary create is unchanged"
        )
    p = _trim(p, "adversary_id", "name", "kind", "session_id", "notes")
    return _emit(
        cmd,
        p,
        event_type=EV_ADVERSARY_CREATED,
        entity_type="adversary",
        entity_id=p.adversary_id,
        now=now,
    )


Handler = Callable[[SnapshotState, bool, Command, Optional[NowFn]], Decision]

_HANDLERS: Dict[str, Handler] = {
    CMD_GM_FEAR_SET: _decide_gm_fear_set,
    CMD_CHARACTER_STATE_PATCH: _decide_character_state_patch,
    CMD_CONDITION_CHANGE: _decide_condition_change,
    CMD_ADVERSARY_CONDITION_CHANGE: _decide_adversary_condition_change,
    CMD_HOPE_SPEND: _decide_hope_spend,
    CMD_STRESS_SPEND: _decide_stress_spend,
    CMD_REST_TAKE: _decide_rest_take,
    CMD_COUNTDOWN_UPDATE: _decide_countdown_update,
    CMD_DAMAGE_APPLY: _decide_damage_apply,
    CMD_ADVERSARY_DAMAGE_APPLY: _decide_adversary_damage_apply,
    CMD_ADVERSARY_CREATE: _decide_adversary_create,
}


# --- команды без проверок по snapshot: decode -> trim -> event ---


@dataclass(frozen=True)
class _Route:
    payload_cls: Type[BaseModel]
    event_type: str
    entity_type: str
    # None -> событие уровня кампании
    id_field: Optional[str]
    trim: Tuple[str, ...] = ()


_ROUTES: Dict[str, _Route] = {
    CMD_LOADOUT_SWAP: _Route(
        LoadoutSwapPayload,
        EV_LOADOUT_SWAPPED,
        "character",
        "character_id",
        ("character_id", "card_id", "from_", "to"),
    ),
    CMD_COUNTDOWN_CREATE: _Route(
        CountdownCreatePayload,
        EV_COUNTDOWN_CREATED,
        "countdown",
        "countdown_id",
        ("countdown_id", "name", "kind", "direction"),
    ),
    CMD_COUNTDOWN_DELETE: _Route(
        CountdownDeletePayload,
        EV_COUNTDOWN_DELETED,
        "countdown",
        "countdown_id",
        ("countdown_id", "reason"),
    ),
    CMD_DOWNTIME_MOVE_APPLY: _Route(
        DowntimeMoveApplyPayload,
        EV_DOWNTIME_MOVE_APPLIED,
        "character",
        "character_id",
        ("character_id", "move"),
    ),
    CMD_CHARACTER_TEMPORARY_ARMOR_APPLY: _Route(
        CharacterTemporaryArmorApplyPayload,
        EV_CHARACTER_TEMPORARY_ARMOR_APPLIED,
        "character",
        "character_id",
        ("character_id", "source", "duration", "source_id"),
    ),
    CMD_ADVERSARY_UPDATE: _Route(
        AdversaryUpdatePayload,
        EV_ADVERSARY_UPDATED,
        "adversary",
        "adversary_id",
        ("adversary_id", "name", "kind", "session_id", "notes"),
    ),
    CMD_ADVERSARY_DELETE: _Route(
        AdversaryDeletePayload,
        EV_ADVERSARY_DELETED,
        "adversary",
        "adversary_id",
        ("adversary_id", "reason"),
    ),
    CMD_ATTACK_RESOLVE: _Route(
        AttackResolvePayload,
        EV_ATTACK_RESOLVED,
        "character",
        "character_id",
        ("character_id", "outcome", "flavor"),
    ),
    CMD_REACTION_RESOLVE: _Route(
        ReactionResolvePayload,
        EV_REACTION_RESOLVED,
        "character",
        "character_id",
        ("character_id", "outcome"),
    ),
    CMD_DAMAGE_ROLL_RESOLVE: _Route(
        DamageRollResolvePayload,
        EV_DAMAGE_ROLL_RESOLVED,
        "character",
        "character_id",
        ("character_id",),
    ),
    CMD_ADVERSARY_ROLL_RESOLVE: _Route(
        AdversaryRollResolvePayload,
        EV_ADVERSARY_ROLL_RESOLVED,
        "adversary",
        "adversary_id",
        ("adversary_id",),
    ),
    CMD_ADVERSARY_ATTACK_RESOLVE: _Route(
        AdversaryAttackResolvePayload,
        EV_ADVERSARY_ATTACK_RESOLVED,
        "adversary",
        "adversary_id",
        ("adversary_id",),
    ),
    CMD_ADVERSARY_ACTION_RESOLVE: _Route(
        AdversaryActionResolvePayload,
        EV_ADVERSARY_ACTION_RESOLVED,
        "adversary",
        "adversary_id",
        ("adversary_id",),
    ),
    CMD_GROUP_ACTION_RESOLVE: _Route(
        GroupActionResolvePayload,
        EV_GROUP_ACTION_RESOLVED,
        "character",
        "leader_character_id",
        ("leader_character_id",),
    ),
    CMD_TAG_TEAM_RESOLVE: _Route(
        TagTeamResolvePayload,
        EV_TAG_TEAM_RESOLVED,
        "character",
        "first_character_id",
        ("first_character_id", "second_character_id", "selected_character_id"),
    ),
    CMD_BLAZE_OF_GLORY_RESOLVE: _Route(
        BlazeOfGloryResolvePayload,
        EV_BLAZE_OF_GLORY_RESOLVED,
        "character",
        "character_id",
        ("character_id", "life_state_after"),
    ),
    CMD_DEATH_MOVE_RESOLVE: _Route(
        DeathMoveResolvePayload,
        EV_DEATH_MOVE_RESOLVED,
        "character",
        "character_id",
        ("character_id", "move", "life_state_after"),
    ),
    CMD_GM_MOVE_APPLY: _Route(
        GMMoveApplyPayload,
        EV_GM_MOVE_APPLIED,
        "campaign",
        None,
        ("move", "description", "severity", "source"),
    ),
}


def _decide_route(route: _Route, cmd: Command, now: Optional[NowFn]) -> Decision:
    p = _trim(_decode(cmd, route.payload_cls), *route.trim)
    entity_id = (
        getattr(p, route.id_field) if route.id_field is not None else cmd.campaign_id
    )
    return _emit(
        cmd,
        p,
        event_type=route.event_type,
        entity_type=route.entity_type,
        entity_id=entity_id,
        now=now,
    )


def handled_command_types() -> list[str]:
    return sorted([*_HANDLERS, *_ROUTES])


def decide(
    state: Optional[SnapshotState], cmd: Command, now: Optional[NowFn] = None
) -> Decision:
    """
    Чистая функция: (snapshot, command, clock) -> Decision.
    Snapshot не мутируется, время берётся только из now (или UTC wall clock).
    """
    snapshot, has_state = snapshot_or_default(state)

    handler = _HANDLERS.get(cmd.type)
    route = _ROUTES.get(cmd.type)
    try:
        if handler is not None:
            decision = handler(snapshot, has_state, cmd, now)
        elif route is not None:
            decision = _decide_route(route, cmd, now)
        else:
            decision = Decision.reject(
                REJ_COMMAND_TYPE_UNSUPPORTED,
                "command type is not supported by daggerheart decider",
            )
    except _DecodeFailed as exc:
        decision = exc.decision

    if decision.rejection is not None:
        logger.debug(
            "command rejected: type=%s campaign=%s code=%s",
            cmd.type,
            cmd.campaign_id,
            decision.rejection.code,
        )
    return decision
