from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from dhsim.core.engine.commands import (
    SYSTEM_PREFIX,
    CharacterStatePatchPayload,
    Command,
    PayloadBase,
)

# --- event types ---
EV_GM_FEAR_CHANGED = SYSTEM_PREFIX + "gm_fear_changed"
EV_CHARACTER_STATE_PATCHED = SYSTEM_PREFIX + "character_state_patched"
EV_CONDITION_CHANGED = SYSTEM_PREFIX + "condition_changed"
EV_LOADOUT_SWAPPED = SYSTEM_PREFIX + "loadout_swapped"
EV_REST_TAKEN = SYSTEM_PREFIX + "rest_taken"
EV_COUNTDOWN_CREATED = SYSTEM_PREFIX + "countdown_created"
EV_COUNTDOWN_UPDATED = SYSTEM_PREFIX + "countdown_updated"
EV_COUNTDOWN_DELETED = SYSTEM_PREFIX + "countdown_deleted"
EV_DAMAGE_APPLIED = SYSTEM_PREFIX + "damage_applied"
EV_ADVERSARY_DAMAGE_APPLIED = SYSTEM_PREFIX + "adversary_damage_applied"
EV_DOWNTIME_MOVE_APPLIED = SYSTEM_PREFIX + "downtime_move_applied"
EV_CHARACTER_TEMPORARY_ARMOR_APPLIED = (
    SYSTEM_PREFIX + "character_temporary_armor_applied"
)
EV_ADVERSARY_CONDITION_CHANGED = SYSTEM_PREFIX + "adversary_condition_changed"
EV_ADVERSARY_CREATED = SYSTEM_PREFIX + "adversary_created"
EV_ADVERSARY_UPDATED = SYSTEM_PREFIX + "adversary_updated"
EV_ADVERSARY_DELETED = SYSTEM_PREFIX + "adversary_deleted"
EV_ATTACK_RESOLVED = SYSTEM_PREFIX + "attack_resolved"
EV_REACTION_RESOLVED = SYSTEM_PREFIX + "reaction_resolved"
EV_DAMAGE_ROLL_RESOLVED = SYSTEM_PREFIX + "damage_roll_resolved"
EV_ADVERSARY_ROLL_RESOLVED = SYSTEM_PREFIX + "adversary_roll_resolved"
EV_ADVERSARY_ATTACK_RESOLVED = SYSTEM_PREFIX + "adversary_attack_resolved"
EV_ADVERSARY_ACTION_RESOLVED = SYSTEM_PREFIX + "adversary_action_resolved"
EV_GROUP_ACTION_RESOLVED = SYSTEM_PREFIX + "group_action_resolved"
EV_TAG_TEAM_RESOLVED = SYSTEM_PREFIX + "tag_team_resolved"
EV_BLAZE_OF_GLORY_RESOLVED = SYSTEM_PREFIX + "blaze_of_glory_resolved"
EV_DEATH_MOVE_RESOLVED = SYSTEM_PREFIX + "death_move_resolved"
EV_GM_MOVE_APPLIED = SYSTEM_PREFIX + "gm_move_applied"

# --- rejection codes (контракт для вызывающих, message только для людей) ---
REJ_GM_FEAR_AFTER_REQUIRED = "GM_FEAR_AFTER_REQUIRED"
REJ_GM_FEAR_OUT_OF_RANGE = "GM_FEAR_OUT_OF_RANGE"
REJ_GM_FEAR_UNCHANGED = "GM_FEAR_UNCHANGED"
REJ_CHARACTER_STATE_PATCH_NO_MUTATION = "CHARACTER_STATE_PATCH_NO_MUTATION"
REJ_CONDITION_CHANGE_NO_MUTATION = "CONDITION_CHANGE_NO_MUTATION"
REJ_CONDITION_CHANGE_REMOVE_MISSING = "CONDITION_CHANGE_REMOVE_MISSING"
REJ_COUNTDOWN_UPDATE_NO_MUTATION = "COUNTDOWN_UPDATE_NO_MUTATION"
REJ_COUNTDOWN_BEFORE_MISMATCH = "COUNTDOWN_BEFORE_MISMATCH"
REJ_DAMAGE_BEFORE_MISMATCH = "DAMAGE_BEFORE_MISMATCH"
REJ_DAMAGE_ARMOR_SPEND_LIMIT = "DAMAGE_ARMOR_SPEND_LIMIT"
REJ_ADVERSARY_DAMAGE_BEFORE_MISMATCH = "ADVERSARY_DAMAGE_BEFORE_MISMATCH"
REJ_ADVERSARY_CONDITION_NO_MUTATION = "ADVERSARY_CONDITION_NO_MUTATION"
REJ_ADVERSARY_CONDITION_REMOVE_MISSING = "ADVERSARY_CONDITION_REMOVE_MISSING"
REJ_ADVERSARY_CREATE_NO_MUTATION = "ADVERSARY_CREATE_NO_MUTATION"
REJ_PAYLOAD_DECODE_FAILED = "PAYLOAD_DECODE_FAILED"
REJ_COMMAND_TYPE_UNSUPPORTED = "COMMAND_TYPE_UNSUPPORTED"


class Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    campaign_id: str
    type: str
    timestamp: datetime

    actor_type: str = ""
    actor_id: str = ""
    system_id: str = ""
    system_version: str = ""

    entity_type: str = ""
    entity_id: str = ""

    payload_json: str = "{}"

    def payload(self) -> dict[str, Any]:
        return json.loads(self.payload_json)


class GMFearChangedPayload(PayloadBase):
    before: int
    after: int
    reason: str = ""


# hope/stress spend и patch пишут одно и то же событие
CharacterStatePatchedPayload = CharacterStatePatchPayload


@dataclass(frozen=True)
class Rejection:
    code: str
    message: str


@dataclass(frozen=True)
class Decision:
    """Либо events (не пусто), либо rejection. Третьего не бывает."""

    events: tuple[Event, ...] = ()
    rejection: Optional[Rejection] = None

    @property
    def ok(self) -> bool:
        return self.rejection is None

    @classmethod
    def accept(cls, *events: Event) -> "Decision":
        if not events:
            raise ValueError("accepted decision requires at least one event")
        return cls(events=tuple(events))

    @classmethod
    def reject(cls, code: str, message: str) -> "Decision":
        return cls(rejection=Rejection(code=code, message=message))


def encode_payload(payload: BaseModel) -> str:
    return payload.model_dump_json(by_alias=True, exclude_none=True)


def new_event(
    cmd: Command,
    *,
    type_: str,
    entity_type: str,
    entity_id: str,
    payload: BaseModel,
    timestamp: datetime,
) -> Event:
    return Event(
        campaign_id=cmd.campaign_id,
        type=type_,
        timestamp=timestamp,
        actor_type=cmd.actor_type,
        actor_id=cmd.actor_id,
        system_id=cmd.system_id,
        system_version=cmd.system_version,
        entity_type=entity_type,
        entity_id=entity_id,
        payload_json=encode_payload(payload),
    )
