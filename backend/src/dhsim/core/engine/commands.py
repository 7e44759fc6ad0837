# backend/src/dhsim/core/engine/commands.py

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from dhsim.core.engine.dice import DiceRoll

SYSTEM_PREFIX = "sys.daggerheart."

ACTOR_TYPE_SYSTEM = "system"
ACTOR_TYPE_PARTICIPANT = "participant"
ACTOR_TYPE_GM = "gm"

# --- command types ---
CMD_GM_FEAR_SET = SYSTEM_PREFIX + "gm_fear.set"
CMD_CHARACTER_STATE_PATCH = SYSTEM_PREFIX + "character_state.patch"
CMD_CONDITION_CHANGE = SYSTEM_PREFIX + "condition.change"
CMD_HOPE_SPEND = SYSTEM_PREFIX + "hope.spend"
CMD_STRESS_SPEND = SYSTEM_PREFIX + "stress.spend"
CMD_LOADOUT_SWAP = SYSTEM_PREFIX + "loadout.swap"
CMD_REST_TAKE = SYSTEM_PREFIX + "rest.take"
CMD_COUNTDOWN_CREATE = SYSTEM_PREFIX + "countdown.create"
CMD_COUNTDOWN_UPDATE = SYSTEM_PREFIX + "countdown.update"
CMD_COUNTDOWN_DELETE = SYSTEM_PREFIX + "countdown.delete"
CMD_DAMAGE_APPLY = SYSTEM_PREFIX + "damage.apply"
CMD_ADVERSARY_DAMAGE_APPLY = SYSTEM_PREFIX + "adversary_damage.apply"
CMD_DOWNTIME_MOVE_APPLY = SYSTEM_PREFIX + "downtime_move.apply"
CMD_CHARACTER_TEMPORARY_ARMOR_APPLY = SYSTEM_PREFIX + "character_temporary_armor.apply"
CMD_ADVERSARY_CONDITION_CHANGE = SYSTEM_PREFIX + "adversary_condition.change"
CMD_ADVERSARY_CREATE = SYSTEM_PREFIX + "adversary.create"
CMD_ADVERSARY_UPDATE = SYSTEM_PREFIX + "adversary.update"
CMD_ADVERSARY_DELETE = SYSTEM_PREFIX + "adversary.delete"
CMD_ATTACK_RESOLVE = SYSTEM_PREFIX + "attack.resolve"
CMD_REACTION_RESOLVE = SYSTEM_PREFIX + "reaction.resolve"
CMD_DAMAGE_ROLL_RESOLVE = SYSTEM_PREFIX + "damage_roll.resolve"
CMD_ADVERSARY_ROLL_RESOLVE = SYSTEM_PREFIX + "adversary_roll.resolve"
CMD_ADVERSARY_ATTACK_RESOLVE = SYSTEM_PREFIX + "adversary_attack.resolve"
CMD_ADVERSARY_ACTION_RESOLVE = SYSTEM_PREFIX + "adversary_action.resolve"
CMD_GROUP_ACTION_RESOLVE = SYSTEM_PREFIX + "group_action.resolve"
CMD_TAG_TEAM_RESOLVE = SYSTEM_PREFIX + "tag_team.resolve"
CMD_BLAZE_OF_GLORY_RESOLVE = SYSTEM_PREFIX + "blaze_of_glory.resolve"
CMD_DEATH_MOVE_RESOLVE = SYSTEM_PREFIX + "death_move.resolve"
CMD_GM_MOVE_APPLY = SYSTEM_PREFIX + "gm_move.apply"


class Command(BaseModel):
    """Входящая команда. payload_json декодирует decider под конкретный type."""

    model_config = ConfigDict(frozen=True)

    campaign_id: str
    type: str
    actor_type: str = ACTOR_TYPE_SYSTEM
    actor_id: str = ""
    system_id: str = ""
    system_version: str = ""
    entity_type: str = ""
    entity_id: str = ""
    payload_json: Union[str, bytes] = "{}"


# --- payloads ---


class PayloadBase(BaseModel):
    # strict: неверный JSON-тип поля = ошибка декодирования, без приведения "4" -> 4
    model_config = ConfigDict(strict=True, extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _null_is_absent(cls, data: Any) -> Any:
        # null (весь payload или поле) = значение по умолчанию
        if data is None:
            return {}
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


RollSeq = Optional[int]


class GMFearSetPayload(PayloadBase):
    after: Optional[int] = None
    reason: str = ""


class CharacterStatePatchPayload(PayloadBase):
    character_id: str = ""
    hp_before: Optional[int] = None
    hp_after: Optional[int] = None
    hope_before: Optional[int] = None
    hope_after: Optional[int] = None
    hope_max_before: Optional[int] = None
    hope_max_after: Optional[int] = None
    stress_before: Optional[int] = None
    stress_after: Optional[int] = None
    armor_before: Optional[int] = None
    armor_after: Optional[int] = None
    life_state_before: Optional[str] = None
    life_state_after: Optional[str] = None


class ConditionChangePayload(PayloadBase):
    character_id: str = ""
    conditions_before: Optional[list[str]] = None
    conditions_after: list[str] = Field(default_factory=list)
    added: Optional[list[str]] = None
    removed: Optional[list[str]] = None
    source: str = ""
    roll_seq: RollSeq = Field(default=None, ge=0)


class AdversaryConditionChangePayload(PayloadBase):
    adversary_id: str = ""
    conditions_before: Optional[list[str]] = None
    conditions_after: list[str] = Field(default_factory=list)
    added: Optional[list[str]] = None
    removed: Optional[list[str]] = None
    source: str = ""
    roll_seq: RollSeq = Field(default=None, ge=0)


class HopeSpendPayload(PayloadBase):
    character_id: str = ""
    amount: int = 0
    before: int = 0
    after: int = 0
    roll_seq: RollSeq = Field(default=None, ge=0)
    source: str = ""


class StressSpendPayload(PayloadBase):
    character_id: str = ""
    amount: int = 0
    before: int = 0
    after: int = 0
    roll_seq: RollSeq = Field(default=None, ge=0)
    source: str = ""


class LoadoutSwapPayload(PayloadBase):
    character_id: str = ""
    card_id: str = ""
    from_: str = Field(default="", alias="from")
    to: str = ""
    recall_cost: int = 0
    stress_before: Optional[int] = None
    stress_after: Optional[int] = None


class CountdownCreatePayload(PayloadBase):
    countdown_id: str = ""
    name: str = ""
    kind: str = ""
    current: int = 0
    max: int = 0
    direction: str = ""
    looping: bool = False


class CountdownUpdatePayload(PayloadBase):
    countdown_id: str = ""
    before: int = 0
    after: int = 0
    delta: int = 0
    looped: bool = False
    reason: str = ""


class CountdownDeletePayload(PayloadBase):
    countdown_id: str = ""
    reason: str = ""


class RestCharacterStatePatch(PayloadBase):
    character_id: str = ""
    hope_before: Optional[int] = None
    hope_after: Optional[int] = None
    stress_before: Optional[int] = None
    stress_after: Optional[int] = None
    armor_before: Optional[int] = None
    armor_after: Optional[int] = None


class RestTakePayload(PayloadBase):
    rest_type: str = ""
    interrupted: bool = False
    gm_fear_before: int = 0
    gm_fear_after: int = 0
    short_rests_before: int = 0
    short_rests_after: int = 0
    refresh_rest: bool = False
    refresh_long_rest: bool = False
    character_states: Optional[list[RestCharacterStatePatch]] = None
    # long rest может продвинуть долгосрочный countdown тем же решением
    long_term_countdown: Optional[CountdownUpdatePayload] = None


class _DamageApplyFields(PayloadBase):
    hp_before: Optional[int] = None
    hp_after: Optional[int] = None
    armor_before: Optional[int] = None
    armor_after: Optional[int] = None
    armor_spent: int = 0
    severity: str = ""
    marks: int = 0
    damage_type: str = ""
    roll_seq: RollSeq = Field(default=None, ge=0)
    resist_physical: bool = False
    resist_magic: bool = False
    immune_physical: bool = False
    immune_magic: bool = False
    direct: bool = False
    massive_damage: bool = False
    mitigated: bool = False
    source: str = ""
    source_character_ids: Optional[list[str]] = None


class DamageApplyPayload(_DamageApplyFields):
    character_id: str = ""


class AdversaryDamageApplyPayload(_DamageApplyFields):
    adversary_id: str = ""


class DowntimeMoveApplyPayload(PayloadBase):
    character_id: str = ""
    move: str = ""
    hope_before: Optional[int] = None
    hope_after: Optional[int] = None
    stress_before: Optional[int] = None
    stress_after: Optional[int] = None
    armor_before: Optional[int] = None
    armor_after: Optional[int] = None


class CharacterTemporaryArmorApplyPayload(PayloadBase):
    character_id: str = ""
    source: str = ""
    duration: str = ""
    amount: int = 0
    source_id: str = ""


class _AdversaryFields(PayloadBase):
    adversary_id: str = ""
    name: str = ""
    kind: str = ""
    session_id: str = ""
    notes: str = ""
    hp: int = 0
    hp_max: int = 0
    stress: int = 0
    stress_max: int = 0
    evasion: int = 0
    major_threshold: int = 0
    severe_threshold: int = 0
    armor: int = 0


class AdversaryCreatePayload(_AdversaryFields):
    pass


class AdversaryUpdatePayload(_AdversaryFields):
    pass


class AdversaryDeletePayload(PayloadBase):
    adversary_id: str = ""
    reason: str = ""


# --- resolution payloads (только decode + trim) ---


class RollRngInfo(PayloadBase):
    seed_used: int = Field(default=0, ge=0)
    rng_algo: str = ""
    seed_source: str = ""
    roll_mode: str = ""


class AttackResolvePayload(PayloadBase):
    character_id: str = ""
    roll_seq: int = Field(default=0, ge=0)
    targets: list[str] = Field(default_factory=list)
    outcome: str = ""
    success: bool = False
    crit: bool = False
    flavor: str = ""


class ReactionResolvePayload(PayloadBase):
    character_id: str = ""
    roll_seq: int = Field(default=0, ge=0)
    outcome: str = ""
    success: bool = False
    crit: bool = False
    crit_negates_effects: bool = False
    effects_negated: bool = False


class DamageRollResolvePayload(PayloadBase):
    character_id: str = ""
    roll_seq: int = Field(default=0, ge=0)
    rolls: list[DiceRoll] = Field(default_factory=list)
    base_total: int = 0
    modifier: int = 0
    critical_bonus: int = 0
    total: int = 0
    critical: bool = False
    rng: RollRngInfo = Field(default_factory=RollRngInfo)


class AdversaryRollResolvePayload(PayloadBase):
    adversary_id: str = ""
    roll_seq: int = Field(default=0, ge=0)
    rolls: list[int] = Field(default_factory=list)
    roll: int = 0
    modifier: int = 0
    total: int = 0
    advantage: int = 0
    disadvantage: int = 0


class AdversaryAttackResolvePayload(PayloadBase):
    adversary_id: str = ""
    roll_seq: int = Field(default=0, ge=0)
    targets: list[str] = Field(default_factory=list)
    roll: int = 0
    modifier: int = 0
    total: int = 0
    difficulty: int = 0
    success: bool = False
    crit: bool = False


class AdversaryActionResolvePayload(PayloadBase):
    adversary_id: str = ""
    roll_seq: int = Field(default=0, ge=0)
    difficulty: int = 0
    dramatic: bool = False
    auto_success: bool = False
    roll: int = 0
    modifier: int = 0
    total: int = 0
    success: bool = False
    rng: Optional[RollRngInfo] = None


class GroupActionSupporterRoll(PayloadBase):
    character_id: str = ""
    roll_seq: int = Field(default=0, ge=0)
    success: bool = False


class GroupActionResolvePayload(PayloadBase):
    leader_character_id: str = ""
    leader_roll_seq: int = Field(default=0, ge=0)
    supporters: Optional[list[GroupActionSupporterRoll]] = None
    support_successes: int = 0
    support_failures: int = 0
    support_modifier: int = 0


class TagTeamResolvePayload(PayloadBase):
    first_character_id: str = ""
    first_roll_seq: int = Field(default=0, ge=0)
    second_character_id: str = ""
    second_roll_seq: int = Field(default=0, ge=0)
    selected_character_id: str = ""
    selected_roll_seq: int = Field(default=0, ge=0)


class BlazeOfGloryResolvePayload(PayloadBase):
    character_id: str = ""
    life_state_before: Optional[str] = None
    life_state_after: str = ""


class DeathMoveResolvePayload(PayloadBase):
    character_id: str = ""
    move: str = ""
    life_state_before: Optional[str] = None
    life_state_after: str = ""
    hp_before: Optional[int] = None
    hp_after: Optional[int] = None
    hope_before: Optional[int] = None
    hope_after: Optional[int] = None
    hope_max_before: Optional[int] = None
    hope_max_after: Optional[int] = None
    stress_before: Optional[int] = None
    stress_after: Optional[int] = None
    hope_die: Optional[int] = None
    fear_die: Optional[int] = None
    scar_gained: bool = False
    hp_cleared: int = 0
    stress_cleared: int = 0


class GMMoveApplyPayload(PayloadBase):
    move: str = ""
    description: str = ""
    fear_spent: int = 0
    severity: str = ""
    source: str = ""
