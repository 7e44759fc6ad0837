import json

import pytest

from dhsim.core.engine.commands import (
    ACTOR_TYPE_GM,
    CMD_ADVERSARY_CONDITION_CHANGE,
    CMD_ADVERSARY_CREATE,
    CMD_ADVERSARY_DAMAGE_APPLY,
    CMD_ADVERSARY_DELETE,
    CMD_ADVERSARY_UPDATE,
    CMD_CHARACTER_TEMPORARY_ARMOR_APPLY,
    CMD_DAMAGE_APPLY,
    CMD_DOWNTIME_MOVE_APPLY,
    Command,
)
from dhsim.core.engine.events import (
    EV_ADVERSARY_CONDITION_CHANGED,
    EV_ADVERSARY_CREATED,
    EV_ADVERSARY_DAMAGE_APPLIED,
    EV_ADVERSARY_DELETED,
    EV_ADVERSARY_UPDATED,
    EV_CHARACTER_TEMPORARY_ARMOR_APPLIED,
    EV_DAMAGE_APPLIED,
    EV_DOWNTIME_MOVE_APPLIED,
    REJ_ADVERSARY_CONDITION_NO_MUTATION,
    REJ_ADVERSARY_CONDITION_REMOVE_MISSING,
    REJ_ADVERSARY_CREATE_NO_MUTATION,
    REJ_ADVERSARY_DAMAGE_BEFORE_MISMATCH,
    REJ_DAMAGE_ARMOR_SPEND_LIMIT,
    REJ_DAMAGE_BEFORE_MISMATCH,
)
from dhsim.core.engine.rules.decider import decide
from dhsim.core.engine.state import (
    CONDITION_HIDDEN,
    CONDITION_RESTRAINED,
    CONDITION_VULNERABLE,
    AdversaryState,
    CharacterState,
    SnapshotState,
)

GOBLIN = dict(
    adversary_id="a1",
    name="Goblin",
    kind="minion",
    session_id="s1",
    notes="",
    hp=4,
    hp_max=4,
    stress=0,
    stress_max=2,
    evasion=10,
    major_threshold=3,
    severe_threshold=6,
    armor=1,
)


def _cmd(type_, payload, **kw) -> Command:
    return Command(
        campaign_id="camp-1",
        type=type_,
        actor_type=ACTOR_TYPE_GM,
        payload_json=json.dumps(payload),
        **kw,
    )


def _state() -> SnapshotState:
    goblin = {k: v for k, v in GOBLIN.items() if k != "adversary_id"}
    return SnapshotState(
        campaign_id="camp-1",
        character_states={
            "c1": CharacterState(hp=5, hp_max=6, armor=1, armor_max=3),
        },
        adversary_states={
            "a1": AdversaryState(conditions=[CONDITION_VULNERABLE], **goblin),
        },
    )


# ---------- damage.apply ----------


def test_damage_armor_spend_limit_is_checked_first():
    d = decide(
        _state(),
        _cmd(
            CMD_DAMAGE_APPLY,
            {"character_id": "c1", "hp_before": 99, "armor_spent": 2},
        ),
    )
    assert d.rejection.code == REJ_DAMAGE_ARMOR_SPEND_LIMIT


@pytest.mark.parametrize(
    "before",
    [{"hp_before": 4}, {"armor_before": 0}, {"hp_before": 5, "armor_before": 2}],
)
def test_damage_before_mismatch(before):
    d = decide(_state(), _cmd(CMD_DAMAGE_APPLY, {"character_id": "c1", **before}))
    assert d.rejection.code == REJ_DAMAGE_BEFORE_MISMATCH


def test_damage_apply_is_accepted():
    d = decide(
        _state(),
        _cmd(
            CMD_DAMAGE_APPLY,
            {
                "character_id": "c1",
                "hp_before": 5,
                "hp_after": 3,
                "armor_before": 1,
                "armor_after": 0,
                "armor_spent": 1,
                "severity": "major",
                "marks": 2,
                "damage_type": " physical ",
            },
        ),
    )

    ev = d.events[0]
    assert ev.type == EV_DAMAGE_APPLIED
    assert (ev.entity_type, ev.entity_id) == ("character", "c1")
    assert ev.payload()["damage_type"] == "physical"


def test_damage_without_snapshot_is_accepted():
    d = decide(None, _cmd(CMD_DAMAGE_APPLY, {"character_id": "c1", "hp_before": 99}))
    assert d.ok


# ---------- adversary_damage.apply ----------


def test_adversary_damage_before_mismatch():
    d = decide(
        _state(),
        _cmd(CMD_ADVERSARY_DAMAGE_APPLY, {"adversary_id": "a1", "hp_before": 3}),
    )
    assert d.rejection.code == REJ_ADVERSARY_DAMAGE_BEFORE_MISMATCH


def test_adversary_damage_armor_spend_limit():
    d = decide(
        _state(),
        _cmd(CMD_ADVERSARY_DAMAGE_APPLY, {"adversary_id": "a1", "armor_spent": 3}),
    )
    assert d.rejection.code == REJ_DAMAGE_ARMOR_SPEND_LIMIT


def test_adversary_damage_is_accepted():
    d = decide(
        _state(),
        _cmd(
            CMD_ADVERSARY_DAMAGE_APPLY,
            {"adversary_id": "a1", "hp_before": 4, "hp_after": 1, "armor_before": 1},
        ),
    )
    ev = d.events[0]
    assert ev.type == EV_ADVERSARY_DAMAGE_APPLIED
    assert (ev.entity_type, ev.entity_id) == ("adversary", "a1")


# ---------- adversary conditions ----------


def test_adversary_condition_remove_missing():
    d = decide(
        _state(),
        _cmd(
            CMD_ADVERSARY_CONDITION_CHANGE,
            {
                "adversary_id": "a1",
                "conditions_after": [],
                "removed": [CONDITION_RESTRAINED],
            },
        ),
    )
    assert d.rejection.code == REJ_ADVERSARY_CONDITION_REMOVE_MISSING


def test_adversary_condition_no_mutation():
    d = decide(
        _state(),
        _cmd(
            CMD_ADVERSARY_CONDITION_CHANGE,
            {"adversary_id": "a1", "conditions_after": ["VULNERABLE"]},
        ),
    )
    assert d.rejection.code == REJ_ADVERSARY_CONDITION_NO_MUTATION


def test_adversary_condition_change_is_accepted():
    d = decide(
        _state(),
        _cmd(
            CMD_ADVERSARY_CONDITION_CHANGE,
            {
                "adversary_id": "a1",
                "conditions_after": [CONDITION_HIDDEN, CONDITION_VULNERABLE],
                "added": [CONDITION_HIDDEN],
            },
        ),
    )
    assert d.events[0].type == EV_ADVERSARY_CONDITION_CHANGED
    assert d.events[0].entity_id == "a1"


# ---------- adversary lifecycle ----------


def test_adversary_create_identical_is_no_mutation():
    payload = dict(GOBLIN, name="  Goblin ", notes=" ")
    d = decide(_state(), _cmd(CMD_ADVERSARY_CREATE, payload))
    assert d.rejection.code == REJ_ADVERSARY_CREATE_NO_MUTATION


def test_adversary_create_with_difference_is_accepted():
    payload = dict(GOBLIN, hp=3)
    d = decide(_state(), _cmd(CMD_ADVERSARY_CREATE, payload))
    assert d.events[0].type == EV_ADVERSARY_CREATED
    assert (d.events[0].entity_type, d.events[0].entity_id) == ("adversary", "a1")


def test_adversary_create_new_is_accepted():
    payload = dict(GOBLIN, adversary_id="a2", name=" Ogre ")
    d = decide(_state(), _cmd(CMD_ADVERSARY_CREATE, payload))
    assert d.events[0].entity_id == "a2"
    assert d.events[0].payload()["name"] == "Ogre"


def test_adversary_update_and_delete_skip_existence_check():
    d = decide(_state(), _cmd(CMD_ADVERSARY_UPDATE, dict(GOBLIN, adversary_id="zz")))
    assert d.events[0].type == EV_ADVERSARY_UPDATED
    assert d.events[0].entity_id == "zz"

    d = decide(_state(), _cmd(CMD_ADVERSARY_DELETE, {"adversary_id": "zz"}))
    assert d.events[0].type == EV_ADVERSARY_DELETED


# ---------- downtime / temporary armor ----------


def test_downtime_move_and_temporary_armor():
    d = decide(
        _state(),
        _cmd(
            CMD_DOWNTIME_MOVE_APPLY,
            {"character_id": "c1", "move": " clear_all_stress ", "stress_after": 0},
        ),
    )
    assert d.events[0].type == EV_DOWNTIME_MOVE_APPLIED
    assert d.events[0].payload()["move"] == "clear_all_stress"

    d = decide(
        _state(),
        _cmd(
            CMD_CHARACTER_TEMPORARY_ARMOR_APPLY,
            {"character_id": "c1", "source": "spell", "duration": "short_rest", "amount": 2},
        ),
    )
    assert d.events[0].type == EV_CHARACTER_TEMPORARY_ARMOR_APPLIED
    assert (d.events[0].entity_type, d.events[0].entity_id) == ("character", "c1")
