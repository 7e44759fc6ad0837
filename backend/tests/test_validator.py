from dhsim.core.engine.commands import CountdownUpdatePayload
from dhsim.core.engine.events import (
    REJ_COUNTDOWN_BEFORE_MISMATCH,
    REJ_COUNTDOWN_UPDATE_NO_MUTATION,
)
from dhsim.core.engine.rules.validator import (
    countdown_update_rejection,
    damage_before_mismatch,
    has_missing_condition_removals,
    snapshot_adversary_state,
    snapshot_character_state,
    snapshot_countdown_state,
)
from dhsim.core.engine.state import (
    AdversaryState,
    CharacterState,
    CountdownState,
    SnapshotState,
    normalize_conditions,
)


def _snapshot() -> SnapshotState:
    return SnapshotState(
        campaign_id="camp-1",
        character_states={"c1": CharacterState(hp=3, conditions=["hidden"])},
        adversary_states={"a1": AdversaryState(name="Goblin")},
        countdown_states={"cd1": CountdownState(current=2)},
    )


def test_character_accessor_fills_derived_fields():
    ch = snapshot_character_state(_snapshot(), "  c1 ")

    assert ch is not None
    assert ch.character_id == "c1"
    assert ch.campaign_id == "camp-1"
    assert ch.life_state == "alive"


def test_character_accessor_returns_copy():
    snap = _snapshot()

    ch = snapshot_character_state(snap, "c1")
    ch.hp = 0
    ch.conditions.append("vulnerable")

    assert snap.character_states["c1"].hp == 3
    assert snap.character_states["c1"].conditions == ["hidden"]
    assert snap.character_states["c1"].life_state == ""


def test_accessors_return_none_for_missing_or_blank_ids():
    snap = _snapshot()

    assert snapshot_character_state(snap, "nope") is None
    assert snapshot_character_state(snap, "   ") is None
    assert snapshot_adversary_state(snap, "") is None
    assert snapshot_countdown_state(snap, "cd2") is None


def test_adversary_and_countdown_accessors():
    snap = _snapshot()

    adv = snapshot_adversary_state(snap, "a1")
    cd = snapshot_countdown_state(snap, "cd1")

    assert (adv.adversary_id, adv.campaign_id, adv.name) == ("a1", "camp-1", "Goblin")
    assert (cd.countdown_id, cd.campaign_id, cd.current) == ("cd1", "camp-1", 2)


def test_normalize_conditions():
    assert normalize_conditions([" Hidden", "hidden", "", "VULNERABLE "]) == [
        "hidden",
        "vulnerable",
    ]
    assert normalize_conditions(None) == []


def test_has_missing_condition_removals():
    assert has_missing_condition_removals(["vulnerable"], ["shaken"])
    assert not has_missing_condition_removals(["vulnerable"], [" Vulnerable"])
    assert not has_missing_condition_removals(["vulnerable"], None)
    assert not has_missing_condition_removals([], [])


def test_damage_before_mismatch():
    assert not damage_before_mismatch(5, 1, None, None)
    assert not damage_before_mismatch(5, 1, 5, 1)
    assert damage_before_mismatch(5, 1, 4, None)
    assert damage_before_mismatch(5, 1, None, 0)


def test_countdown_update_rejection_order():
    snap = _snapshot()

    mismatch = countdown_update_rejection(
        snap, CountdownUpdatePayload(countdown_id="cd1", before=1, after=2)
    )
    no_op = countdown_update_rejection(
        snap, CountdownUpdatePayload(countdown_id="cd1", before=2, after=2)
    )
    ok = countdown_update_rejection(
        snap, CountdownUpdatePayload(countdown_id="cd1", before=2, after=3)
    )

    assert mismatch.code == REJ_COUNTDOWN_BEFORE_MISMATCH
    assert no_op.code == REJ_COUNTDOWN_UPDATE_NO_MUTATION
    assert ok is None
