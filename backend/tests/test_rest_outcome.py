import pytest

from dhsim.core.engine.dice import DiceRequest, DiceSpec, roll_dice
from dhsim.core.engine.rules.errors import (
    ERR_REST_SHORT_REST_LIMIT,
    ERR_REST_TYPE_INVALID,
    RuleError,
)
from dhsim.core.engine.rules.rest import RestState, RestType, resolve_rest_outcome


def _d4(seed):
    return roll_dice(DiceRequest(dice=[DiceSpec(sides=4)], seed=seed)).total


def test_short_rest_gains_d4_fear_and_counts():
    out = resolve_rest_outcome(RestState(0), RestType.SHORT, False, 11, 4)

    assert out.applied
    assert out.rest_type is RestType.SHORT
    assert out.fear_die == _d4(11)
    assert out.gm_fear_gain == _d4(11)
    assert out.state.consecutive_short_rests == 1
    assert out.refresh_rest and not out.refresh_long_rest
    assert not out.advance_countdown


def test_long_rest_adds_party_size_and_resets_counter():
    out = resolve_rest_outcome(RestState(2), RestType.LONG, False, 5, 3)

    assert out.applied
    assert out.rest_type is RestType.LONG
    assert out.gm_fear_gain == _d4(5) + 3
    assert out.advance_countdown
    assert out.refresh_rest and out.refresh_long_rest
    assert out.state.consecutive_short_rests == 0


def test_long_rest_negative_party_size_counts_as_zero():
    out = resolve_rest_outcome(RestState(0), "long", False, 5, -2)
    assert out.gm_fear_gain == _d4(5)


def test_interrupted_short_rest_has_no_effect():
    state = RestState(1)

    out = resolve_rest_outcome(state, RestType.SHORT, True, 5, 3)

    assert not out.applied
    assert out.state == state
    assert out.fear_die is None
    assert out.gm_fear_gain == 0
    assert not out.refresh_rest


def test_interrupted_long_rest_downgrades_to_short():
    out = resolve_rest_outcome(RestState(1), RestType.LONG, True, 9, 3)

    assert out.applied
    assert out.rest_type is RestType.SHORT
    assert out.gm_fear_gain == _d4(9)
    assert out.state.consecutive_short_rests == 2
    assert not out.advance_countdown
    assert not out.refresh_long_rest


def test_fourth_short_rest_in_a_row_is_an_error():
    state = RestState(0)
    for seed in (1, 2, 3):
        state = resolve_rest_outcome(state, RestType.SHORT, False, seed, 2).state
    assert state.consecutive_short_rests == 3

    with pytest.raises(RuleError) as exc:
        resolve_rest_outcome(state, RestType.SHORT, False, 4, 2)
    assert exc.value.code == ERR_REST_SHORT_REST_LIMIT


def test_short_rest_cap_applies_even_if_interrupted():
    with pytest.raises(RuleError):
        resolve_rest_outcome(RestState(3), RestType.SHORT, True, 1, 2)


def test_long_rest_between_short_rests_resets_cap():
    state = RestState(3)

    state = resolve_rest_outcome(state, RestType.LONG, False, 1, 2).state
    assert state.consecutive_short_rests == 0

    out = resolve_rest_outcome(state, RestType.SHORT, False, 2, 2)
    assert out.state.consecutive_short_rests == 1


def test_rest_is_deterministic_for_seed():
    a = resolve_rest_outcome(RestState(0), RestType.LONG, False, 77, 4)
    b = resolve_rest_outcome(RestState(0), RestType.LONG, False, 77, 4)
    assert a == b


def test_rest_type_is_normalized():
    out = resolve_rest_outcome(RestState(0), " LONG ", False, 1, 0)
    assert out.rest_type is RestType.LONG


def test_unknown_rest_type_is_an_error():
    with pytest.raises(RuleError) as exc:
        resolve_rest_outcome(RestState(0), "nap", False, 1, 0)
    assert exc.value.code == ERR_REST_TYPE_INVALID
