from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from dhsim.core.engine.dice import DiceRequest, DiceSpec, roll_dice
from dhsim.core.engine.rules.errors import (
    ERR_REST_SHORT_REST_LIMIT,
    ERR_REST_TYPE_INVALID,
    RuleError,
)
from dhsim.core.engine.state import MAX_CONSECUTIVE_SHORT_RESTS

REST_FEAR_DIE_SIDES = 4


class RestType(str, Enum):
    SHORT = "short"
    LONG = "long"


@dataclass(frozen=True)
class RestState:
    consecutive_short_rests: int = 0


@dataclass
class RestOutcome:
    rest_type: RestType
    applied: bool
    state: RestState
    fear_die: Optional[int] = None
    gm_fear_gain: int = 0
    advance_countdown: bool = False
    refresh_rest: bool = False
    refresh_long_rest: bool = False


def normalize_rest_type(value: Union[str, RestType]) -> RestType:
    if isinstance(value, RestType):
        return value
    try:
        return RestType((value or "").strip().lower())
    except ValueError:
        raise RuleError(
            ERR_REST_TYPE_INVALID, f"rest type {value!r} is not supported"
        ) from None


def resolve_rest_outcome(
    state: RestState,
    rest_type: Union[str, RestType],
    interrupted: bool,
    seed: int,
    party_size: int,
) -> RestOutcome:
    """
    Short: +1d4 GM fear, счётчик short rest +1 (не больше трёх подряд).
    Long: +1d4 + party_size GM fear, countdown продвигается, счётчик в 0.
    Прерванный long считается short, прерванный short не применяется.
    """
    requested = normalize_rest_type(rest_type)

    if (
        requested is RestType.SHORT
        and state.consecutive_short_rests >= MAX_CONSECUTIVE_SHORT_RESTS
    ):
        raise RuleError(
            ERR_REST_SHORT_REST_LIMIT,
            f"at most {MAX_CONSECUTIVE_SHORT_RESTS} consecutive short rests",
            consecutive_short_rests=state.consecutive_short_rests,
        )

    if requested is RestType.SHORT and interrupted:
        return RestOutcome(rest_type=requested, applied=False, state=state)

    effective = RestType.SHORT if interrupted else requested

    fear_die = roll_dice(
        DiceRequest(dice=[DiceSpec(sides=REST_FEAR_DIE_SIDES)], seed=seed)
    ).total

    if effective is RestType.LONG:
        return RestOutcome(
            rest_type=effective,
            applied=True,
            state=RestState(consecutive_short_rests=0),
            fear_die=fear_die,
            gm_fear_gain=fear_die + max(party_size, 0),
            advance_countdown=True,
            refresh_rest=True,
            refresh_long_rest=True,
        )

    return RestOutcome(
        rest_type=effective,
        applied=True,
        state=RestState(consecutive_short_rests=state.consecutive_short_rests + 1),
        fear_die=fear_die,
        gm_fear_gain=fear_die,
        refresh_rest=True,
    )
