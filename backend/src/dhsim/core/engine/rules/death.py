from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from dhsim.core.engine.dice import DiceRequest, DiceSpec, roll_dice
from dhsim.core.engine.rules.errors import (
    ERR_DEATH_MOVE_CLEAR_INVALID,
    ERR_DEATH_MOVE_HOPE_MAX_INVALID,
    ERR_DEATH_MOVE_HP_MAX_INVALID,
    ERR_DEATH_MOVE_INVALID,
    ERR_DEATH_MOVE_LEVEL_INVALID,
    ERR_DEATH_MOVE_STRESS_MAX_INVALID,
    ERR_LIFE_STATE_INVALID,
    RuleError,
)
from dhsim.core.engine.state import (
    HOPE_MAX,
    HOPE_MIN,
    LIFE_STATE_ALIVE,
    LIFE_STATE_BLAZE_OF_GLORY,
    LIFE_STATE_DEAD,
    LIFE_STATE_UNCONSCIOUS,
    LIFE_STATES,
    STRESS_MIN,
    clamp,
)

DEATH_MOVE_BLAZE_OF_GLORY = "blaze_of_glory"
DEATH_MOVE_AVOID_DEATH = "avoid_death"
DEATH_MOVE_RISK_IT_ALL = "risk_it_all"

DEATH_MOVES = (
    DEATH_MOVE_BLAZE_OF_GLORY,
    DEATH_MOVE_AVOID_DEATH,
    DEATH_MOVE_RISK_IT_ALL,
)

DEATH_DIE_SIDES = 12


@dataclass
class DeathMoveInput:
    move: str
    level: int
    hp: int
    hp_max: int
    hope: int
    hope_max: int
    stress: int
    stress_max: int
    seed: int = 0
    # только для risk_it_all при победе hope
    risk_it_all_hp_clear: Optional[int] = None
    risk_it_all_stress_clear: Optional[int] = None


@dataclass
class DeathMoveOutcome:
    move: str
    life_state: str
    hp_before: int
    hp_after: int
    hope_before: int
    hope_after: int
    hope_max_before: int
    hope_max_after: int
    stress_before: int
    stress_after: int
    hope_die: Optional[int] = None
    fear_die: Optional[int] = None
    scar_gained: bool = False
    hp_cleared: int = 0
    stress_cleared: int = 0


def normalize_death_move(value: str) -> str:
    move = (value or "").strip().lower()
    if not move:
        raise RuleError(ERR_DEATH_MOVE_INVALID, "death move is required")
    if move not in DEATH_MOVES:
        raise RuleError(
            ERR_DEATH_MOVE_INVALID, f"death move {value!r} is not supported", move=move
        )
    return move


def normalize_life_state(value: str) -> str:
    life_state = (value or "").strip().lower()
    if not life_state:
        raise RuleError(ERR_LIFE_STATE_INVALID, "life state is required")
    if life_state not in LIFE_STATES:
        raise RuleError(
            ERR_LIFE_STATE_INVALID,
            f"life state {value!r} is not supported",
            life_state=life_state,
        )
    return life_state


def _validate(inp: DeathMoveInput) -> str:
    move = normalize_death_move(inp.move)
    if inp.level < 1:
        raise RuleError(
            ERR_DEATH_MOVE_LEVEL_INVALID, "level must be at least 1", level=inp.level
        )
    if inp.hp_max < 0:
        raise RuleError(
            ERR_DEATH_MOVE_HP_MAX_INVALID,
            "hp_max must be non-negative",
            hp_max=inp.hp_max,
        )
    if inp.stress_max < 0:
        raise RuleError(
            ERR_DEATH_MOVE_STRESS_MAX_INVALID,
            "stress_max must be non-negative",
            stress_max=inp.stress_max,
        )
    if inp.hope_max < HOPE_MIN or inp.hope_max > HOPE_MAX:
        raise RuleError(
            ERR_DEATH_MOVE_HOPE_MAX_INVALID,
            f"hope_max must be in range {HOPE_MIN}..{HOPE_MAX}",
            hope_max=inp.hope_max,
        )
    if move == DEATH_MOVE_RISK_IT_ALL:
        for name, value in (
            ("hp_clear", inp.risk_it_all_hp_clear),
            ("stress_clear", inp.risk_it_all_stress_clear),
        ):
            if value is not None and value < 0:
                raise RuleError(
                    ERR_DEATH_MOVE_CLEAR_INVALID,
                    f"risk it all {name} must be non-negative",
                    **{name: value},
                )
    return move


def _roll_d12(seed: int, count: int) -> list[int]:
    result = roll_dice(
        DiceRequest(dice=[DiceSpec(sides=DEATH_DIE_SIDES, count=count)], seed=seed)
    )
    return result.rolls[0].results


def resolve_death_move(inp: DeathMoveInput) -> DeathMoveOutcome:
    """
    Death move персонажа на 0 HP.

    blaze_of_glory: без бросков, состояние blaze_of_glory.
    avoid_death: 1d12 (hope die), unconscious; die <= level -> scar, hope_max - 1.
    risk_it_all: 2d12 (hope, fear). Равенство -> полное восстановление,
    hope > fear -> очистка hp/stress в пределах hope die, hope < fear -> dead.
    """
    move = _validate(inp)

    out = DeathMoveOutcome(
        move=move,
        life_state=LIFE_STATE_ALIVE,
        hp_before=inp.hp,
        hp_after=inp.hp,
        hope_before=inp.hope,
        hope_after=inp.hope,
        hope_max_before=inp.hope_max,
        hope_max_after=inp.hope_max,
        stress_before=inp.stress,
        stress_after=inp.stress,
    )

    if move == DEATH_MOVE_BLAZE_OF_GLORY:
        out.life_state = LIFE_STATE_BLAZE_OF_GLORY
        return out

    if move == DEATH_MOVE_AVOID_DEATH:
        hope_die = _roll_d12(inp.seed, 1)[0]
        out.hope_die = hope_die
        out.life_state = LIFE_STATE_UNCONSCIOUS
        if hope_die <= inp.level:
            out.scar_gained = True
            out.hope_max_after = max(inp.hope_max - 1, HOPE_MIN)
        out.hope_after = clamp(inp.hope, HOPE_MIN, out.hope_max_after)
        return out

    # risk_it_all
    hope_die, fear_die = _roll_d12(inp.seed, 2)
    out.hope_die = hope_die
    out.fear_die = fear_die

    hp_clear = inp.risk_it_all_hp_clear
    stress_clear = inp.risk_it_all_stress_clear
    if (hp_clear or 0) + (stress_clear or 0) > hope_die:
        raise RuleError(
            ERR_DEATH_MOVE_CLEAR_INVALID,
            "risk it all clear amounts exceed the hope die",
            hope_die=hope_die,
            hp_clear=hp_clear,
            stress_clear=stress_clear,
        )

    if hope_die == fear_die:
        out.life_state = LIFE_STATE_ALIVE
        out.hp_after = inp.hp_max
        out.stress_after = STRESS_MIN
        out.hp_cleared = max(inp.hp_max - inp.hp, 0)
        out.stress_cleared = max(inp.stress - STRESS_MIN, 0)
        return out

    if hope_die < fear_die:
        out.life_state = LIFE_STATE_DEAD
        return out

    if hp_clear is None and stress_clear is None:
        hp_clear = hope_die
        stress_clear = 0
    hp_clear = hp_clear or 0
    stress_clear = stress_clear or 0

    out.life_state = LIFE_STATE_ALIVE
    out.hp_cleared = hp_clear
    out.stress_cleared = stress_clear
    out.hp_after = clamp(inp.hp + hp_clear, 0, inp.hp_max)
    out.stress_after = clamp(inp.stress - stress_clear, STRESS_MIN, inp.stress_max)
    return out
