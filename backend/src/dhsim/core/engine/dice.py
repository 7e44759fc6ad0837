from __future__ import annotations

from random import Random

from pydantic import BaseModel, Field


class DiceError(ValueError):
    pass


class DiceSpec(BaseModel):
    sides: int
    count: int = 1


class DiceRequest(BaseModel):
    dice: list[DiceSpec]
    seed: int = 0


class DiceRoll(BaseModel):
    sides: int
    results: list[int] = Field(default_factory=list)
    total: int = 0


class DiceResult(BaseModel):
    rolls: list[DiceRoll] = Field(default_factory=list)
    total: int = 0


def roll_dice(request: DiceRequest) -> DiceResult:
    """
    Детерминированный бросок: один Random(seed) на весь запрос,
    кости бросаются в порядке спецификаций.
    """
    if not request.dice:
        raise DiceError("at least one dice spec is required")
    for spec in request.dice:
        if spec.sides <= 0:
            raise DiceError(f"dice sides must be positive, got {spec.sides}")
        if spec.count <= 0:
            raise DiceError(f"dice count must be positive, got {spec.count}")

    rng = Random(request.seed)
    rolls: list[DiceRoll] = []
    for spec in request.dice:
        results = [rng.randint(1, spec.sides) for _ in range(spec.count)]
        rolls.append(DiceRoll(sides=spec.sides, results=results, total=sum(results)))

    return DiceResult(rolls=rolls, total=sum(r.total for r in rolls))
