from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from dhsim.api.mappers import death_outcome_to_response, rest_outcome_to_response
from dhsim.api.schemas import (
    DeathMoveRequest,
    DeathMoveResponse,
    RestRequest,
    RestResponse,
)
from dhsim.core.engine.rules.death import DeathMoveInput, resolve_death_move
from dhsim.core.engine.rules.errors import RuleError
from dhsim.core.engine.rules.rest import RestState, resolve_rest_outcome

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rules", tags=["rules"])


def _unprocessable(exc: RuleError) -> HTTPException:
    logger.warning("rule error: %s", exc)
    return HTTPException(
        status_code=422, detail={"code": exc.code, "message": exc.message}
    )


@router.post("/death-move", response_model=DeathMoveResponse)
def death_move(req: DeathMoveRequest):
    try:
        outcome = resolve_death_move(DeathMoveInput(**req.model_dump()))
    except RuleError as exc:
        raise _unprocessable(exc) from exc
    return death_outcome_to_response(outcome)


@router.post("/rest", response_model=RestResponse)
def rest(req: RestRequest):
    try:
        outcome = resolve_rest_outcome(
            RestState(consecutive_short_rests=req.consecutive_short_rests),
            req.rest_type,
            req.interrupted,
            req.seed,
            req.party_size,
        )
    except RuleError as exc:
        raise _unprocessable(exc) from exc
    return rest_outcome_to_response(outcome)
