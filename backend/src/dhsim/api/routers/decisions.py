from __future__ import annotations

import logging

from fastapi import APIRouter

from dhsim.api.mappers import command_from_dto, decision_to_response
from dhsim.api.schemas import DecideRequest, DecisionResponse
from dhsim.core.engine.rules.decider import decide
from dhsim.core.persistence.state_codec import snapshot_state_from_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/decisions", tags=["decisions"])


@router.post("", response_model=DecisionResponse)
def create_decision(req: DecideRequest):
    """
    Rejection: нормальный ответ (200), а не ошибка HTTP.
    Сервис ничего не хранит: snapshot приходит в запросе.
    """
    cmd = command_from_dto(req.command)
    snapshot = (
        snapshot_state_from_dict(req.snapshot) if req.snapshot is not None else None
    )
    now = (lambda: req.now) if req.now is not None else None

    decision = decide(snapshot, cmd, now=now)
    logger.info(
        "decision: type=%s campaign=%s accepted=%s events=%d",
        cmd.type,
        cmd.campaign_id,
        decision.ok,
        len(decision.events),
    )
    return decision_to_response(decision)
