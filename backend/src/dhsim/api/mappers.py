from __future__ import annotations

import json
from dataclasses import asdict

from dhsim import settings
from dhsim.api.schemas import (
    CommandDTO,
    DeathMoveResponse,
    DecisionResponse,
    EventDTO,
    RejectionDTO,
    RestResponse,
)
from dhsim.core.engine.commands import Command
from dhsim.core.engine.events import Decision, Event
from dhsim.core.engine.rules.death import DeathMoveOutcome
from dhsim.core.engine.rules.rest import RestOutcome


def command_from_dto(dto: CommandDTO) -> Command:
    return Command(
        campaign_id=dto.campaign_id,
        type=dto.type,
        actor_type=dto.actor_type,
        actor_id=dto.actor_id,
        system_id=dto.system_id or settings.SYSTEM_ID,
        system_version=dto.system_version or settings.SYSTEM_VERSION,
        entity_type=dto.entity_type,
        entity_id=dto.entity_id,
        payload_json=json.dumps(dto.payload),
    )


def event_to_dto(event: Event) -> EventDTO:
    return EventDTO(
        campaign_id=event.campaign_id,
        type=event.type,
        timestamp=event.timestamp,
        actor_type=event.actor_type,
        actor_id=event.actor_id,
        system_id=event.system_id,
        system_version=event.system_version,
        entity_type=event.entity_type,
        entity_id=event.entity_id,
        payload=event.payload(),
    )


def decision_to_response(decision: Decision) -> DecisionResponse:
    if decision.rejection is not None:
        return DecisionResponse(
            accepted=False,
            rejection=RejectionDTO(
                code=decision.rejection.code, message=decision.rejection.message
            ),
        )
    return DecisionResponse(
        accepted=True, events=[event_to_dto(e) for e in decision.events]
    )


def death_outcome_to_response(outcome: DeathMoveOutcome) -> DeathMoveResponse:
    return DeathMoveResponse(**asdict(outcome))


def rest_outcome_to_response(outcome: RestOutcome) -> RestResponse:
    return RestResponse(
        rest_type=outcome.rest_type.value,
        applied=outcome.applied,
        consecutive_short_rests=outcome.state.consecutive_short_rests,
        fear_die=outcome.fear_die,
        gm_fear_gain=outcome.gm_fear_gain,
        advance_countdown=outcome.advance_countdown,
        refresh_rest=outcome.refresh_rest,
        refresh_long_rest=outcome.refresh_long_rest,
    )
