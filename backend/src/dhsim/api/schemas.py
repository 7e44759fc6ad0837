from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

RestTypeLiteral = Literal["short", "long"]


# ---- decisions ----


class CommandDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    campaign_id: str = Field(min_length=1)
    type: str = Field(min_length=1)
    actor_type: str = "system"
    actor_id: str = ""
    # пусто -> берём из settings
    system_id: str = ""
    system_version: str = ""
    entity_type: str = ""
    entity_id: str = ""
    # payload передаём объектом, decider получает его как JSON
    payload: Dict[str, Any] = Field(default_factory=dict)


class DecideRequest(BaseModel):
    command: CommandDTO
    # None -> команда без snapshot (дефолтное состояние)
    snapshot: Optional[Dict[str, Any]] = None
    now: Optional[datetime] = None


class EventDTO(BaseModel):
    campaign_id: str
    type: str
    timestamp: datetime
    actor_type: str
    actor_id: str
    system_id: str
    system_version: str
    entity_type: str
    entity_id: str
    payload: Dict[str, Any]


class RejectionDTO(BaseModel):
    code: str
    message: str


class DecisionResponse(BaseModel):
    accepted: bool
    events: List[EventDTO] = Field(default_factory=list)
    rejection: Optional[RejectionDTO] = None


# ---- rules ----


class DeathMoveRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    move: str
    level: int
    hp: int = 0
    hp_max: int
    hope: int = 0
    hope_max: int
    stress: int = 0
    stress_max: int
    seed: int = 0
    risk_it_all_hp_clear: Optional[int] = None
    risk_it_all_stress_clear: Optional[int] = None


class DeathMoveResponse(BaseModel):
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


class RestRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rest_type: str
    interrupted: bool = False
    consecutive_short_rests: int = Field(default=0, ge=0)
    seed: int = 0
    party_size: int = 0


class RestResponse(BaseModel):
    rest_type: RestTypeLiteral
    applied: bool
    consecutive_short_rests: int
    fear_die: Optional[int] = None
    gm_fear_gain: int = 0
    advance_countdown: bool = False
    refresh_rest: bool = False
    refresh_long_rest: bool = False
