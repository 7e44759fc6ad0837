from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

# --- Daggerheart resource ranges ---
HOPE_MIN = 0
HOPE_MAX = 6
HOPE_DEFAULT = 2
STRESS_MIN = 0
GM_FEAR_MIN = 0
GM_FEAR_MAX = 12
GM_FEAR_DEFAULT = 0

MAX_CONSECUTIVE_SHORT_RESTS = 3

LIFE_STATE_ALIVE = "alive"
LIFE_STATE_UNCONSCIOUS = "unconscious"
LIFE_STATE_BLAZE_OF_GLORY = "blaze_of_glory"
LIFE_STATE_DEAD = "dead"

LIFE_STATES = (
    LIFE_STATE_ALIVE,
    LIFE_STATE_UNCONSCIOUS,
    LIFE_STATE_BLAZE_OF_GLORY,
    LIFE_STATE_DEAD,
)

CONDITION_HIDDEN = "hidden"
CONDITION_RESTRAINED = "restrained"
CONDITION_VULNERABLE = "vulnerable"


@dataclass
class CharacterState:
    campaign_id: str = ""
    character_id: str = ""
    hp: int = 0
    hp_max: int = 0
    hope: int = HOPE_DEFAULT
    hope_max: int = HOPE_MAX
    stress: int = 0
    stress_max: int = 0
    armor: int = 0
    armor_max: int = 0
    # "" в проекции = alive (заполняется аксессором)
    life_state: str = ""
    conditions: List[str] = field(default_factory=list)


@dataclass
class AdversaryState:
    campaign_id: str = ""
    adversary_id: str = ""
    name: str = ""
    kind: str = ""
    session_id: str = ""
    notes: str = ""
    hp: int = 0
    hp_max: int = 0
    stress: int = 0
    stress_max: int = 0
    evasion: int = 0
    major_threshold: int = 0
    severe_threshold: int = 0
    armor: int = 0
    conditions: List[str] = field(default_factory=list)


@dataclass
class CountdownState:
    campaign_id: str = ""
    countdown_id: str = ""
    name: str = ""
    kind: str = ""
    current: int = 0
    max: int = 0
    direction: str = ""
    looping: bool = False


@dataclass
class SnapshotState:
    """
    Read-model кампании на момент решения.
    Decider его только читает; строит и обновляет проекция снаружи.
    """

    campaign_id: str = ""
    gm_fear: int = GM_FEAR_DEFAULT
    consecutive_short_rests: int = 0

    character_states: Dict[str, CharacterState] = field(default_factory=dict)
    adversary_states: Dict[str, AdversaryState] = field(default_factory=dict)
    countdown_states: Dict[str, CountdownState] = field(default_factory=dict)


def normalize_conditions(values: Iterable[str] | None) -> List[str]:
    """trim + lower, без пустых и дублей, отсортировано."""
    if not values:
        return []
    out = {str(v).strip().lower() for v in values}
    out.discard("")
    return sorted(out)


def conditions_equal(a: Iterable[str] | None, b: Iterable[str] | None) -> bool:
    return normalize_conditions(a) == normalize_conditions(b)


def clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(value, hi))
