from __future__ import annotations

from dataclasses import asdict, fields
from typing import Any, Dict, Mapping, Type, TypeVar, cast

from dhsim.core.engine.state import (
    AdversaryState,
    CharacterState,
    CountdownState,
    SnapshotState,
    normalize_conditions,
)

TState = TypeVar("TState")


# ---------- helpers ----------


def _build(state_cls: Type[TState], data: Mapping[str, Any]) -> TState:
    """Создать dataclass, отбросив ключи, которых нет в его полях."""
    allowed = {f.name for f in fields(cast(Any, state_cls))}
    return state_cls(**{k: v for k, v in data.items() if k in allowed})


def _as_dict(v: Any) -> Dict[str, Any]:
    if isinstance(v, Mapping):
        return {str(k): val for k, val in v.items()}
    return {}


def _as_list(v: Any) -> list[str]:
    if v is None:
        return []
    if isinstance(v, (list, tuple, set)):
        return [str(x) for x in v]
    return [str(v)]


def _entities(
    raw: Any, state_cls: Type[TState], id_field: str
) -> Dict[str, TState]:
    out: Dict[str, TState] = {}
    for key, value in _as_dict(raw).items():
        data = _as_dict(value)
        # id из ключа словаря, если в самой записи его нет
        data.setdefault(id_field, key)
        if "conditions" in data:
            data["conditions"] = normalize_conditions(_as_list(data["conditions"]))
        out[key] = _build(state_cls, data)
    return out


# ---------- SnapshotState codec ----------


def snapshot_state_to_dict(state: SnapshotState) -> dict[str, Any]:
    return asdict(state)


def snapshot_state_from_dict(d: Mapping[str, Any]) -> SnapshotState:
    """
    Восстанавливаем SnapshotState из dict (тело запроса / сохранённая проекция).
    Неизвестные ключи игнорируются.
    """
    dd = dict(d)
    dd["character_states"] = _entities(
        dd.get("character_states"), CharacterState, "character_id"
    )
    dd["adversary_states"] = _entities(
        dd.get("adversary_states"), AdversaryState, "adversary_id"
    )
    dd["countdown_states"] = _entities(
        dd.get("countdown_states"), CountdownState, "countdown_id"
    )
    return _build(SnapshotState, dd)
