from __future__ import annotations

from typing import Any, Dict


class RuleError(ValueError):
    """
    Ошибка резолвера (death move / rest): плохие входные данные
    или нарушенное жёсткое правило. Это не Rejection, повторять без исправления нельзя.
    """

    def __init__(self, code: str, message: str, **meta: Any) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.meta: Dict[str, Any] = meta

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


# death move
ERR_DEATH_MOVE_INVALID = "DEATH_MOVE_INVALID"
ERR_DEATH_MOVE_LEVEL_INVALID = "DEATH_MOVE_LEVEL_INVALID"
ERR_DEATH_MOVE_HP_MAX_INVALID = "DEATH_MOVE_HP_MAX_INVALID"
ERR_DEATH_MOVE_STRESS_MAX_INVALID = "DEATH_MOVE_STRESS_MAX_INVALID"
ERR_DEATH_MOVE_HOPE_MAX_INVALID = "DEATH_MOVE_HOPE_MAX_INVALID"
ERR_DEATH_MOVE_CLEAR_INVALID = "DEATH_MOVE_CLEAR_INVALID"
ERR_LIFE_STATE_INVALID = "LIFE_STATE_INVALID"

# rest
ERR_REST_TYPE_INVALID = "REST_TYPE_INVALID"
ERR_REST_SHORT_REST_LIMIT = "REST_SHORT_REST_LIMIT"
