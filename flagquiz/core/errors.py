from __future__ import annotations

from typing import Any, Optional


class GameError(Exception):
    """Базовая бизнес-ошибка: у каждой есть HTTP-статус и стабильный kind для клиента."""

    status_code: int = 400
    kind: str = "bad_request"

    def __init__(self, message: str, *, extra: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message, **self.extra}


class NotFoundError(GameError):
    status_code = 404
    kind = "not_found"


class ConflictError(GameError):
    status_code = 409
    kind = "conflict"


class GameInProgressError(ConflictError):
    # 400, а не 409: клиент показывает активную игру и предлагает её продолжить
    status_code = 400
    kind = "game_in_progress"

    def __init__(self, active_game: dict[str, Any]):
        super().__init__(
            "You already have a game in progress. Complete or abandon it before starting a new one.",
            extra={"active_game": active_game},
        )
        self.active_game = active_game


class AlreadyAnsweredError(ConflictError):
    kind = "already_answered"

    def __init__(self, question_id: Any):
        super().__init__("Question already answered", extra={"question_id": str(question_id)})


class InsufficientPoolError(GameError):
    kind = "insufficient_pool"

    def __init__(self, available: int, required: int):
        super().__init__(
            f"Not enough countries for this configuration: {available} available, {required} required. "
            "Lower number_of_flags or widen the continent scope.",
            extra={"available": available, "required": required},
        )
        self.available = available
        self.required = required
