from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flagquiz.core.errors import NotFoundError
from flagquiz.models.catalog import GameTemplate
from flagquiz.models.game import Difficulty


@dataclass(frozen=True)
class GameConfig:
    number_of_flags: int = 10
    time_per_flag: int = 30
    difficulty: Difficulty = Difficulty.MEDIUM
    continent_id: Optional[int] = None

    @property
    def time_limit(self) -> int:
        return self.number_of_flags * self.time_per_flag


DEFAULT_CONFIG = GameConfig()


def _apply_overrides(config: GameConfig, overrides: Optional[Dict[str, Any]]) -> GameConfig:
    """Поля из custom options перекрывают шаблон по одному (None = не задано)."""
    if not overrides:
        return config

    known = asdict(config).keys()
    changes = {k: v for k, v in overrides.items() if k in known and v is not None}
    if "difficulty" in changes:
        changes["difficulty"] = Difficulty(changes["difficulty"])
    return replace(config, **changes)


async def load_template_config(session: AsyncSession, template_id: int) -> GameConfig:
    template = await session.scalar(
        select(GameTemplate).where(
            GameTemplate.id == template_id,
            GameTemplate.is_active.is_(True),
        )
    )
    if not template:
        raise NotFoundError("Template not found or inactive")

    return GameConfig(
        number_of_flags=template.number_of_flags,
        time_per_flag=template.time_per_flag,
        difficulty=Difficulty(template.difficulty),
        continent_id=template.continent_id,
    )


async def resolve_game_config(
    session: AsyncSession,
    *,
    template_id: Optional[int] = None,
    custom_options: Optional[Dict[str, Any]] = None,
) -> GameConfig:
    """Шаблон -> custom options поверх него -> дефолты."""
    if template_id is not None:
        base = await load_template_config(session, template_id)
    else:
        base = DEFAULT_CONFIG
    return _apply_overrides(base, custom_options)
