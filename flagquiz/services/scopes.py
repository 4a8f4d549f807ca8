from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional


# в таблицах статистики/лидербордов 0 означает "глобально"
GLOBAL_SCOPE_SENTINEL = 0


@dataclass(frozen=True)
class ContinentScope:
    """Global или конкретный континент.

    Доменный тип честный (None = глобально), sentinel живёт только в хранилище.
    """

    continent_id: Optional[int] = None

    @classmethod
    def global_(cls) -> "ContinentScope":
        return cls(None)

    @classmethod
    def for_continent(cls, continent_id: Optional[int]) -> "ContinentScope":
        return cls(continent_id or None)

    @classmethod
    def from_storage(cls, value: int) -> "ContinentScope":
        return cls(None if value == GLOBAL_SCOPE_SENTINEL else value)

    @property
    def is_global(self) -> bool:
        return self.continent_id is None

    def to_storage(self) -> int:
        return GLOBAL_SCOPE_SENTINEL if self.continent_id is None else self.continent_id

    def cache_part(self) -> str:
        return "global" if self.continent_id is None else str(self.continent_id)


def week_start(day: date) -> date:
    # недели начинаются с понедельника
    return day - timedelta(days=day.weekday())
