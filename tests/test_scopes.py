"""
Continent scope, week buckets and game config resolution.
"""
from datetime import date

import pytest

from flagquiz.core.errors import NotFoundError
from flagquiz.models.game import Difficulty
from flagquiz.services.scopes import GLOBAL_SCOPE_SENTINEL, ContinentScope, week_start
from flagquiz.services.templates import DEFAULT_CONFIG, GameConfig, _apply_overrides, resolve_game_config


def test_global_scope_uses_sentinel_only_in_storage():
    scope = ContinentScope.global_()

    assert scope.is_global
    assert scope.continent_id is None
    assert scope.to_storage() == GLOBAL_SCOPE_SENTINEL
    assert ContinentScope.from_storage(GLOBAL_SCOPE_SENTINEL) == scope
    assert scope.cache_part() == "global"


def test_continent_scope_roundtrip():
    scope = ContinentScope.for_continent(4)

    assert not scope.is_global
    assert ContinentScope.from_storage(scope.to_storage()) == scope
    assert ContinentScope.for_continent(None).is_global


@pytest.mark.parametrize(
    "day, monday",
    [
        (date(2026, 3, 9), date(2026, 3, 9)),
        (date(2026, 3, 15), date(2026, 3, 9)),
        (date(2026, 1, 1), date(2025, 12, 29)),
    ],
)
def test_week_start_is_monday(day, monday):
    assert week_start(day) == monday


def test_overrides_skip_missing_fields():
    base = GameConfig(number_of_flags=5, time_per_flag=15, difficulty=Difficulty.EASY, continent_id=1)

    config = _apply_overrides(base, {"time_per_flag": 40, "difficulty": "hard", "continent_id": None})

    assert config == GameConfig(number_of_flags=5, time_per_flag=40, difficulty=Difficulty.HARD, continent_id=1)
    assert config.time_limit == 200


def test_unknown_override_keys_are_ignored():
    assert _apply_overrides(DEFAULT_CONFIG, {"colour": "red"}) == DEFAULT_CONFIG


async def test_resolve_from_template(session, seeded):
    config = await resolve_game_config(session, template_id=3)
    assert config == GameConfig(number_of_flags=3, time_per_flag=20, difficulty=Difficulty.HARD)


async def test_resolve_missing_template(session, seeded):
    with pytest.raises(NotFoundError):
        await resolve_game_config(session, template_id=404)


async def test_resolve_defaults(session, seeded):
    assert await resolve_game_config(session) == DEFAULT_CONFIG
