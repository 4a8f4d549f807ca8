"""
Shared fixtures: a fresh sqlite database per test, seeded catalog and users.
"""
import os

# кэш в тестах выключен, настройки читаются при импорте
os.environ["REDIS_URL"] = ""
os.environ.setdefault("JWT_SECRET", "test-secret")

from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker

from flagquiz.core.db import configure_engine, dispose_engine
from flagquiz.core.security import create_jwt_token
from flagquiz.main import app
from flagquiz.models.base import Base
from flagquiz.models.catalog import Continent, Country, GameTemplate
from flagquiz.models.user import User
from flagquiz.models import game, stats  # noqa: F401


EUROPE, AFRICA, OCEANIA = 1, 2, 3

EUROPE_COUNTRIES = [
    "France", "Germany", "Italy", "Spain", "Portugal", "Poland", "Austria", "Belgium",
]
AFRICA_COUNTRIES = ["Kenya", "Ghana", "Egypt", "Morocco", "Senegal"]
OCEANIA_COUNTRIES = ["Fiji", "Samoa"]

ALICE, BOB, CAROL = 1, 2, 3  # CAROL без подтверждённой почты


@pytest.fixture
async def engine(tmp_path):
    engine = configure_engine(f"sqlite+aiosqlite:///{tmp_path / 'flagquiz.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await dispose_engine()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
async def seeded(session_factory):
    """Континенты, страны (одна неактивная), шаблоны и три пользователя."""
    async with session_factory() as s:
        s.add_all(
            [
                Continent(id=EUROPE, code="EU", name="Europe"),
                Continent(id=AFRICA, code="AF", name="Africa"),
                Continent(id=OCEANIA, code="OC", name="Oceania"),
            ]
        )

        next_id = 1
        for continent_id, names in (
            (EUROPE, EUROPE_COUNTRIES),
            (AFRICA, AFRICA_COUNTRIES),
            (OCEANIA, OCEANIA_COUNTRIES),
        ):
            for name in names:
                s.add(
                    Country(
                        id=next_id,
                        name=name,
                        continent_id=continent_id,
                        flag_url=f"https://flagcdn.com/{name.lower()}.svg",
                        is_active=True,
                    )
                )
                next_id += 1
        s.add(Country(id=next_id, name="Yugoslavia", continent_id=EUROPE, is_active=False))

        s.add_all(
            [
                GameTemplate(
                    id=1, name="Europe Easy", number_of_flags=5, time_per_flag=15,
                    difficulty="easy", continent_id=EUROPE, is_active=True,
                ),
                GameTemplate(
                    id=2, name="Retired", number_of_flags=5, time_per_flag=15,
                    difficulty="easy", continent_id=None, is_active=False,
                ),
                GameTemplate(
                    id=3, name="World Hard", number_of_flags=3, time_per_flag=20,
                    difficulty="hard", continent_id=None, is_active=True,
                ),
            ]
        )

        s.add_all(
            [
                User(id=ALICE, username="alice", email="alice@test.com", is_email_verified=True),
                User(id=BOB, username="bob", email="bob@test.com", is_email_verified=True),
                User(id=CAROL, username="carol", email="carol@test.com", is_email_verified=False),
            ]
        )
        await s.commit()

    return SimpleNamespace(
        europe=EUROPE, africa=AFRICA, oceania=OCEANIA,
        alice=ALICE, bob=BOB, carol=CAROL,
        inactive_country_id=next_id,
    )


@pytest.fixture
async def client(seeded):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth():
    def _headers(user_id: int) -> dict:
        token = create_jwt_token({"sub": str(user_id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers
