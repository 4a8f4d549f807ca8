from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flagquiz.models.catalog import Country
from flagquiz.services.question_builder import CountryRef


async def list_active_countries(
    session: AsyncSession,
    continent_id: Optional[int] = None,
) -> List[CountryRef]:
    stmt = select(Country.id, Country.name, Country.continent_id).where(Country.is_active.is_(True))
    if continent_id is not None:
        stmt = stmt.where(Country.continent_id == continent_id)

    rows = (await session.execute(stmt.order_by(Country.id))).all()
    return [CountryRef(id=r.id, name=r.name, continent_id=r.continent_id) for r in rows]
