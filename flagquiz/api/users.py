from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from flagquiz.core.db import get_session
from flagquiz.schemas.user import UserStatistics
from flagquiz.services.users import get_user_statistics


router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}/statistics", response_model=UserStatistics)
async def user_statistics(
    user_id: int,
    session: AsyncSession = Depends(get_session),
):
    return await get_user_statistics(session, user_id)
