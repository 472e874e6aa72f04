from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_session, cached
from services import leaderboard_service

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


async def _leaderboard(request, session, category, limit):
    entries = await cached(
        request,
        f"leaderboard_{category}",
        lambda: leaderboard_service.get_leaderboard_data(session, category, limit=None)
    )
    return {"category": category, "items": entries[:limit]}


@router.get("/scores", summary="Highest single-round score per player")
async def leaderboard_scores(
    request: Request,
    limit: int = Query(20, ge=1, le=500),
    session: AsyncSession = Depends(get_session),
):
    return await _leaderboard(request, session, "highest_score", limit)


@router.get("/streaks", summary="Longest single-round streak per player")
async def leaderboard_streaks(
    request: Request,
    limit: int = Query(20, ge=1, le=500),
    session: AsyncSession = Depends(get_session),
):
    return await _leaderboard(request, session, "longest_streak", limit)
