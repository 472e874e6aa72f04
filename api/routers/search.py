from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_session
from api.pagination import Pagination, pagination_params, paginate_list
from services import stats_service

router = APIRouter(tags=["search"])


@router.get("/search", summary="Search persons by name and rounds by words, descriptions and clues")
async def search(
    response: Response,
    q: str = Query(..., min_length=1),
    pagination: Pagination = Depends(pagination_params),
    session: AsyncSession = Depends(get_session),
):
    results = await stats_service.search_all(session, q)
    return paginate_list(response, results, pagination)
