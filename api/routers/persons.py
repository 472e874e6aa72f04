from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_session, not_found
from api.pagination import Pagination, pagination_params, paginated, paginate_list
from services import person_service, stats_service

router = APIRouter(prefix="/persons", tags=["persons"])

BREAKDOWN_PREFIX = "by-"

# Short slugs kept alongside the by-<dimension> form
BREAKDOWN_ALIASES = {
    "by-day": "day_of_week",
    "by-length": "answer_length",
}


def breakdown_dimension(slug):
    """Dimension named by a breakdown slug, or None when the slug is unknown"""
    if slug in BREAKDOWN_ALIASES:
        return BREAKDOWN_ALIASES[slug]
    if not slug.startswith(BREAKDOWN_PREFIX):
        return None
    dimension = slug[len(BREAKDOWN_PREFIX):].replace('-', '_')
    return dimension if dimension in stats_service.DIMENSIONS else None


async def _require_person(session, person_id):
    person = await person_service.get_person(session, person_id)
    if person is None:
        raise not_found("Person")
    return person


@router.get("", summary="List persons by name")
async def list_persons(
    response: Response,
    search: str = Query('', description="Case-insensitive name filter"),
    pagination: Pagination = Depends(pagination_params),
    session: AsyncSession = Depends(get_session),
):
    total = await person_service.count_persons(session, search)
    persons = await person_service.get_persons(
        session, search, limit=pagination.per_page, offset=pagination.offset
    )
    return paginated(response, [p.to_dict() for p in persons], total, pagination)


@router.get("/{person_id}", summary="One person with their roles")
async def get_person(person_id: int, session: AsyncSession = Depends(get_session)):
    person = await _require_person(session, person_id)
    detail = person.to_dict()
    detail["roles"] = await person_service.get_person_roles(session, person_id)
    return detail


@router.get("/{person_id}/rounds", summary="Rounds a person played, newest first")
async def person_rounds(
    person_id: int,
    response: Response,
    pagination: Pagination = Depends(pagination_params),
    session: AsyncSession = Depends(get_session),
):
    await _require_person(session, person_id)
    history = await stats_service.person_round_history(session, person_id)
    streaks = await stats_service.person_streak_per_round(session, person_id)
    for entry in history:
        entry["best_streak"] = streaks.get(entry["round_id"], 0)
    return paginate_list(response, history, pagination)


@router.get("/{person_id}/puzzles", summary="Puzzles a person constructed or edited, newest first")
async def person_puzzles(
    person_id: int,
    response: Response,
    pagination: Pagination = Depends(pagination_params),
    session: AsyncSession = Depends(get_session),
):
    await _require_person(session, person_id)
    puzzles = await stats_service.person_puzzles(session, person_id)
    return paginate_list(response, puzzles, pagination)


@router.get("/{person_id}/stats", summary="Aggregate statistics of a player")
async def person_stats(person_id: int, session: AsyncSession = Depends(get_session)):
    await _require_person(session, person_id)
    return await stats_service.person_stats(session, person_id)


@router.get("/{person_id}/stats/streaks", summary="Best streaks of a player by year and by round")
async def person_streaks(person_id: int, session: AsyncSession = Depends(get_session)):
    await _require_person(session, person_id)
    by_year = await stats_service.person_best_streaks_by_year(session, person_id)
    return {
        "by_year": [{"year": year, "best_streak": streak} for year, streak in sorted(by_year.items())],
        "correct_clue_rounds": await stats_service.person_correct_clue_rounds(session, person_id),
    }


@router.get("/{person_id}/stats/{breakdown}", summary="Accuracy of a player grouped by one dimension")
async def person_breakdown(person_id: int, breakdown: str, session: AsyncSession = Depends(get_session)):
    """breakdown is 'by-' followed by a dimension, e.g. by-day-of-week, or one of the short aliases"""
    await _require_person(session, person_id)

    dimension = breakdown_dimension(breakdown)
    if dimension is None:
        raise not_found("Breakdown")

    return {
        "dimension": dimension,
        "items": await stats_service.person_breakdown(session, person_id, dimension),
    }
