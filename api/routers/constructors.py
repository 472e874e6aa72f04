from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_session, not_found
from api.pagination import Pagination, pagination_params, paginate_list
from services import person_service, stats_service

router = APIRouter(tags=["constructors", "editors"])


@router.get("/constructors", summary="Constructors with puzzle and guess totals")
async def list_constructors(
    response: Response,
    pagination: Pagination = Depends(pagination_params),
    session: AsyncSession = Depends(get_session),
):
    return paginate_list(response, await stats_service.constructors_with_stats(session), pagination)


@router.get("/constructors/{person_id}", summary="One constructor with puzzles, editors and per-player results")
async def get_constructor(person_id: int, session: AsyncSession = Depends(get_session)):
    person = await person_service.get_person(session, person_id)
    if person is None or not await person_service.is_constructor(session, person_id):
        raise not_found("Constructor")

    return {
        **person.to_dict(),
        "stats": await stats_service.constructor_stats(session, person_id),
        "puzzles": await stats_service.constructor_puzzles(session, person_id),
        "editors": await stats_service.constructor_editor_results(session, person_id),
        "players": await stats_service.constructor_player_results(session, person_id),
    }


@router.get("/editors", summary="Editors with puzzle and guess totals")
async def list_editors(
    response: Response,
    pagination: Pagination = Depends(pagination_params),
    session: AsyncSession = Depends(get_session),
):
    return paginate_list(response, await stats_service.editors_with_stats(session), pagination)


@router.get("/editors/{person_id}", summary="One editor with puzzles, constructors and per-player results")
async def get_editor(person_id: int, session: AsyncSession = Depends(get_session)):
    person = await person_service.get_person(session, person_id)
    if person is None or not await person_service.is_editor(session, person_id):
        raise not_found("Editor")

    return {
        **person.to_dict(),
        "stats": await stats_service.editor_stats(session, person_id),
        "puzzles": await stats_service.editor_puzzles(session, person_id),
        "constructors": await stats_service.editor_constructor_results(session, person_id),
        "players": await stats_service.editor_player_results(session, person_id),
    }
