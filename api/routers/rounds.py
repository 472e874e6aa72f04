from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_session, not_found, cached
from api.pagination import Pagination, pagination_params, paginated
from helpers.formatting import seconds_to_time
from services import clue_service, person_service, round_service, stats_service

router = APIRouter(prefix="/rounds", tags=["rounds"])


async def _round_summary(session, round_row):
    summary = round_row.to_dict()
    summary["episode_start_time"] = seconds_to_time(round_row.episode_start_seconds)
    summary["solution_words"] = [s.word for s in await round_service.get_round_solutions(session, round_row.id)]
    summary["clue_count"] = await round_service.get_round_clue_count(session, round_row.id)
    return summary


@router.get("", summary="List rounds, newest first")
async def list_rounds(
    response: Response,
    pagination: Pagination = Depends(pagination_params),
    session: AsyncSession = Depends(get_session),
):
    total = await round_service.count_rounds(session)
    rounds = await round_service.get_rounds(session, limit=pagination.per_page, offset=pagination.offset)
    items = [await _round_summary(session, r) for r in rounds]
    return paginated(response, items, total, pagination)


@router.get("/stats", summary="Overall and per-year round statistics")
async def rounds_stats(request: Request, session: AsyncSession = Depends(get_session)):
    async def render():
        return {
            "overview": await stats_service.rounds_overview_stats(session),
            "by_year": await stats_service.rounds_stats_by_year(session),
            "answer_positions": await stats_service.answer_position_table(session),
        }

    return await cached(request, "rounds_stats", render)


@router.get("/{round_id}", summary="One round with its clues, guesses and results")
async def get_round(round_id: int, session: AsyncSession = Depends(get_session)):
    round_row = await round_service.get_round(session, round_id)
    if round_row is None:
        raise not_found("Round")

    detail = await _round_summary(session, round_row)

    clue_giver = await person_service.get_person(session, round_row.clue_giver_id)
    detail["clue_giver"] = clue_giver.to_dict() if clue_giver else None
    detail["guessers"] = [p.to_dict() for p in await round_service.get_round_guessers(session, round_id)]

    clues = []
    for clue in await clue_service.get_round_clues(session, round_id):
        entry = clue.to_dict()
        entry["guesses"] = await clue_service.get_clue_guesses(session, clue.id)
        clues.append(entry)
    detail["clues"] = clues

    results = await stats_service.round_guesser_results(session, round_id)
    for result in results:
        result["best_streak"] = await stats_service.person_round_streak(session, round_id, result["person_id"])
    detail["results"] = results

    previous_round = await round_service.get_previous_round(session, round_id)
    next_round = await round_service.get_next_round(session, round_id)
    detail["previous_round_id"] = previous_round.id if previous_round else None
    detail["next_round_id"] = next_round.id if next_round else None
    return detail
