from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_session, not_found
from api.pagination import Pagination, pagination_params, paginated
from helpers.formatting import format_list_with_and
from services import puzzle_service

router = APIRouter(prefix="/puzzles", tags=["puzzles"])


async def _puzzle_detail(session, puzzle):
    detail = puzzle.to_dict()
    constructors = await puzzle_service.get_puzzle_constructors(session, puzzle.id)
    detail["constructors"] = [p.to_dict() for p in constructors]
    detail["constructor_names"] = format_list_with_and(p.full_name for p in constructors)
    editor = await puzzle_service.get_editor(session, puzzle)
    detail["editor"] = editor.to_dict() if editor else None
    return detail


@router.get("", summary="List puzzles, newest first")
async def list_puzzles(
    response: Response,
    constructor: str = Query('', description="Filter by constructor name"),
    pagination: Pagination = Depends(pagination_params),
    session: AsyncSession = Depends(get_session),
):
    total = await puzzle_service.count_puzzles(session, constructor)
    puzzles = await puzzle_service.get_puzzles(
        session, constructor, limit=pagination.per_page, offset=pagination.offset
    )
    items = [await _puzzle_detail(session, p) for p in puzzles]
    return paginated(response, items, total, pagination)


@router.get("/{puzzle_id}", summary="One puzzle with its constructors and editor")
async def get_puzzle(puzzle_id: int, session: AsyncSession = Depends(get_session)):
    puzzle = await puzzle_service.get_puzzle(session, puzzle_id)
    if puzzle is None:
        raise not_found("Puzzle")
    return await _puzzle_detail(session, puzzle)
