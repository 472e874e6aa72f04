from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_session, not_found
from services import clue_service

router = APIRouter(prefix="/clues", tags=["clues"])


@router.get("/{clue_id}", summary="One clue with every guess made on it")
async def get_clue(clue_id: int, session: AsyncSession = Depends(get_session)):
    clue = await clue_service.get_clue(session, clue_id)
    if clue is None:
        raise not_found("Clue")

    detail = clue.to_dict()
    detail["guesses"] = await clue_service.get_clue_guesses(session, clue_id)
    return detail
