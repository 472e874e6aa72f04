"""
Service for KEALOA rounds, their solution words and their guessers.
"""
from loguru import logger
from sqlalchemy import select, func, delete, or_, and_

from helpers.formatting import ensure_date, time_to_seconds
from models.clue import Clue
from models.person import Person
from models.round import Round, RoundSolution, RoundGuesser

ROUND_ORDER_COLUMNS = {
    'round_date': Round.round_date,
    'id': Round.id,
    'episode_number': Round.episode_number,
    'created_at': Round.created_at,
}


def _optional_int(value):
    return int(value) if value not in (None, '', 0, '0') else None


def _optional_text(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


async def get_round(session, round_id):
    return await session.get(Round, round_id)


async def get_previous_round(session, round_id):
    """The round just before this one by (round_date, round_number), or None"""
    current = await get_round(session, round_id)
    if current is None:
        return None

    stmt = (
        select(Round)
        .where(or_(
            Round.round_date < current.round_date,
            and_(Round.round_date == current.round_date, Round.round_number < current.round_number)
        ))
        .order_by(Round.round_date.desc(), Round.round_number.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_next_round(session, round_id):
    """The round just after this one by (round_date, round_number), or None"""
    current = await get_round(session, round_id)
    if current is None:
        return None

    stmt = (
        select(Round)
        .where(or_(
            Round.round_date > current.round_date,
            and_(Round.round_date == current.round_date, Round.round_number > current.round_number)
        ))
        .order_by(Round.round_date.asc(), Round.round_number.asc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_round_by_date_and_number(session, round_date, round_number=1):
    stmt = select(Round).where(
        Round.round_date == ensure_date(round_date),
        Round.round_number == int(round_number)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_rounds_by_date(session, round_date):
    stmt = (
        select(Round)
        .where(Round.round_date == ensure_date(round_date))
        .order_by(Round.round_number.asc())
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def get_next_round_number(session, round_date):
    """Next free round number for a date (1 when the date has no rounds)"""
    stmt = select(func.coalesce(func.max(Round.round_number), 0) + 1).where(
        Round.round_date == ensure_date(round_date)
    )
    result = await session.execute(stmt)
    return int(result.scalar())


async def get_rounds(session, order_by='round_date', descending=True, limit=None, offset=0):
    """
    List rounds.

    Ordering by round_date adds round_number ascending as a secondary key,
    so multiple rounds recorded on one date keep their played order.
    """
    column = ROUND_ORDER_COLUMNS.get(order_by, Round.round_date)
    ordering = [column.desc() if descending else column.asc()]
    if column is Round.round_date:
        ordering.append(Round.round_number.asc())
    ordering.append(Round.id.asc())

    stmt = select(Round).order_by(*ordering)
    if offset:
        stmt = stmt.offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)

    result = await session.execute(stmt)
    return result.scalars().all()


async def count_rounds(session):
    result = await session.execute(select(func.count(Round.id)))
    return result.scalar() or 0


async def create_round(session, data):
    """
    Create a round.

    Args:
        data: Dict with round_date, episode_number, clue_giver_id and optional
              round_number, episode_id, episode_url, episode_start_seconds
              (seconds or HH:MM:SS), description, description2, solution_words
              and guesser_ids

    Raises:
        ValueError: If a required field is missing or the date/number pair is taken
    """
    round_date = ensure_date(data.get('round_date'))
    if round_date is None:
        raise ValueError("round_date is required")
    if data.get('episode_number') in (None, ''):
        raise ValueError("episode_number is required")
    if not data.get('clue_giver_id'):
        raise ValueError("clue_giver_id is required")

    round_number = int(data.get('round_number') or 1)
    if await get_round_by_date_and_number(session, round_date, round_number) is not None:
        raise ValueError(f"Round {round_number} already exists for {round_date.isoformat()}")

    new_round = Round(
        round_date=round_date,
        round_number=round_number,
        episode_number=int(data['episode_number']),
        episode_id=_optional_int(data.get('episode_id')),
        episode_url=_optional_text(data.get('episode_url')),
        episode_start_seconds=time_to_seconds(data.get('episode_start_seconds')),
        clue_giver_id=int(data['clue_giver_id']),
        description=_optional_text(data.get('description')),
        description2=_optional_text(data.get('description2')),
    )
    session.add(new_round)
    await session.flush()

    if data.get('solution_words'):
        await set_round_solutions(session, new_round.id, data['solution_words'])
    if data.get('guesser_ids'):
        await set_round_guessers(session, new_round.id, data['guesser_ids'])

    logger.info(f"Created round {new_round.id} ({round_date} #{round_number})")
    return new_round


async def update_round(session, round_id, data):
    existing = await get_round(session, round_id)
    if existing is None:
        return None

    if 'round_date' in data:
        round_date = ensure_date(data['round_date'])
        if round_date is None:
            raise ValueError("round_date cannot be empty")
        existing.round_date = round_date
    if data.get('round_number') is not None:
        existing.round_number = int(data['round_number'])
    if data.get('episode_number') is not None:
        existing.episode_number = int(data['episode_number'])
    if 'episode_id' in data:
        existing.episode_id = _optional_int(data['episode_id'])
    if 'episode_url' in data:
        existing.episode_url = _optional_text(data['episode_url'])
    if data.get('episode_start_seconds') is not None:
        existing.episode_start_seconds = time_to_seconds(data['episode_start_seconds'])
    if data.get('clue_giver_id'):
        existing.clue_giver_id = int(data['clue_giver_id'])
    if 'description' in data:
        existing.description = _optional_text(data['description'])
    if 'description2' in data:
        existing.description2 = _optional_text(data['description2'])

    if 'solution_words' in data:
        await set_round_solutions(session, round_id, data['solution_words'] or [])
    if 'guesser_ids' in data:
        await set_round_guessers(session, round_id, data['guesser_ids'] or [])

    await session.flush()
    logger.info(f"Updated round {round_id}")
    return existing


async def delete_round(session, round_id):
    """Delete a round with its clues, guesses, solutions and guesser links"""
    existing = await get_round(session, round_id)
    if existing is None:
        return False

    await session.delete(existing)
    await session.flush()

    logger.info(f"Deleted round {round_id}")
    return True


async def get_round_solutions(session, round_id):
    """Solution words of a round ordered by rank"""
    stmt = (
        select(RoundSolution)
        .where(RoundSolution.round_id == round_id)
        .order_by(RoundSolution.word_order.asc())
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def set_round_solutions(session, round_id, words):
    """Replace a round's solution words; list position becomes word_order (1-based)"""
    await session.execute(delete(RoundSolution).where(RoundSolution.round_id == round_id))

    order = 0
    for word in words:
        word = str(word).strip().upper()
        if not word:
            continue
        order += 1
        session.add(RoundSolution(round_id=round_id, word=word, word_order=order))

    await session.flush()
    logger.debug(f"Set {order} solution words for round {round_id}")
    return True


async def get_round_guessers(session, round_id):
    """Persons registered as guessers of a round, by name"""
    stmt = (
        select(Person)
        .join(RoundGuesser, RoundGuesser.person_id == Person.id)
        .where(RoundGuesser.round_id == round_id)
        .order_by(Person.full_name.asc())
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def set_round_guessers(session, round_id, person_ids):
    await session.execute(delete(RoundGuesser).where(RoundGuesser.round_id == round_id))

    for person_id in dict.fromkeys(int(p) for p in person_ids):
        session.add(RoundGuesser(round_id=round_id, person_id=person_id))

    await session.flush()
    return True


async def get_round_clue_count(session, round_id):
    result = await session.execute(select(func.count(Clue.id)).where(Clue.round_id == round_id))
    return result.scalar() or 0
