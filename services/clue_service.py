"""
Service for clues and the guesses players made on them.
"""
from loguru import logger
from sqlalchemy import select, delete

from models.clue import Clue, CLUE_DIRECTIONS
from models.guess import Guess
from models.person import Person


def _normalize_direction(value):
    """Return 'A', 'D' or None; anything else is rejected"""
    if value is None:
        return None
    value = str(value).strip().upper()
    if not value:
        return None
    if value not in CLUE_DIRECTIONS:
        raise ValueError(f"puzzle_clue_direction must be one of {CLUE_DIRECTIONS}, got {value!r}")
    return value


def _normalize_clue_number(value):
    try:
        clue_number = int(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid clue_number: {value!r}") from e
    if clue_number < 1:
        raise ValueError("clue_number must be 1 or greater")
    return clue_number


def _normalize_answer(value):
    answer = str(value or '').strip().upper()
    if not answer:
        raise ValueError("correct_answer is required")
    return answer


async def get_clue(session, clue_id):
    return await session.get(Clue, clue_id)


async def get_round_clues(session, round_id):
    """Clues of a round ordered by clue number"""
    stmt = select(Clue).where(Clue.round_id == round_id).order_by(Clue.clue_number.asc())
    result = await session.execute(stmt)
    return result.scalars().all()


async def create_clue(session, data):
    """
    Create a clue.

    The correct answer is stored upper-cased. puzzle_id, puzzle_clue_number
    and puzzle_clue_direction are optional.
    """
    if not data.get('round_id'):
        raise ValueError("round_id is required")
    clue_text = str(data.get('clue_text') or '').strip()
    if not clue_text:
        raise ValueError("clue_text is required")

    clue = Clue(
        round_id=int(data['round_id']),
        clue_number=_normalize_clue_number(data.get('clue_number')),
        puzzle_id=int(data['puzzle_id']) if data.get('puzzle_id') else None,
        puzzle_clue_number=int(data['puzzle_clue_number']) if data.get('puzzle_clue_number') else None,
        puzzle_clue_direction=_normalize_direction(data.get('puzzle_clue_direction')),
        clue_text=clue_text,
        correct_answer=_normalize_answer(data.get('correct_answer')),
    )
    session.add(clue)
    await session.flush()

    logger.info(f"Created clue {clue.id} (round {clue.round_id}, #{clue.clue_number})")
    return clue


async def update_clue(session, clue_id, data):
    """
    Update a clue.

    Existing guesses keep their stored is_correct even when the correct
    answer changes.
    """
    clue = await get_clue(session, clue_id)
    if clue is None:
        return None

    if data.get('clue_number') is not None:
        clue.clue_number = _normalize_clue_number(data['clue_number'])
    if 'puzzle_id' in data:
        clue.puzzle_id = int(data['puzzle_id']) if data['puzzle_id'] else None
    if 'puzzle_clue_number' in data:
        clue.puzzle_clue_number = int(data['puzzle_clue_number']) if data['puzzle_clue_number'] else None
    if 'puzzle_clue_direction' in data:
        clue.puzzle_clue_direction = _normalize_direction(data['puzzle_clue_direction'])
    if data.get('clue_text') is not None:
        clue.clue_text = str(data['clue_text']).strip()
    if data.get('correct_answer') is not None:
        clue.correct_answer = _normalize_answer(data['correct_answer'])

    await session.flush()
    logger.info(f"Updated clue {clue_id}")
    return clue


async def delete_clue(session, clue_id):
    clue = await get_clue(session, clue_id)
    if clue is None:
        return False

    await session.delete(clue)
    await session.flush()

    logger.info(f"Deleted clue {clue_id}")
    return True


async def get_clue_guesses(session, clue_id):
    """
    Guesses on a clue with the guesser's name.

    Returns:
        list of dicts ordered by guesser name
    """
    stmt = (
        select(Guess, Person.full_name)
        .join(Person, Person.id == Guess.guesser_person_id)
        .where(Guess.clue_id == clue_id)
        .order_by(Person.full_name.asc())
    )
    result = await session.execute(stmt)

    guesses = []
    for guess, guesser_name in result.all():
        entry = guess.to_dict()
        entry["guesser_name"] = guesser_name
        guesses.append(entry)
    return guesses


async def set_guess(session, clue_id, guesser_person_id, guessed_word):
    """
    Record (or replace) a player's guess on a clue.

    is_correct is derived here, once, by comparing the upper-cased guess with
    the clue's correct answer.

    Raises:
        ValueError: If the clue does not exist or the guess is blank
    """
    clue = await get_clue(session, clue_id)
    if clue is None:
        raise ValueError(f"Clue {clue_id} not found")

    guessed_word = str(guessed_word or '').strip().upper()
    if not guessed_word:
        raise ValueError("guessed_word is required")
    is_correct = guessed_word == clue.correct_answer

    stmt = select(Guess).where(Guess.clue_id == clue_id, Guess.guesser_person_id == guesser_person_id)
    result = await session.execute(stmt)
    guess = result.scalar_one_or_none()

    if guess is None:
        guess = Guess(
            clue_id=clue_id,
            guesser_person_id=guesser_person_id,
            guessed_word=guessed_word,
            is_correct=is_correct
        )
        session.add(guess)
    else:
        guess.guessed_word = guessed_word
        guess.is_correct = is_correct

    await session.flush()
    logger.debug(f"Guess on clue {clue_id} by {guesser_person_id}: {guessed_word} (correct={is_correct})")
    return guess


async def delete_guess(session, clue_id, guesser_person_id):
    result = await session.execute(
        delete(Guess).where(Guess.clue_id == clue_id, Guess.guesser_person_id == guesser_person_id)
    )
    return result.rowcount > 0
