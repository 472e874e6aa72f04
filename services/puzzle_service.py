"""
Service for crossword puzzles and their ordered constructors.
"""
from loguru import logger
from sqlalchemy import select, func, delete

from helpers.formatting import ensure_date
from models.person import Person
from models.puzzle import Puzzle, PuzzleConstructor


async def get_puzzle(session, puzzle_id):
    return await session.get(Puzzle, puzzle_id)


async def get_puzzle_by_date(session, publication_date):
    stmt = select(Puzzle).where(Puzzle.publication_date == ensure_date(publication_date))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


def _constructor_filter(stmt, constructor_search):
    """Restrict a puzzle query to puzzles with a constructor whose name matches"""
    matching = (
        select(PuzzleConstructor.puzzle_id)
        .join(Person, Person.id == PuzzleConstructor.person_id)
        .where(Person.full_name.ilike(f"%{constructor_search}%"))
    )
    return stmt.where(Puzzle.id.in_(matching))


async def get_puzzles(session, constructor_search='', limit=None, offset=0, descending=True):
    """List puzzles by publication date (newest first by default)"""
    order = Puzzle.publication_date.desc() if descending else Puzzle.publication_date.asc()
    stmt = select(Puzzle).order_by(order)

    if constructor_search:
        stmt = _constructor_filter(stmt, constructor_search)
    if offset:
        stmt = stmt.offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)

    result = await session.execute(stmt)
    return result.scalars().all()


async def count_puzzles(session, constructor_search=''):
    stmt = select(func.count(Puzzle.id))
    if constructor_search:
        stmt = _constructor_filter(stmt, constructor_search)
    result = await session.execute(stmt)
    return result.scalar() or 0


async def create_puzzle(session, data):
    """
    Create a puzzle.

    Args:
        data: Dict with publication_date, optional editor_id and optional
              constructor_ids (ordered list of person ids)

    Raises:
        ValueError: If the publication date is missing or already used
    """
    publication_date = ensure_date(data.get('publication_date'))
    if publication_date is None:
        raise ValueError("publication_date is required")

    if await get_puzzle_by_date(session, publication_date) is not None:
        raise ValueError(f"A puzzle already exists for {publication_date.isoformat()}")

    puzzle = Puzzle(publication_date=publication_date, editor_id=data.get('editor_id') or None)
    session.add(puzzle)
    await session.flush()

    if data.get('constructor_ids'):
        await set_puzzle_constructors(session, puzzle.id, data['constructor_ids'])

    logger.info(f"Created puzzle {puzzle.id} for {publication_date}")
    return puzzle


async def update_puzzle(session, puzzle_id, data):
    puzzle = await get_puzzle(session, puzzle_id)
    if puzzle is None:
        return None

    if 'publication_date' in data:
        publication_date = ensure_date(data['publication_date'])
        if publication_date is None:
            raise ValueError("publication_date cannot be empty")
        existing = await get_puzzle_by_date(session, publication_date)
        if existing is not None and existing.id != puzzle_id:
            raise ValueError(f"A puzzle already exists for {publication_date.isoformat()}")
        puzzle.publication_date = publication_date

    if 'editor_id' in data:
        puzzle.editor_id = data['editor_id'] or None

    if 'constructor_ids' in data:
        await set_puzzle_constructors(session, puzzle_id, data['constructor_ids'] or [])

    await session.flush()
    logger.info(f"Updated puzzle {puzzle_id}")
    return puzzle


async def delete_puzzle(session, puzzle_id):
    """Delete a puzzle; its constructor links go with it and clues lose their puzzle link"""
    puzzle = await get_puzzle(session, puzzle_id)
    if puzzle is None:
        return False

    await session.delete(puzzle)
    await session.flush()

    logger.info(f"Deleted puzzle {puzzle_id}")
    return True


async def get_puzzle_constructors(session, puzzle_id):
    """Constructors of a puzzle in constructor order"""
    stmt = (
        select(Person)
        .join(PuzzleConstructor, PuzzleConstructor.person_id == Person.id)
        .where(PuzzleConstructor.puzzle_id == puzzle_id)
        .order_by(PuzzleConstructor.constructor_order, Person.full_name)
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def set_puzzle_constructors(session, puzzle_id, constructor_ids):
    """Replace a puzzle's constructors; list position becomes constructor_order (1-based)"""
    await session.execute(delete(PuzzleConstructor).where(PuzzleConstructor.puzzle_id == puzzle_id))

    seen = set()
    order = 0
    for person_id in constructor_ids:
        person_id = int(person_id)
        if person_id in seen:
            continue
        seen.add(person_id)
        order += 1
        session.add(PuzzleConstructor(puzzle_id=puzzle_id, person_id=person_id, constructor_order=order))

    await session.flush()
    logger.debug(f"Set {order} constructors for puzzle {puzzle_id}")
    return True


async def get_editor(session, puzzle):
    """The editor Person of a puzzle, or None"""
    if puzzle is None or puzzle.editor_id is None:
        return None
    return await session.get(Person, puzzle.editor_id)
