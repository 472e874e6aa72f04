"""
Service for person records.

A person may be a player, clue giver, constructor and/or editor at the same
time. Roles are not stored; they are derived from membership in the other
tables so they follow the data as it is edited.
"""
from loguru import logger
from sqlalchemy import select, func, exists

from models.person import Person
from models.puzzle import Puzzle, PuzzleConstructor
from models.round import Round, RoundGuesser

PERSON_FIELDS = (
    'full_name', 'nicknames', 'home_page_url', 'image_url',
    'hide_xwordinfo', 'xwordinfo_profile_name', 'xwordinfo_image_url'
)

PERSON_ORDER_COLUMNS = {
    'full_name': Person.full_name,
    'id': Person.id,
    'created_at': Person.created_at,
}


def _clean_person_data(data):
    cleaned = {}
    for field in PERSON_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if isinstance(value, str):
            value = value.strip() or None
        cleaned[field] = value

    if 'hide_xwordinfo' in cleaned:
        cleaned['hide_xwordinfo'] = bool(cleaned['hide_xwordinfo'])

    return cleaned


async def get_person(session, person_id):
    """Return the Person with this id, or None"""
    return await session.get(Person, person_id)


async def get_person_by_name(session, full_name):
    stmt = select(Person).where(Person.full_name == full_name.strip()).limit(1)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_persons(session, search='', limit=None, offset=0, order_by='full_name', descending=False):
    """
    List persons, optionally filtered by a name substring.

    Args:
        session: Database session
        search: Case-insensitive substring of full_name
        limit: Maximum number of rows (None = all)
        offset: Number of rows to skip
        order_by: 'full_name', 'id' or 'created_at'
        descending: Reverse the sort order
    """
    column = PERSON_ORDER_COLUMNS.get(order_by, Person.full_name)
    stmt = select(Person).order_by(column.desc() if descending else column.asc(), Person.id)

    if search:
        stmt = stmt.where(Person.full_name.ilike(f"%{search}%"))
    if offset:
        stmt = stmt.offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)

    result = await session.execute(stmt)
    return result.scalars().all()


async def count_persons(session, search=''):
    stmt = select(func.count(Person.id))
    if search:
        stmt = stmt.where(Person.full_name.ilike(f"%{search}%"))
    result = await session.execute(stmt)
    return result.scalar() or 0


async def create_person(session, data):
    """
    Create a person.

    Raises:
        ValueError: If full_name is missing or blank
    """
    cleaned = _clean_person_data(data)
    if not cleaned.get('full_name'):
        raise ValueError("full_name is required")

    person = Person(**cleaned)
    session.add(person)
    await session.flush()

    logger.info(f"Created person {person.id}: {person.full_name}")
    return person


async def update_person(session, person_id, data):
    """Update a person's fields. Returns the person, or None if it does not exist."""
    person = await get_person(session, person_id)
    if person is None:
        return None

    cleaned = _clean_person_data(data)
    if 'full_name' in cleaned and not cleaned['full_name']:
        raise ValueError("full_name cannot be empty")

    for field, value in cleaned.items():
        setattr(person, field, value)
    await session.flush()

    logger.info(f"Updated person {person_id}")
    return person


async def delete_person(session, person_id):
    """
    Delete a person.

    Guesses, round-guesser and puzzle-constructor rows referencing the person
    are removed by the database (ON DELETE CASCADE); puzzles they edited keep
    existing without an editor.
    """
    person = await get_person(session, person_id)
    if person is None:
        return False

    await session.delete(person)
    await session.flush()

    logger.info(f"Deleted person {person_id}")
    return True


async def _exists(session, clause):
    result = await session.execute(select(exists().where(clause)))
    return bool(result.scalar())


async def is_player(session, person_id):
    return await _exists(session, RoundGuesser.person_id == person_id)


async def is_clue_giver(session, person_id):
    return await _exists(session, Round.clue_giver_id == person_id)


async def is_constructor(session, person_id):
    return await _exists(session, PuzzleConstructor.person_id == person_id)


async def is_editor(session, person_id):
    return await _exists(session, Puzzle.editor_id == person_id)


async def get_person_roles(session, person_id):
    """Return the list of roles the person currently holds"""
    roles = []
    if await is_player(session, person_id):
        roles.append('player')
    if await is_clue_giver(session, person_id):
        roles.append('clue_giver')
    if await is_constructor(session, person_id):
        roles.append('constructor')
    if await is_editor(session, person_id):
        roles.append('editor')
    return roles
