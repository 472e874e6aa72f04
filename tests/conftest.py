"""
Shared fixtures: a temporary SQLite database and a small seeded season.

The seeded data:

    Round 1 (2024-02-01, solutions APPLE, BANANA), guessers Alice and Bob
        clue 1  puzzle 1 (Sun 2024-01-07)  1A  APPLE   Alice ok    Bob wrong
        clue 2  puzzle 1                   5D  BANANA  Alice ok    Bob ok
        clue 3  no puzzle                      APPLE   Alice wrong Bob ok
        clue 4  puzzle 2 (Mon 2023-05-01) 10A  BANANA  Alice ok    -

    Round 2 (2024-03-01, solutions CHERRY, DATE, FIG), guesser Alice only
        clue 1  puzzle 2  1A  CHERRY  Alice ok  Bob ok (not registered)
        clue 2  puzzle 2  2D  DATE    Alice ok
        clue 3  puzzle 1  3A  FIG     Alice ok
        clue 4  puzzle 1  4D  CHERRY  Alice ok

Puzzle 1 is by Dan, edited by Erin. Puzzle 2 is by Dan and Frank, no editor.
Carol gives every clue.
"""
import os
import tempfile

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

import models  # noqa: F401
from database.db_session import create_engine_for_url
from database.models_base import Base
from services import clue_service, person_service, puzzle_service, round_service


@pytest_asyncio.fixture
async def test_db():
    """Create a temporary test database and return a test session factory."""
    temp_db = tempfile.NamedTemporaryFile(delete=False, suffix='.db')
    temp_db.close()
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{temp_db.name}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    test_session_factory = sessionmaker(
        engine,
        expire_on_commit=False,
        class_=AsyncSession
    )

    yield test_session_factory

    await engine.dispose()
    os.unlink(temp_db.name)


async def add_round(session, round_date, clue_giver_id, solutions, guesser_ids, clues):
    """
    Create a round and its clues.

    clues: list of (puzzle_id, puzzle_clue_number, direction, answer, {person_id: guessed_word})
    Returns (round, [clue ids])
    """
    new_round = await round_service.create_round(session, {
        "round_date": round_date,
        "episode_number": 100,
        "clue_giver_id": clue_giver_id,
        "solution_words": solutions,
        "guesser_ids": guesser_ids,
    })

    clue_ids = []
    for clue_number, (puzzle_id, puzzle_clue_number, direction, answer, guesses) in enumerate(clues, start=1):
        clue = await clue_service.create_clue(session, {
            "round_id": new_round.id,
            "clue_number": clue_number,
            "puzzle_id": puzzle_id,
            "puzzle_clue_number": puzzle_clue_number,
            "puzzle_clue_direction": direction,
            "clue_text": f"Clue {clue_number}",
            "correct_answer": answer,
        })
        for person_id, word in guesses.items():
            await clue_service.set_guess(session, clue.id, person_id, word)
        clue_ids.append(clue.id)

    return new_round, clue_ids


async def seed_scenario(session):
    persons = {}
    for key, name in [
        ('alice', 'Alice Anders'),
        ('bob', 'Bob Baker'),
        ('carol', 'Carol Clue'),
        ('dan', 'Dan Dexter'),
        ('erin', 'Erin Editor'),
        ('frank', 'Frank Ford'),
    ]:
        persons[key] = (await person_service.create_person(session, {"full_name": name})).id

    alice, bob, carol = persons['alice'], persons['bob'], persons['carol']

    puzzle1 = await puzzle_service.create_puzzle(session, {
        "publication_date": "2024-01-07",
        "editor_id": persons['erin'],
        "constructor_ids": [persons['dan']],
    })
    puzzle2 = await puzzle_service.create_puzzle(session, {
        "publication_date": "2023-05-01",
        "constructor_ids": [persons['dan'], persons['frank']],
    })

    round1, round1_clues = await add_round(
        session, "2024-02-01", carol, ["apple", "banana"], [alice, bob],
        [
            (puzzle1.id, 1, 'A', 'apple', {alice: 'apple', bob: 'pear'}),
            (puzzle1.id, 5, 'D', 'banana', {alice: 'banana', bob: 'banana'}),
            (None, None, None, 'apple', {alice: 'grape', bob: 'apple'}),
            (puzzle2.id, 10, 'A', 'banana', {alice: 'banana'}),
        ]
    )
    round2, round2_clues = await add_round(
        session, "2024-03-01", carol, ["cherry", "date", "fig"], [alice],
        [
            (puzzle2.id, 1, 'A', 'cherry', {alice: 'cherry', bob: 'cherry'}),
            (puzzle2.id, 2, 'D', 'date', {alice: 'date'}),
            (puzzle1.id, 3, 'A', 'fig', {alice: 'fig'}),
            (puzzle1.id, 4, 'D', 'cherry', {alice: 'cherry'}),
        ]
    )

    return {
        **persons,
        "puzzle1": puzzle1.id,
        "puzzle2": puzzle2.id,
        "round1": round1.id,
        "round2": round2.id,
        "round1_clues": round1_clues,
        "round2_clues": round2_clues,
    }


@pytest_asyncio.fixture
async def scenario(test_db):
    """Seed the scenario described in the module docstring and return its ids"""
    async with test_db() as session:
        ids = await seed_scenario(session)
        await session.commit()
    return ids


@pytest.fixture
def make_round():
    """The add_round helper, for tests that need extra rounds on top of the scenario"""
    return add_round
