"""
Tests for the database consistency checks.

Dangling rows are written through a second engine that leaves SQLite's
foreign key enforcement off, the way an import without the pragma would.
"""
import pytest
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import create_async_engine

from models.guess import Guess
from models.round import RoundSolution
from services import integrity_service, person_service, puzzle_service


async def write_without_foreign_keys(session, *statements):
    """Execute inserts on a connection with foreign keys off; returns the new primary keys"""
    unchecked_engine = create_async_engine(session.bind.url)
    try:
        async with unchecked_engine.begin() as conn:
            return [(await conn.execute(stmt)).inserted_primary_key[0] for stmt in statements]
    finally:
        await unchecked_engine.dispose()


@pytest.mark.asyncio
async def test_clean_database_has_no_issues(test_db, scenario):
    async with test_db() as session:
        assert await integrity_service.run_consistency_checks(session) == {}


@pytest.mark.asyncio
async def test_unused_records_are_reported(test_db, scenario, make_round):
    """An empty round, a puzzle no clue uses and a person with no role"""
    async with test_db() as session:
        empty_round, _ = await make_round(session, "2024-05-01", scenario['carol'], [], [], [])
        puzzle = await puzzle_service.create_puzzle(session, {"publication_date": "2022-02-02"})
        person = await person_service.create_person(session, {"full_name": "Nobody Yet"})
        await session.commit()

        issues = await integrity_service.run_consistency_checks(session)

    assert set(issues) == {
        'orphan_puzzles',
        'persons_without_roles',
        'rounds_no_clues',
        'rounds_no_solutions',
        'rounds_no_guessers',
    }
    assert [row["id"] for row in issues['rounds_no_clues']] == [empty_round.id]
    assert [row["id"] for row in issues['orphan_puzzles']] == [puzzle.id]
    assert issues['persons_without_roles'] == [{"id": person.id, "full_name": 'Nobody Yet'}]


@pytest.mark.asyncio
async def test_dangling_rows_are_reported_and_deleted(test_db, scenario):
    async with test_db() as session:
        guess_id, solution_id = await write_without_foreign_keys(
            session,
            insert(Guess).values(
                clue_id=scenario['round1_clues'][3], guesser_person_id=9999, guessed_word='KIWI', is_correct=False
            ),
            insert(RoundSolution).values(round_id=9999, word='PLUM', word_order=1),
        )

    async with test_db() as session:
        issues = await integrity_service.run_consistency_checks(session)

        assert [row["id"] for row in issues['orphan_guess_persons']] == [guess_id]
        assert issues['orphan_round_solution_rounds'] == [{"id": solution_id, "round_id": 9999, "word": 'PLUM'}]

        assert await integrity_service.delete_orphan_records(session, 'guesses', [guess_id]) == 1
        assert await integrity_service.delete_orphan_records(session, 'round_solutions', [str(solution_id)]) == 1
        await session.commit()

        assert await integrity_service.run_consistency_checks(session) == {}


@pytest.mark.asyncio
async def test_delete_orphan_records_input(test_db, scenario):
    async with test_db() as session:
        assert await integrity_service.delete_orphan_records(session, 'guesses', []) == 0

        with pytest.raises(ValueError):
            await integrity_service.delete_orphan_records(session, 'persons', [scenario['alice']])
