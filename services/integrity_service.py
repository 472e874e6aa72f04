"""
Database consistency checks.

Foreign keys only cascade on SQLite while PRAGMA foreign_keys is on, so rows
written by an import or an older tool can point at records that are gone.
run_consistency_checks() reports those rows together with records nothing
refers to, and delete_orphan_records() removes reported link and child rows.
"""
from loguru import logger
from sqlalchemy import select, delete

from models.clue import Clue
from models.guess import Guess
from models.person import Person
from models.puzzle import Puzzle, PuzzleConstructor
from models.round import Round, RoundGuesser, RoundSolution

# Tables whose rows may be removed through delete_orphan_records
ORPHAN_TABLES = {
    'puzzle_constructors': PuzzleConstructor,
    'clues': Clue,
    'guesses': Guess,
    'round_guessers': RoundGuesser,
    'round_solutions': RoundSolution,
}


def _round_columns():
    return (Round.id, Round.round_date, Round.round_number, Round.description)


def _check_statements():
    """Check name -> select of the offending rows, in reporting order"""
    return {
        # Records nothing refers to
        "orphan_puzzles": (
            select(Puzzle.id, Puzzle.publication_date, Puzzle.editor_id)
            .outerjoin(Clue, Clue.puzzle_id == Puzzle.id)
            .where(Clue.id.is_(None))
            .order_by(Puzzle.publication_date)
        ),
        "persons_without_roles": (
            select(Person.id, Person.full_name)
            .where(
                Person.id.not_in(select(RoundGuesser.person_id)),
                Person.id.not_in(select(Round.clue_giver_id)),
                Person.id.not_in(select(PuzzleConstructor.person_id)),
                Person.id.not_in(select(Puzzle.editor_id).where(Puzzle.editor_id.isnot(None))),
            )
            .order_by(Person.full_name)
        ),
        "rounds_no_clues": (
            select(*_round_columns())
            .outerjoin(Clue, Clue.round_id == Round.id)
            .where(Clue.id.is_(None))
            .order_by(Round.round_date)
        ),
        "rounds_no_solutions": (
            select(*_round_columns())
            .outerjoin(RoundSolution, RoundSolution.round_id == Round.id)
            .where(RoundSolution.id.is_(None))
            .order_by(Round.round_date)
        ),
        "rounds_no_guessers": (
            select(*_round_columns())
            .outerjoin(RoundGuesser, RoundGuesser.round_id == Round.id)
            .where(RoundGuesser.id.is_(None))
            .order_by(Round.round_date)
        ),

        # Rows pointing at records that no longer exist
        "orphan_puzzle_constructor_puzzles": (
            select(PuzzleConstructor.id, PuzzleConstructor.puzzle_id, PuzzleConstructor.person_id)
            .outerjoin(Puzzle, Puzzle.id == PuzzleConstructor.puzzle_id)
            .where(Puzzle.id.is_(None))
        ),
        "orphan_puzzle_constructor_persons": (
            select(PuzzleConstructor.id, PuzzleConstructor.puzzle_id, PuzzleConstructor.person_id)
            .outerjoin(Person, Person.id == PuzzleConstructor.person_id)
            .where(Person.id.is_(None))
        ),
        "orphan_puzzle_editors": (
            select(Puzzle.id, Puzzle.publication_date, Puzzle.editor_id)
            .outerjoin(Person, Person.id == Puzzle.editor_id)
            .where(Puzzle.editor_id.isnot(None), Person.id.is_(None))
        ),
        "orphan_clue_rounds": (
            select(Clue.id, Clue.round_id, Clue.clue_number, Clue.clue_text)
            .outerjoin(Round, Round.id == Clue.round_id)
            .where(Round.id.is_(None))
        ),
        "orphan_clue_puzzles": (
            select(Clue.id, Clue.round_id, Clue.clue_number, Clue.puzzle_id)
            .outerjoin(Puzzle, Puzzle.id == Clue.puzzle_id)
            .where(Clue.puzzle_id.isnot(None), Puzzle.id.is_(None))
        ),
        "orphan_guess_clues": (
            select(Guess.id, Guess.clue_id, Guess.guesser_person_id, Guess.guessed_word)
            .outerjoin(Clue, Clue.id == Guess.clue_id)
            .where(Clue.id.is_(None))
        ),
        "orphan_guess_persons": (
            select(Guess.id, Guess.clue_id, Guess.guesser_person_id, Guess.guessed_word)
            .outerjoin(Person, Person.id == Guess.guesser_person_id)
            .where(Person.id.is_(None))
        ),
        "orphan_round_guesser_rounds": (
            select(RoundGuesser.id, RoundGuesser.round_id, RoundGuesser.person_id)
            .outerjoin(Round, Round.id == RoundGuesser.round_id)
            .where(Round.id.is_(None))
        ),
        "orphan_round_guesser_persons": (
            select(RoundGuesser.id, RoundGuesser.round_id, RoundGuesser.person_id)
            .outerjoin(Person, Person.id == RoundGuesser.person_id)
            .where(Person.id.is_(None))
        ),
        "orphan_round_solution_rounds": (
            select(RoundSolution.id, RoundSolution.round_id, RoundSolution.word)
            .outerjoin(Round, Round.id == RoundSolution.round_id)
            .where(Round.id.is_(None))
        ),
        "orphan_round_clue_givers": (
            select(Round.id, Round.round_date, Round.round_number, Round.clue_giver_id)
            .outerjoin(Person, Person.id == Round.clue_giver_id)
            .where(Person.id.is_(None))
        ),
    }


async def run_consistency_checks(session):
    """
    Run every consistency check.

    Returns:
        dict of check name -> list of row dicts; checks that found nothing are left out
    """
    issues = {}
    for name, stmt in _check_statements().items():
        result = await session.execute(stmt)
        rows = [dict(row) for row in result.mappings().all()]
        if rows:
            issues[name] = rows

    if issues:
        logger.warning(f"Consistency checks found issues: {', '.join(f'{k} ({len(v)})' for k, v in issues.items())}")
    else:
        logger.info("Consistency checks passed")
    return issues


async def delete_orphan_records(session, table_key, ids):
    """
    Delete rows of a link or child table by id.

    Args:
        table_key: One of ORPHAN_TABLES
        ids: Row ids, usually taken from run_consistency_checks()

    Returns:
        Number of rows deleted
    """
    model = ORPHAN_TABLES.get(table_key)
    if model is None:
        raise ValueError(f"Cannot delete records from '{table_key}'")
    if not ids:
        return 0

    result = await session.execute(delete(model).where(model.id.in_([int(i) for i in ids])))
    logger.info(f"Deleted {result.rowcount} rows from {model.__tablename__}")
    return result.rowcount
