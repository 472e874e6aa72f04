"""
Statistics engine for players, rounds, constructors and editors.

Each public function fetches the rows it needs with one or two queries and
aggregates them in memory through stats_core. Result sets are bounded by the
number of historical clues, so grouping in Python keeps the queries portable
across database backends. Nothing here writes to the database.

Functions assume the ids they receive exist; callers look the entity up
first and report "not found" themselves.
"""
from collections import namedtuple, defaultdict

from loguru import logger
from sqlalchemy import select, func, and_, or_, case

import stats_core
from models.clue import Clue
from models.guess import Guess
from models.person import Person
from models.puzzle import Puzzle, PuzzleConstructor
from models.round import Round, RoundGuesser, RoundSolution

# One of a person's guesses joined to its clue, round and puzzle
PersonGuessRow = namedtuple('PersonGuessRow', [
    'round_id', 'clue_number', 'is_correct', 'correct_answer', 'direction',
    'puzzle_id', 'round_date', 'publication_date', 'editor_id'
])

DIRECTION_LABELS = {
    'A': 'Across',
    'D': 'Down',
    None: 'No direction',
}

UNKNOWN_EDITOR = 'Unknown'

_correct_sum = func.coalesce(func.sum(case((Guess.is_correct == True, 1), else_=0)), 0)  # noqa: E712


# ============================================================================
# ROW FETCHING
# ============================================================================

async def fetch_person_guess_rows(session, person_id):
    """
    All guesses of a person in rounds where they are a registered guesser,
    ordered by round then clue number.
    """
    stmt = (
        select(
            Clue.round_id,
            Clue.clue_number,
            Guess.is_correct,
            Clue.correct_answer,
            Clue.puzzle_clue_direction,
            Clue.puzzle_id,
            Round.round_date,
            Puzzle.publication_date,
            Puzzle.editor_id,
        )
        .select_from(Guess)
        .join(Clue, Guess.clue_id == Clue.id)
        .join(RoundGuesser, and_(
            RoundGuesser.round_id == Clue.round_id,
            RoundGuesser.person_id == Guess.guesser_person_id
        ))
        .join(Round, Round.id == Clue.round_id)
        .outerjoin(Puzzle, Puzzle.id == Clue.puzzle_id)
        .where(Guess.guesser_person_id == person_id)
        .order_by(Clue.round_id.asc(), Clue.clue_number.asc())
    )
    result = await session.execute(stmt)

    rows = [
        PersonGuessRow(
            round_id=r.round_id,
            clue_number=r.clue_number,
            is_correct=bool(r.is_correct),
            correct_answer=r.correct_answer,
            direction=r.puzzle_clue_direction,
            puzzle_id=r.puzzle_id,
            round_date=r.round_date,
            publication_date=r.publication_date,
            editor_id=r.editor_id,
        )
        for r in result.all()
    ]
    logger.debug(f"Fetched {len(rows)} guess rows for person {person_id}")
    return rows


async def fetch_puzzle_constructors(session, puzzle_ids):
    """puzzle_id -> list of constructor dicts in constructor order"""
    puzzle_ids = {p for p in puzzle_ids if p is not None}
    if not puzzle_ids:
        return {}

    stmt = (
        select(PuzzleConstructor.puzzle_id, Person.id, Person.full_name, Person.xwordinfo_profile_name)
        .join(Person, Person.id == PuzzleConstructor.person_id)
        .where(PuzzleConstructor.puzzle_id.in_(puzzle_ids))
        .order_by(PuzzleConstructor.puzzle_id, PuzzleConstructor.constructor_order)
    )
    result = await session.execute(stmt)

    constructors = defaultdict(list)
    for puzzle_id, person_id, full_name, profile_name in result.all():
        constructors[puzzle_id].append({
            "constructor_id": person_id,
            "full_name": full_name,
            "xwordinfo_profile_name": profile_name,
        })
    return dict(constructors)


async def fetch_person_names(session, person_ids):
    """person_id -> full_name"""
    person_ids = {p for p in person_ids if p is not None}
    if not person_ids:
        return {}
    result = await session.execute(select(Person.id, Person.full_name).where(Person.id.in_(person_ids)))
    return dict(result.all())


# ============================================================================
# PER-PERSON AGGREGATES
# ============================================================================

def aggregate_person_stats(rows, rounds_played):
    """
    Summary statistics over one person's guess rows.

    Args:
        rows: PersonGuessRow-like objects ordered by round_id, clue_number
        rounds_played: Number of rounds the person is registered in

    Returns:
        dict: rounds_played, totals, overall_percentage, per-round
              min/max/mean/median of correct counts and percentages, best_streak
    """
    per_round = {}
    for row in rows:
        correct, answered = per_round.get(row.round_id, (0, 0))
        per_round[row.round_id] = (correct + (1 if row.is_correct else 0), answered + 1)

    total_clues_answered = len(rows)
    total_correct = sum(1 for row in rows if row.is_correct)

    stats = {
        "rounds_played": int(rounds_played),
        "total_clues_answered": total_clues_answered,
        "total_correct": total_correct,
        "overall_percentage": stats_core.round_percentage(
            stats_core.calculate_accuracy(total_correct, total_clues_answered)
        ),
    }
    stats.update(stats_core.summarize_round_results(per_round.values()))
    stats["best_streak"] = stats_core.best_streak(rows)
    return stats


async def count_rounds_played(session, person_id):
    stmt = select(func.count(func.distinct(RoundGuesser.round_id))).where(RoundGuesser.person_id == person_id)
    result = await session.execute(stmt)
    return result.scalar() or 0


async def person_stats(session, person_id):
    """Aggregate statistics for one player; all-zero when they never guessed"""
    rows = await fetch_person_guess_rows(session, person_id)
    rounds_played = await count_rounds_played(session, person_id)
    return aggregate_person_stats(rows, rounds_played)


# ============================================================================
# PER-DIMENSION BREAKDOWNS
# ============================================================================

_SKIP = object()


def _group(rows, key_func):
    """key -> [total_answered, correct_count]; rows whose key is _SKIP are dropped"""
    groups = {}
    for row in rows:
        key = key_func(row)
        if key is _SKIP:
            continue
        counts = groups.setdefault(key, [0, 0])
        counts[0] += 1
        if row.is_correct:
            counts[1] += 1
    return groups


def breakdown_by_clue_number(rows):
    groups = _group(rows, lambda r: r.clue_number)
    return [
        {"clue_number": clue_number, **stats_core.bucket_stats(*groups[clue_number])}
        for clue_number in sorted(groups)
    ]


def breakdown_by_answer_length(rows):
    groups = _group(rows, lambda r: stats_core.answer_length(r.correct_answer))
    return [
        {"answer_length": length, **stats_core.bucket_stats(*groups[length])}
        for length in sorted(groups)
    ]


def breakdown_by_direction(rows):
    """Across, Down, then a bucket for clues without a direction"""
    groups = _group(rows, lambda r: r.direction or None)
    order = ['A', 'D', None]
    return [
        {"direction": direction, "label": DIRECTION_LABELS[direction], **stats_core.bucket_stats(*groups[direction])}
        for direction in order
        if direction in groups
    ]


def breakdown_by_day_of_week(rows):
    """Puzzle weekday buckets, Monday first and Sunday last"""
    groups = _group(
        rows,
        lambda r: stats_core.encode_day_of_week(r.publication_date) if r.publication_date else _SKIP
    )
    buckets = []
    for encoded_day in sorted(groups, key=stats_core.day_of_week_index):
        day_index = stats_core.day_of_week_index(encoded_day)
        buckets.append({
            "day_of_week": encoded_day,
            "day_index": day_index,
            "day_name": stats_core.DAY_NAMES[day_index],
            **stats_core.bucket_stats(*groups[encoded_day])
        })
    return buckets


def breakdown_by_decade(rows):
    groups = _group(
        rows,
        lambda r: stats_core.decade_of(r.publication_date.year) if r.publication_date else _SKIP
    )
    return [
        {"decade": decade, **stats_core.bucket_stats(*groups[decade])}
        for decade in sorted(groups)
    ]


def breakdown_by_year(rows):
    """Round-year buckets with rounds played and best round score in that year"""
    groups = _group(rows, lambda r: r.round_date.year)

    round_scores = defaultdict(int)
    round_years = {}
    for row in rows:
        round_years[row.round_id] = row.round_date.year
        round_scores[row.round_id] += 1 if row.is_correct else 0

    buckets = []
    for year in sorted(groups):
        year_rounds = [round_id for round_id, y in round_years.items() if y == year]
        buckets.append({
            "year": year,
            "rounds_played": len(year_rounds),
            **stats_core.bucket_stats(*groups[year]),
            "best_score": max((round_scores[round_id] for round_id in year_rounds), default=0),
        })
    return buckets


def breakdown_by_constructor(rows, constructors_by_puzzle):
    """
    Constructor buckets, best accuracy first.

    A clue from a co-constructed puzzle counts once for every constructor.
    """
    groups = {}
    for row in rows:
        for constructor in constructors_by_puzzle.get(row.puzzle_id, []):
            bucket = groups.setdefault(constructor["constructor_id"], {
                **constructor,
                "total_answered": 0,
                "correct_count": 0,
            })
            bucket["total_answered"] += 1
            if row.is_correct:
                bucket["correct_count"] += 1

    buckets = [
        {**bucket, **stats_core.bucket_stats(bucket["total_answered"], bucket["correct_count"])}
        for bucket in groups.values()
    ]
    return stats_core.sort_by_accuracy(buckets)


def breakdown_by_editor(rows, editor_names):
    """Editor buckets, best accuracy first; puzzles without an editor form an 'Unknown' bucket"""
    groups = _group(rows, lambda r: r.editor_id if r.puzzle_id is not None else _SKIP)
    buckets = [
        {
            "editor_id": editor_id,
            "editor_name": editor_names.get(editor_id, UNKNOWN_EDITOR) if editor_id is not None else UNKNOWN_EDITOR,
            **stats_core.bucket_stats(*counts)
        }
        for editor_id, counts in groups.items()
    ]
    return stats_core.sort_by_accuracy(buckets)


async def _constructor_breakdown(session, rows):
    constructors = await fetch_puzzle_constructors(session, {r.puzzle_id for r in rows})
    return breakdown_by_constructor(rows, constructors)


async def _editor_breakdown(session, rows):
    names = await fetch_person_names(session, {r.editor_id for r in rows})
    return breakdown_by_editor(rows, names)


def _plain(breakdown):
    async def run(session, rows):
        return breakdown(rows)
    return run


BREAKDOWNS = {
    'year': _plain(breakdown_by_year),
    'day_of_week': _plain(breakdown_by_day_of_week),
    'decade': _plain(breakdown_by_decade),
    'clue_number': _plain(breakdown_by_clue_number),
    'answer_length': _plain(breakdown_by_answer_length),
    'direction': _plain(breakdown_by_direction),
    'constructor': _constructor_breakdown,
    'editor': _editor_breakdown,
}

DIMENSIONS = tuple(BREAKDOWNS)


async def person_breakdown(session, person_id, dimension):
    """
    A person's accuracy grouped by one dimension.

    Raises:
        ValueError: If dimension is not one of DIMENSIONS
    """
    if dimension not in BREAKDOWNS:
        raise ValueError(f"Unknown breakdown dimension '{dimension}'. Expected one of: {', '.join(DIMENSIONS)}")

    rows = await fetch_person_guess_rows(session, person_id)
    return await BREAKDOWNS[dimension](session, rows)


# ============================================================================
# PER-PERSON STREAKS AND HISTORY
# ============================================================================

async def person_best_streaks_by_year(session, person_id):
    """year -> best single-round streak in that year"""
    rows = await fetch_person_guess_rows(session, person_id)
    return stats_core.scan_streaks(
        rows,
        run_key=lambda r: r.round_id,
        group_key=lambda r: r.round_date.year
    )


async def person_streak_per_round(session, person_id):
    """round_id -> best streak in that round"""
    rows = await fetch_person_guess_rows(session, person_id)
    return stats_core.scan_streaks(rows, run_key=lambda r: r.round_id, group_key=lambda r: r.round_id)


async def person_correct_clue_rounds(session, person_id):
    """clue_number -> round ids where the person answered that clue number correctly"""
    rows = await fetch_person_guess_rows(session, person_id)
    clue_rounds = {}
    for row in sorted(rows, key=lambda r: (r.clue_number, r.round_id)):
        if row.is_correct:
            clue_rounds.setdefault(row.clue_number, []).append(row.round_id)
    return clue_rounds


async def person_round_history(session, person_id):
    """Rounds the person was registered in, newest first, with their score"""
    stmt = (
        select(
            Round,
            func.count(Clue.id).label('total_clues'),
            _correct_sum.label('correct_count'),
        )
        .join(RoundGuesser, RoundGuesser.round_id == Round.id)
        .outerjoin(Clue, Clue.round_id == Round.id)
        .outerjoin(Guess, and_(Guess.clue_id == Clue.id, Guess.guesser_person_id == RoundGuesser.person_id))
        .where(RoundGuesser.person_id == person_id)
        .group_by(Round.id)
        .order_by(Round.round_date.desc(), Round.round_number.desc())
    )
    result = await session.execute(stmt)

    history = []
    for round_row, total_clues, correct_count in result.all():
        entry = round_row.to_dict()
        entry["round_id"] = round_row.id
        entry["total_clues"] = int(total_clues)
        entry["correct_count"] = int(correct_count)
        entry["percentage"] = stats_core.round_percentage(
            stats_core.calculate_accuracy(entry["correct_count"], entry["total_clues"])
        )
        history.append(entry)
    return history


async def person_round_streak(session, round_id, person_id):
    """Best streak of a person in one round; clues they did not guess count as misses"""
    stmt = (
        select(Clue.clue_number, Guess.is_correct)
        .outerjoin(Guess, and_(Guess.clue_id == Clue.id, Guess.guesser_person_id == person_id))
        .where(Clue.round_id == round_id)
        .order_by(Clue.clue_number.asc())
    )
    result = await session.execute(stmt)
    rows = [
        stats_core.StreakRow(person_id, round_id, clue_number, bool(is_correct))
        for clue_number, is_correct in result.all()
    ]
    return stats_core.best_streak(rows)


# ============================================================================
# ROUND-LEVEL STATISTICS
# ============================================================================

async def round_guesser_results(session, round_id):
    """Score of each registered guesser of a round, by name"""
    stmt = (
        select(
            Person.id,
            Person.full_name,
            func.count(Guess.id).label('total_guesses'),
            _correct_sum.label('correct_guesses'),
        )
        .join(RoundGuesser, RoundGuesser.person_id == Person.id)
        .outerjoin(Clue, Clue.round_id == RoundGuesser.round_id)
        .outerjoin(Guess, and_(Guess.clue_id == Clue.id, Guess.guesser_person_id == Person.id))
        .where(RoundGuesser.round_id == round_id)
        .group_by(Person.id, Person.full_name)
        .order_by(Person.full_name.asc())
    )
    result = await session.execute(stmt)
    return [
        {
            "person_id": person_id,
            "full_name": full_name,
            "total_guesses": int(total),
            "correct_guesses": int(correct),
            "percentage": stats_core.round_percentage(stats_core.calculate_accuracy(int(correct), int(total))),
        }
        for person_id, full_name, total, correct in result.all()
    ]


async def rounds_overview_stats(session):
    total_rounds = (await session.execute(select(func.count(Round.id)))).scalar() or 0
    total_clues = (await session.execute(select(func.count(Clue.id)))).scalar() or 0
    guess_row = (await session.execute(select(func.count(Guess.id), _correct_sum))).one()

    total_guesses = int(guess_row[0] or 0)
    total_correct = int(guess_row[1] or 0)
    return {
        "total_rounds": int(total_rounds),
        "total_clues": int(total_clues),
        "total_guesses": total_guesses,
        "total_correct": total_correct,
        "accuracy": stats_core.round_percentage(stats_core.calculate_accuracy(total_correct, total_guesses)),
    }


async def rounds_stats_by_year(session):
    """Rounds, clues, guesses and accuracy per round year, oldest first"""
    stmt = (
        select(Round.id, Round.round_date, Clue.id, Guess.id, Guess.is_correct)
        .outerjoin(Clue, Clue.round_id == Round.id)
        .outerjoin(Guess, Guess.clue_id == Clue.id)
    )
    result = await session.execute(stmt)

    years = {}
    for round_id, round_date, clue_id, guess_id, is_correct in result.all():
        year = years.setdefault(round_date.year, {"rounds": set(), "clues": set(), "guesses": 0, "correct": 0})
        year["rounds"].add(round_id)
        if clue_id is not None:
            year["clues"].add(clue_id)
        if guess_id is not None:
            year["guesses"] += 1
            if is_correct:
                year["correct"] += 1

    return [
        {
            "year": year,
            "total_rounds": len(data["rounds"]),
            "total_clues": len(data["clues"]),
            "total_guesses": data["guesses"],
            "total_correct": data["correct"],
            "accuracy": stats_core.round_percentage(stats_core.calculate_accuracy(data["correct"], data["guesses"])),
        }
        for year, data in sorted(years.items())
    ]


def compute_answer_position_matrix(solutions, clues, correct_by_clue):
    """
    Count how often a clue at each position resolved to the solution word at each rank.

    Args:
        solutions: (round_id, word, word_order) tuples
        clues: (clue_id, round_id, clue_number, correct_answer) tuples
        correct_by_clue: clue_id -> number of correct guesses

    Returns:
        list of dicts ordered by solution_count, clue_number, answer_rank
    """
    ranks_by_round = defaultdict(lambda: defaultdict(list))
    solution_counts = defaultdict(int)
    for round_id, word, word_order in solutions:
        ranks_by_round[round_id][word.upper()].append(word_order)
        solution_counts[round_id] += 1

    cells = {}
    for clue_id, round_id, clue_number, correct_answer in clues:
        if round_id not in solution_counts:
            continue
        for rank in ranks_by_round[round_id].get((correct_answer or '').upper(), []):
            key = (solution_counts[round_id], clue_number, rank)
            cell = cells.setdefault(key, {"frequency_count": 0, "correct_count": 0})
            cell["frequency_count"] += 1
            cell["correct_count"] += correct_by_clue.get(clue_id, 0)

    return [
        {
            "solution_count": solution_count,
            "clue_number": clue_number,
            "answer_rank": rank,
            **cells[(solution_count, clue_number, rank)],
        }
        for solution_count, clue_number, rank in sorted(cells)
    ]


async def answer_position_matrix(session):
    """Answer-rank frequency per clue position, partitioned by the round's solution count"""
    solutions = (await session.execute(
        select(RoundSolution.round_id, RoundSolution.word, RoundSolution.word_order)
    )).all()
    clues = (await session.execute(
        select(Clue.id, Clue.round_id, Clue.clue_number, Clue.correct_answer)
    )).all()
    correct_rows = (await session.execute(
        select(Guess.clue_id, _correct_sum).group_by(Guess.clue_id)
    )).all()

    return compute_answer_position_matrix(solutions, clues, {clue_id: int(c) for clue_id, c in correct_rows})


async def answer_position_table(session):
    """Display form of the answer-position matrix with 'no data' cells"""
    return stats_core.build_answer_position_table(await answer_position_matrix(session))


# ============================================================================
# PLAYERS, CONSTRUCTORS AND EDITORS
# ============================================================================

async def _registered_guess_rows(session, *conditions):
    """(person_id, round_id, puzzle_id, is_correct) for guesses in rounds where the guesser is registered"""
    stmt = (
        select(Guess.guesser_person_id, Clue.round_id, Clue.puzzle_id, Guess.is_correct)
        .join(Clue, Guess.clue_id == Clue.id)
        .join(RoundGuesser, and_(
            RoundGuesser.round_id == Clue.round_id,
            RoundGuesser.person_id == Guess.guesser_person_id
        ))
        .where(*conditions)
    )
    result = await session.execute(stmt)
    return result.all()


async def persons_with_stats(session):
    """Every player with rounds played, clues guessed and accuracy, by name"""
    registrations = (await session.execute(
        select(Person.id, Person.full_name, RoundGuesser.round_id)
        .join(RoundGuesser, RoundGuesser.person_id == Person.id)
    )).all()

    players = {}
    for person_id, full_name, round_id in registrations:
        player = players.setdefault(person_id, {"full_name": full_name, "rounds": set(), "guessed": 0, "correct": 0})
        player["rounds"].add(round_id)

    for person_id, _round_id, _puzzle_id, is_correct in await _registered_guess_rows(session):
        player = players[person_id]
        player["guessed"] += 1
        if is_correct:
            player["correct"] += 1

    return sorted(
        (
            {
                "id": person_id,
                "full_name": player["full_name"],
                "rounds_played": len(player["rounds"]),
                "clues_guessed": player["guessed"],
                "correct_guesses": player["correct"],
                "percentage": stats_core.round_percentage(
                    stats_core.calculate_accuracy(player["correct"], player["guessed"])
                ),
            }
            for person_id, player in players.items()
        ),
        key=lambda p: (p["full_name"], p["id"])
    )


async def _puzzle_guess_totals(session):
    """puzzle_id -> {"clues": set of clue ids, "guesses": int, "correct": int}"""
    stmt = (
        select(Clue.puzzle_id, Clue.id, Guess.id, Guess.is_correct)
        .outerjoin(Guess, Guess.clue_id == Clue.id)
        .where(Clue.puzzle_id.isnot(None))
    )
    result = await session.execute(stmt)

    totals = {}
    for puzzle_id, clue_id, guess_id, is_correct in result.all():
        entry = totals.setdefault(puzzle_id, {"clues": set(), "guesses": 0, "correct": 0})
        entry["clues"].add(clue_id)
        if guess_id is not None:
            entry["guesses"] += 1
            if is_correct:
                entry["correct"] += 1
    return totals


def _combine_puzzle_totals(puzzle_ids, totals):
    clue_count = 0
    guesses = 0
    correct = 0
    for puzzle_id in puzzle_ids:
        entry = totals.get(puzzle_id)
        if entry is None:
            continue
        clue_count += len(entry["clues"])
        guesses += entry["guesses"]
        correct += entry["correct"]

    return {
        "puzzle_count": len(puzzle_ids),
        "clue_count": clue_count,
        "total_guesses": guesses,
        "correct_guesses": correct,
        "percentage": stats_core.round_percentage(stats_core.calculate_accuracy(correct, guesses)),
    }


async def _constructor_puzzles(session, constructor_id=None):
    """constructor person_id -> set of puzzle ids"""
    stmt = select(PuzzleConstructor.person_id, PuzzleConstructor.puzzle_id)
    if constructor_id is not None:
        stmt = stmt.where(PuzzleConstructor.person_id == constructor_id)
    result = await session.execute(stmt)

    puzzles = defaultdict(set)
    for person_id, puzzle_id in result.all():
        puzzles[person_id].add(puzzle_id)
    return puzzles


async def constructors_with_stats(session):
    """Every constructor with puzzle, clue and guess counts, by name"""
    puzzles_by_constructor = await _constructor_puzzles(session)
    totals = await _puzzle_guess_totals(session)
    names = await fetch_person_names(session, puzzles_by_constructor.keys())

    return sorted(
        (
            {"id": person_id, "full_name": names.get(person_id), **_combine_puzzle_totals(puzzle_ids, totals)}
            for person_id, puzzle_ids in puzzles_by_constructor.items()
        ),
        key=lambda c: (c["full_name"] or '', c["id"])
    )


async def constructor_stats(session, constructor_id):
    puzzle_ids = (await _constructor_puzzles(session, constructor_id)).get(constructor_id, set())
    totals = await _puzzle_guess_totals(session)
    return _combine_puzzle_totals(puzzle_ids, totals)


async def _player_results(session, puzzle_condition):
    """Per-player accuracy over clues from a set of puzzles, best accuracy first"""
    rows = await _registered_guess_rows(session, Clue.puzzle_id.in_(puzzle_condition))

    groups = {}
    for person_id, _round_id, _puzzle_id, is_correct in rows:
        counts = groups.setdefault(person_id, [0, 0])
        counts[0] += 1
        if is_correct:
            counts[1] += 1

    names = await fetch_person_names(session, groups.keys())
    return stats_core.sort_by_accuracy([
        {"person_id": person_id, "full_name": names.get(person_id), **stats_core.bucket_stats(*counts)}
        for person_id, counts in groups.items()
    ])


async def constructor_player_results(session, constructor_id):
    puzzles = select(PuzzleConstructor.puzzle_id).where(PuzzleConstructor.person_id == constructor_id)
    return await _player_results(session, puzzles)


async def _editor_puzzles(session, editor_id=None):
    stmt = select(Puzzle.editor_id, Puzzle.id).where(Puzzle.editor_id.isnot(None))
    if editor_id is not None:
        stmt = stmt.where(Puzzle.editor_id == editor_id)
    result = await session.execute(stmt)

    puzzles = defaultdict(set)
    for person_id, puzzle_id in result.all():
        puzzles[person_id].add(puzzle_id)
    return puzzles


async def editors_with_stats(session):
    """Every editor with puzzle, clue and guess counts, by name"""
    puzzles_by_editor = await _editor_puzzles(session)
    totals = await _puzzle_guess_totals(session)
    names = await fetch_person_names(session, puzzles_by_editor.keys())

    return sorted(
        (
            {"id": person_id, "full_name": names.get(person_id), **_combine_puzzle_totals(puzzle_ids, totals)}
            for person_id, puzzle_ids in puzzles_by_editor.items()
        ),
        key=lambda e: (e["full_name"] or '', e["id"])
    )


async def editor_stats(session, editor_id):
    puzzle_ids = (await _editor_puzzles(session, editor_id)).get(editor_id, set())
    totals = await _puzzle_guess_totals(session)
    return _combine_puzzle_totals(puzzle_ids, totals)


async def editor_player_results(session, editor_id):
    puzzles = select(Puzzle.id).where(Puzzle.editor_id == editor_id)
    return await _player_results(session, puzzles)


# ============================================================================
# PUZZLE LISTINGS AND CROSS RESULTS
# ============================================================================

async def _puzzle_details(session, puzzle_ids):
    """Puzzles newest first with their constructors, editor and the rounds that used them"""
    puzzle_ids = list(puzzle_ids)
    if not puzzle_ids:
        return []

    puzzles = (await session.execute(
        select(Puzzle.id, Puzzle.publication_date, Puzzle.editor_id)
        .where(Puzzle.id.in_(puzzle_ids))
        .order_by(Puzzle.publication_date.desc())
    )).all()

    constructors = defaultdict(list)
    links = await session.execute(
        select(PuzzleConstructor.puzzle_id, Person.id, Person.full_name)
        .join(Person, Person.id == PuzzleConstructor.person_id)
        .where(PuzzleConstructor.puzzle_id.in_(puzzle_ids))
        .order_by(PuzzleConstructor.puzzle_id, PuzzleConstructor.constructor_order.asc(), PuzzleConstructor.id.asc())
    )
    for puzzle_id, person_id, full_name in links.all():
        constructors[puzzle_id].append({"id": person_id, "full_name": full_name})

    rounds = defaultdict(list)
    used_in = await session.execute(
        select(Clue.puzzle_id, Round.id, Round.round_date, Round.round_number)
        .join(Round, Round.id == Clue.round_id)
        .where(Clue.puzzle_id.in_(puzzle_ids))
        .distinct()
        .order_by(Clue.puzzle_id, Round.round_date.asc(), Round.round_number.asc())
    )
    for puzzle_id, round_id, round_date, _round_number in used_in.all():
        rounds[puzzle_id].append((round_id, round_date))

    editor_names = await fetch_person_names(session, (editor_id for _id, _date, editor_id in puzzles))
    return [
        {
            "puzzle_id": puzzle_id,
            "publication_date": publication_date.isoformat(),
            "day_of_week": publication_date.strftime('%A'),
            "editor_id": editor_id,
            "editor_name": editor_names.get(editor_id),
            "constructors": constructors[puzzle_id],
            "round_ids": [round_id for round_id, _date in rounds[puzzle_id]],
            "round_dates": [round_date.isoformat() for _id, round_date in rounds[puzzle_id]],
        }
        for puzzle_id, publication_date, editor_id in puzzles
    ]


async def person_puzzles(session, person_id):
    """Every puzzle the person constructed or edited, newest first"""
    constructed = select(PuzzleConstructor.puzzle_id).where(PuzzleConstructor.person_id == person_id)
    result = await session.execute(
        select(Puzzle.id).where(or_(Puzzle.id.in_(constructed), Puzzle.editor_id == person_id))
    )
    return await _puzzle_details(session, result.scalars().all())


async def constructor_puzzles(session, constructor_id):
    puzzle_ids = (await _constructor_puzzles(session, constructor_id)).get(constructor_id, set())
    return await _puzzle_details(session, puzzle_ids)


async def editor_puzzles(session, editor_id):
    puzzle_ids = (await _editor_puzzles(session, editor_id)).get(editor_id, set())
    return await _puzzle_details(session, puzzle_ids)


async def constructor_editor_results(session, constructor_id):
    """
    Totals over one constructor's puzzles grouped by editor.

    Puzzles without an editor share an "Unknown" entry. Sorted by puzzle
    count, then editor name.
    """
    puzzle_ids = (await _constructor_puzzles(session, constructor_id)).get(constructor_id, set())
    if not puzzle_ids:
        return []

    by_editor = defaultdict(set)
    result = await session.execute(select(Puzzle.id, Puzzle.editor_id).where(Puzzle.id.in_(puzzle_ids)))
    for puzzle_id, editor_id in result.all():
        by_editor[editor_id].add(puzzle_id)

    totals = await _puzzle_guess_totals(session)
    names = await fetch_person_names(session, by_editor.keys())
    results = [
        {
            "editor_id": editor_id,
            "editor_name": names.get(editor_id, UNKNOWN_EDITOR),
            **_combine_puzzle_totals(editor_puzzle_ids, totals),
        }
        for editor_id, editor_puzzle_ids in by_editor.items()
    ]
    return sorted(results, key=lambda r: (-r["puzzle_count"], r["editor_name"]))


async def editor_constructor_results(session, editor_id):
    """Totals over one editor's puzzles grouped by constructor, most puzzles first"""
    puzzle_ids = (await _editor_puzzles(session, editor_id)).get(editor_id, set())
    if not puzzle_ids:
        return []

    by_constructor = defaultdict(set)
    result = await session.execute(
        select(PuzzleConstructor.person_id, PuzzleConstructor.puzzle_id)
        .where(PuzzleConstructor.puzzle_id.in_(puzzle_ids))
    )
    for person_id, puzzle_id in result.all():
        by_constructor[person_id].add(puzzle_id)

    totals = await _puzzle_guess_totals(session)
    names = await fetch_person_names(session, by_constructor.keys())
    results = [
        {
            "constructor_id": person_id,
            "full_name": names.get(person_id),
            **_combine_puzzle_totals(constructor_puzzle_ids, totals),
        }
        for person_id, constructor_puzzle_ids in by_constructor.items()
    ]
    return sorted(results, key=lambda r: (-r["puzzle_count"], r["full_name"] or ''))


# ============================================================================
# SEARCH
# ============================================================================

# Role name -> column holding the ids of persons in that role, in display order
ROLE_COLUMNS = (
    ('player', RoundGuesser.person_id),
    ('clue_giver', Round.clue_giver_id),
    ('constructor', PuzzleConstructor.person_id),
    ('editor', Puzzle.editor_id),
)


async def roles_by_person(session, person_ids):
    """person_id -> list of roles, one query per role rather than per person"""
    roles = {person_id: [] for person_id in person_ids}
    if not roles:
        return roles

    for role, column in ROLE_COLUMNS:
        result = await session.execute(select(column).where(column.in_(list(roles))).distinct())
        for person_id in result.scalars().all():
            roles[person_id].append(role)
    return roles


def _matching_round_sources(pattern, person_ids):
    """Subqueries of round ids matching a search, in the order their hits are listed"""
    sources = [
        select(RoundSolution.round_id).where(RoundSolution.word.ilike(pattern)),
        select(Round.id).where(or_(Round.description.ilike(pattern), Round.description2.ilike(pattern))),
        select(Clue.round_id).where(or_(Clue.clue_text.ilike(pattern), Clue.correct_answer.ilike(pattern))),
    ]
    if person_ids:
        sources += [
            select(Clue.round_id)
            .join(PuzzleConstructor, PuzzleConstructor.puzzle_id == Clue.puzzle_id)
            .where(PuzzleConstructor.person_id.in_(person_ids)),
            select(Round.id).where(Round.clue_giver_id.in_(person_ids)),
            select(RoundGuesser.round_id).where(RoundGuesser.person_id.in_(person_ids)),
            select(Clue.round_id)
            .join(Puzzle, Puzzle.id == Clue.puzzle_id)
            .where(Puzzle.editor_id.in_(person_ids)),
        ]
    return sources


async def _round_labels(session, round_ids):
    """round_id -> 'YYYY-MM-DD #n: WORD, WORD'"""
    if not round_ids:
        return {}

    words = defaultdict(list)
    solutions = await session.execute(
        select(RoundSolution.round_id, RoundSolution.word)
        .where(RoundSolution.round_id.in_(round_ids))
        .order_by(RoundSolution.round_id, RoundSolution.word_order.asc())
    )
    for round_id, word in solutions.all():
        words[round_id].append(word)

    rounds = await session.execute(
        select(Round.id, Round.round_date, Round.round_number).where(Round.id.in_(round_ids))
    )
    return {
        round_id: f"{round_date.isoformat()} #{round_number}: {', '.join(words[round_id])}"
        for round_id, round_date, round_number in rounds.all()
    }


async def search_all(session, term):
    """
    Search persons by name and rounds by solution word, description, clue
    text and correct answer. Rounds a matching person played, gave clues in,
    constructed or edited for are included as well.

    Every match is returned; paging is left to the caller.

    Returns:
        list of {"type", "id", "label"} dicts, persons first (with their
        "roles"), then rounds, each round listed once
    """
    term = (term or '').strip()
    if not term:
        return []
    pattern = f"%{term}%"

    persons = (await session.execute(
        select(Person.id, Person.full_name)
        .where(Person.full_name.ilike(pattern))
        .order_by(Person.full_name.asc(), Person.id.asc())
    )).all()
    person_ids = [person_id for person_id, _full_name in persons]
    roles = await roles_by_person(session, person_ids)

    results = [
        {"type": "person", "id": person_id, "label": full_name, "roles": roles[person_id]}
        for person_id, full_name in persons
    ]

    round_ids = []
    seen_round_ids = set()
    for source in _matching_round_sources(pattern, person_ids):
        matched = await session.execute(
            select(Round.id)
            .where(Round.id.in_(source))
            .order_by(Round.round_date.desc(), Round.round_number.asc())
        )
        for round_id in matched.scalars().all():
            if round_id not in seen_round_ids:
                seen_round_ids.add(round_id)
                round_ids.append(round_id)

    labels = await _round_labels(session, round_ids)
    results.extend({"type": "round", "id": round_id, "label": labels[round_id]} for round_id in round_ids)

    logger.debug(f"Search '{term}' matched {len(persons)} persons and {len(round_ids)} rounds")
    return results
