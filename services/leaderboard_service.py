"""
Leaderboards: highest round score and longest streak per player.

Unlike the per-person statistics, leaderboards count every stored guess,
whether or not the guesser is registered for the round.
"""
from loguru import logger
from sqlalchemy import select

import stats_core
from models.clue import Clue
from models.guess import Guess
from models.person import Person

LEADERBOARD_CATEGORIES = ('highest_score', 'longest_streak')


async def fetch_guess_rows(session, round_ids=None):
    """
    Every guess as a StreakRow, ordered by person, round and clue number.

    Args:
        round_ids: Optional iterable restricting the rows to those rounds
    """
    stmt = (
        select(Guess.guesser_person_id, Clue.round_id, Clue.clue_number, Guess.is_correct)
        .join(Clue, Guess.clue_id == Clue.id)
        .order_by(Guess.guesser_person_id.asc(), Clue.round_id.asc(), Clue.clue_number.asc())
    )
    if round_ids is not None:
        stmt = stmt.where(Clue.round_id.in_(list(round_ids)))

    result = await session.execute(stmt)
    return [
        stats_core.StreakRow(person_id, round_id, clue_number, bool(is_correct))
        for person_id, round_id, clue_number, is_correct in result.all()
    ]


def _run_key(row):
    return (row.person_id, row.round_id)


def _person_of(key):
    return key[0]


def compute_round_scores(rows):
    """(person_id, round_id) -> {"correct", "total"}"""
    scores = {}
    for row in rows:
        entry = scores.setdefault(_run_key(row), {"correct": 0, "total": 0})
        entry["total"] += 1
        if row.is_correct:
            entry["correct"] += 1
    return scores


def compute_highest_scores(rows):
    """person_id -> best round score"""
    best = {}
    for (person_id, _round_id), score in compute_round_scores(rows).items():
        if score["correct"] > best.get(person_id, -1):
            best[person_id] = score["correct"]
    return best


def compute_highest_score_round_ids(rows):
    """person_id -> every round id where the person reached their best score"""
    correct_by_key = {key: score["correct"] for key, score in compute_round_scores(rows).items()}
    best = compute_highest_scores(rows)
    matches = stats_core.keys_matching_best(correct_by_key, best, _person_of)
    return {person_id: [round_id for _person, round_id in keys] for person_id, keys in matches.items()}


def compute_longest_streaks(rows):
    """person_id -> longest streak in any single round"""
    return stats_core.scan_streaks(rows, run_key=_run_key, group_key=lambda r: r.person_id)


def compute_longest_streak_round_ids(rows):
    """
    person_id -> every round whose best streak equals the person's longest streak.

    Pass one finds the best streak of every (person, round); pass two keeps
    the rounds matching each person's overall best.
    """
    per_round = stats_core.scan_streaks(rows, run_key=_run_key, group_key=_run_key)

    best = {}
    for (person_id, _round_id), streak in per_round.items():
        best[person_id] = max(best.get(person_id, 0), streak)

    matches = stats_core.keys_matching_best(per_round, best, _person_of)
    return {person_id: [round_id for _person, round_id in keys] for person_id, keys in matches.items()}


async def leaderboard_highest_scores(session):
    return compute_highest_scores(await fetch_guess_rows(session))


async def leaderboard_highest_score_round_ids(session):
    return compute_highest_score_round_ids(await fetch_guess_rows(session))


async def leaderboard_longest_streaks(session):
    return compute_longest_streaks(await fetch_guess_rows(session))


async def leaderboard_longest_streak_round_ids(session):
    return compute_longest_streak_round_ids(await fetch_guess_rows(session))


async def person_scores_for_rounds(session, round_ids):
    """person_id -> round_id -> {"correct", "total"} for the given rounds"""
    round_ids = list(round_ids or [])
    if not round_ids:
        return {}

    scores = {}
    rows = await fetch_guess_rows(session, round_ids)
    for (person_id, round_id), score in compute_round_scores(rows).items():
        scores.setdefault(person_id, {})[round_id] = score
    return scores


async def get_leaderboard_data(session, category="highest_score", limit=20):
    """
    Leaderboard entries for a category, best first.

    Args:
        category: 'highest_score' or 'longest_streak'
        limit: Maximum number of entries (None for all)

    Returns:
        list of dicts with person_id, full_name, value and round_ids
    """
    if category not in LEADERBOARD_CATEGORIES:
        raise ValueError(f"Unknown leaderboard category '{category}'")

    # === Part 1: One pass over every guess ===
    rows = await fetch_guess_rows(session)
    logger.debug(f"Building {category} leaderboard from {len(rows)} guesses")

    # === Part 2: Best value and the rounds that reached it ===
    if category == "highest_score":
        values = compute_highest_scores(rows)
        round_ids = compute_highest_score_round_ids(rows)
    else:
        values = compute_longest_streaks(rows)
        round_ids = compute_longest_streak_round_ids(rows)

    if not values:
        return []

    # === Part 3: Names ===
    names_result = await session.execute(
        select(Person.id, Person.full_name).where(Person.id.in_(list(values)))
    )
    names = dict(names_result.all())

    # === Part 4: Sort by value, then name ===
    entries = [
        {
            "person_id": person_id,
            "full_name": names.get(person_id),
            "value": value,
            "round_ids": round_ids.get(person_id, []),
        }
        for person_id, value in values.items()
    ]
    entries.sort(key=lambda e: (-e["value"], e["full_name"] or '', e["person_id"]))

    logger.info(f"{category} leaderboard has {len(entries)} players")
    return entries[:limit] if limit is not None else entries
