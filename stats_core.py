"""
Core statistics utilities shared by the stats and leaderboard services.

This module contains pure functions with no database access: percentages,
medians, answer normalisation, weekday ordering and the single streak scan
that every streak statistic is built on.
"""
import re
from collections import namedtuple

# Display order for day-of-week breakdowns (index 0 = Monday)
DAY_NAMES = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']

NON_ALPHANUMERIC = re.compile(r'[^A-Za-z0-9]')

# One guess as consumed by the streak scan
StreakRow = namedtuple('StreakRow', ['person_id', 'round_id', 'clue_number', 'is_correct', 'year'])
StreakRow.__new__.__defaults__ = (None,)

_NO_RUN = object()


def calculate_accuracy(correct, total):
    """
    Calculate accuracy as a percentage.

    Args:
        correct: Number of correct guesses
        total: Number of guesses

    Returns:
        float: Accuracy (0-100), or 0 if there were no guesses
    """
    if not total:
        return 0.0
    return (correct / total) * 100


def round_percentage(value):
    """Round a percentage to one decimal place"""
    return round(float(value), 1)


def calculate_median(values):
    """
    Median of a list of numbers.

    Even-length lists average the two middle values; an empty list yields 0.
    """
    if not values:
        return 0

    ordered = sorted(values)
    count = len(ordered)
    middle = count // 2

    if count % 2 == 0:
        return (ordered[middle - 1] + ordered[middle]) / 2

    return ordered[middle]


def answer_length(answer):
    """Length of an answer counting only letters and digits ("NEW YORK" -> 7)"""
    if not answer:
        return 0
    return len(NON_ALPHANUMERIC.sub('', answer))


def encode_day_of_week(value):
    """Encode a date as Sunday=1 .. Saturday=7"""
    return value.isoweekday() % 7 + 1


def day_of_week_index(encoded_day):
    """Map a Sunday=1 .. Saturday=7 day to a Monday-first index (Monday=0, Sunday=6)"""
    return (int(encoded_day) + 5) % 7


def decade_of(year):
    return (int(year) // 10) * 10


def scan_streaks(rows, run_key, group_key, order_key=None):
    """
    Longest runs of consecutive correct guesses.

    Every streak statistic goes through this scan. A streak is reset to 0
    whenever run_key changes (a streak never spans two rounds, so the run key
    always includes the round) and on every incorrect guess. The best streak
    seen is tracked per group_key, which may be coarser than the run
    (person, year) or identical to it (person and round).

    Args:
        rows: Guesses with an is_correct attribute, ordered so each run is
              contiguous and clue numbers increase within it
        run_key: Function returning the streak scope of a row
        group_key: Function returning the bucket a streak is credited to
        order_key: Optional sort key applied to rows before scanning

    Returns:
        dict: group -> best streak. Groups with no correct guess are absent.
    """
    if order_key is not None:
        rows = sorted(rows, key=order_key)

    best = {}
    previous_run = _NO_RUN
    streak = 0

    for row in rows:
        run = run_key(row)
        if run != previous_run:
            streak = 0
            previous_run = run

        if row.is_correct:
            streak += 1
            group = group_key(row)
            if streak > best.get(group, 0):
                best[group] = streak
        else:
            streak = 0

    return best


def best_streak(rows):
    """Best single-round streak over one person's guesses ordered by round and clue number"""
    per_round = scan_streaks(rows, run_key=lambda r: r.round_id, group_key=lambda r: r.round_id)
    return max(per_round.values(), default=0)


def keys_matching_best(values_by_key, best_by_group, group_of):
    """
    Collect the keys whose value equals their group's best.

    Used for leaderboard tie-sets: values_by_key maps (person, round) to a
    round score or round streak and best_by_group maps person to that
    person's maximum. A second pass is required because a round's local
    value is only known to be the maximum once every round was seen.

    Returns:
        dict: group -> list of keys, in key order
    """
    matches = {}
    for key in sorted(values_by_key):
        group = group_of(key)
        if group in best_by_group and values_by_key[key] == best_by_group[group]:
            matches.setdefault(group, []).append(key)
    return matches


def summarize_round_results(round_results):
    """
    Min/max/mean/median of per-round scores.

    Args:
        round_results: Iterable of (correct_count, clue_count) pairs, one per round

    Returns:
        dict with *_correct (counts) and *_percentage (1 decimal) fields, all 0 when empty
    """
    correct_counts = []
    percentages = []
    for correct_count, clue_count in round_results:
        correct_counts.append(int(correct_count or 0))
        percentages.append(calculate_accuracy(int(correct_count or 0), int(clue_count or 0)))

    if not correct_counts:
        return {
            "min_correct": 0,
            "max_correct": 0,
            "mean_correct": 0,
            "median_correct": 0,
            "min_percentage": 0,
            "max_percentage": 0,
            "mean_percentage": 0,
            "median_percentage": 0,
        }

    return {
        "min_correct": min(correct_counts),
        "max_correct": max(correct_counts),
        "mean_correct": round_percentage(sum(correct_counts) / len(correct_counts)),
        "median_correct": calculate_median(correct_counts),
        "min_percentage": round_percentage(min(percentages)),
        "max_percentage": round_percentage(max(percentages)),
        "mean_percentage": round_percentage(sum(percentages) / len(percentages)),
        "median_percentage": round_percentage(calculate_median(percentages)),
    }


def bucket_stats(total_answered, correct_count):
    """Shared fields of one breakdown bucket"""
    total_answered = int(total_answered or 0)
    correct_count = int(correct_count or 0)
    return {
        "total_answered": total_answered,
        "correct_count": correct_count,
        "percentage": round_percentage(calculate_accuracy(correct_count, total_answered)),
    }


def sort_by_accuracy(buckets):
    """Sort buckets by percentage descending, then total_answered descending"""
    return sorted(
        buckets,
        key=lambda b: (
            calculate_accuracy(b["correct_count"], b["total_answered"]),
            b["total_answered"]
        ),
        reverse=True
    )


def build_answer_position_table(matrix_rows):
    """
    Expand answer-position matrix rows into display tables.

    For each solution count, each clue number gets one cell per answer rank
    1..solution_count holding the count and its share of the row total.
    Ranks never seen at that clue number carry None for both ("no data")
    instead of 0%.

    Args:
        matrix_rows: Dicts with solution_count, clue_number, answer_rank, frequency_count

    Returns:
        list of {"solution_count", "rows": [{"clue_number", "total", "cells"}]}
    """
    by_solution_count = {}
    for row in matrix_rows:
        counts = by_solution_count.setdefault(int(row["solution_count"]), {})
        counts.setdefault(int(row["clue_number"]), {})[int(row["answer_rank"])] = int(row["frequency_count"])

    tables = []
    for solution_count in sorted(by_solution_count):
        rows = []
        for clue_number in sorted(by_solution_count[solution_count]):
            counts = by_solution_count[solution_count][clue_number]
            row_total = sum(counts.get(rank, 0) for rank in range(1, solution_count + 1))

            cells = []
            for rank in range(1, solution_count + 1):
                count = counts.get(rank, 0)
                if count > 0:
                    cells.append({
                        "answer_rank": rank,
                        "count": count,
                        "frequency": round_percentage(calculate_accuracy(count, row_total)),
                    })
                else:
                    cells.append({"answer_rank": rank, "count": None, "frequency": None})

            rows.append({"clue_number": clue_number, "total": row_total, "cells": cells})

        tables.append({"solution_count": solution_count, "rows": rows})

    return tables
