"""
Ranking of leaderboard entries
---

Within one difficulty, entries are ordered (best first) by:
1. correct pieces, more is better
2. wrong pieces, fewer is better. Entries without a count go after those with one
3. memorize time, faster is better
4. solution time, faster is better

The rank of an entry is 1 + the number of entries that are strictly better. Ties share a rank.
"""

from collections.abc import Iterable

from src.core.models import LeaderboardEntry

DISPLAY_LIMIT = 200

SortKey = tuple[int, tuple[bool, int], float, float]


def sort_key(entry: LeaderboardEntry) -> SortKey:
    wrong = entry.total_wrong_pieces
    return (
        -entry.correct_pieces,
        (wrong is None, wrong if wrong is not None else 0),
        entry.memorize_time_seconds,
        entry.solution_time_seconds,
    )


def precedes(first: LeaderboardEntry, second: LeaderboardEntry) -> bool:
    """True if `first` ranks strictly better than `second`."""
    return sort_key(first) < sort_key(second)


def rank_entries(
    entries: Iterable[LeaderboardEntry], limit: int | None = DISPLAY_LIMIT
) -> list[LeaderboardEntry]:
    """Sorted best first. Older entries win a full tie, so the order is total for a given set of entries."""
    ordered = sorted(entries, key=lambda entry: (sort_key(entry), entry.created_at))
    return ordered if limit is None else ordered[:limit]


def rank_of(candidate: LeaderboardEntry, entries: Iterable[LeaderboardEntry]) -> int:
    """
    1-based rank the candidate would get among the entries of its own difficulty.

    NOTE: a count, independent of the display limit. A candidate outside the top 200 still gets its real rank.
    """
    return 1 + sum(
        1
        for entry in entries
        if entry.difficulty == candidate.difficulty and precedes(entry, candidate)
    )
