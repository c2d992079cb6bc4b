"""String and ordering similarity helpers shared by the graders."""

from __future__ import annotations

from typing import Dict, Hashable, List, Sequence, TypeVar

T = TypeVar("T", bound=Hashable)


def edit_distance(a: str, b: str) -> int:
    """Return the Levenshtein distance between *a* and *b*.

    Insertions, deletions and substitutions all cost one.  Only two rows of
    the dynamic-programming table are kept in memory.
    """

    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    if len(a) < len(b):
        a, b = b, a

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + cost,
                )
            )
        previous = current
    return previous[-1]


def count_inversions(reference_order: Sequence[T], candidate_order: Sequence[T]) -> int:
    """Count candidate pairs that appear out of order relative to the reference.

    Each candidate item is mapped to its index in *reference_order* and every
    pair ``(i, j)`` with ``i < j`` whose mapped indices descend is counted.
    Raises :class:`ValueError` when the candidate contains an item that the
    reference does not.
    """

    positions: Dict[T, int] = {}
    for index, item in enumerate(reference_order):
        positions.setdefault(item, index)

    mapped: List[int] = []
    for item in candidate_order:
        if item not in positions:
            raise ValueError(f"item {item!r} is not part of the reference order")
        mapped.append(positions[item])

    inversions = 0
    for i in range(len(mapped)):
        for j in range(i + 1, len(mapped)):
            if mapped[i] > mapped[j]:
                inversions += 1
    return inversions


def max_inversions(n: int) -> int:
    """Return the inversion count of a fully reversed ordering of *n* items."""

    if n <= 1:
        return 0
    return n * (n - 1) // 2


__all__ = ["count_inversions", "edit_distance", "max_inversions"]
