from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from server.services.similarity import count_inversions, edit_distance, max_inversions


@pytest.mark.parametrize(
    "a, b, expected",
    [
        ("", "", 0),
        ("paris", "", 5),
        ("", "abc", 3),
        ("kitten", "sitting", 3),
        ("pari", "paris", 1),
        ("flaw", "lawn", 2),
    ],
)
def test_edit_distance(a: str, b: str, expected: int) -> None:
    assert edit_distance(a, b) == expected
    assert edit_distance(b, a) == expected


def test_count_inversions_identical_order_is_zero() -> None:
    order = ["first", "second", "third", "fourth"]
    assert count_inversions(order, list(order)) == 0


def test_count_inversions_single_swap() -> None:
    reference = ["first", "second", "third", "fourth"]
    assert count_inversions(reference, ["first", "second", "fourth", "third"]) == 1


def test_count_inversions_full_reversal_matches_maximum() -> None:
    reference = ["a", "b", "c", "d", "e"]
    assert count_inversions(reference, list(reversed(reference))) == max_inversions(5)


def test_count_inversions_rejects_unknown_items() -> None:
    with pytest.raises(ValueError):
        count_inversions(["a", "b"], ["a", "z"])


def test_max_inversions_guards_small_inputs() -> None:
    assert max_inversions(0) == 0
    assert max_inversions(1) == 0
    assert max_inversions(2) == 1
    assert max_inversions(4) == 6
