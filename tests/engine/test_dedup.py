from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from adg_rules.engine.dedup import DeduplicationFilter, optimal_bit_size, optimal_hash_count


def test_filter_accepts_once() -> None:
    dedup = DeduplicationFilter(expected_insertions=1000, false_positive_rate=0.01)
    assert dedup.test_and_add("||ads.example.com^")
    assert not dedup.test_and_add("||ads.example.com^")
    assert dedup.test_and_add("||ads.example.org^")
    assert dedup.approximate_count == 2


def test_filter_is_exact_on_text() -> None:
    dedup = DeduplicationFilter(expected_insertions=1000, false_positive_rate=0.001)
    assert dedup.test_and_add("rule1")
    assert dedup.test_and_add("rule1 ")
    assert dedup.test_and_add("RULE1")
    assert dedup.might_contain("rule1")
    assert not dedup.might_contain("never-added-line")


def test_filter_sizing_matches_expected_parameters() -> None:
    dedup = DeduplicationFilter()
    assert dedup.expected_insertions == 1_000_000
    assert dedup.bit_size == optimal_bit_size(1_000_000, 0.03)
    # ~7.3 bits per element and 5 hashes for a 3% false positive target
    assert 7_200_000 < dedup.bit_size < 7_400_000
    assert dedup.hash_count == optimal_hash_count(1_000_000, dedup.bit_size) == 5


@pytest.mark.parametrize(
    ("expected", "rate"),
    [(0, 0.01), (-5, 0.01), (100, 0.0), (100, 1.0), (100, 1.5)],
)
def test_filter_rejects_invalid_sizing(expected: int, rate: float) -> None:
    with pytest.raises(ValueError):
        DeduplicationFilter(expected, rate)


def test_filter_false_positive_rate_is_bounded() -> None:
    dedup = DeduplicationFilter(expected_insertions=10_000, false_positive_rate=0.01)
    for index in range(10_000):
        dedup.test_and_add(f"inserted-{index}")
    false_positives = sum(dedup.might_contain(f"probe-{index}") for index in range(10_000))
    assert false_positives < 300


def test_filter_race_on_same_line_has_single_winner() -> None:
    dedup = DeduplicationFilter(expected_insertions=1000, false_positive_rate=0.001)
    threads = 16
    barrier = Barrier(threads)

    def _attempt(_index: int) -> bool:
        barrier.wait()
        return dedup.test_and_add("||contended.example^")

    with ThreadPoolExecutor(max_workers=threads) as executor:
        outcomes = list(executor.map(_attempt, range(threads)))
    assert outcomes.count(True) == 1


def test_filter_concurrent_distinct_lines_all_accepted() -> None:
    dedup = DeduplicationFilter(expected_insertions=100_000, false_positive_rate=0.0001)

    def _insert(worker: int) -> int:
        return sum(dedup.test_and_add(f"w{worker}-line-{i}") for i in range(2000))

    with ThreadPoolExecutor(max_workers=8) as executor:
        accepted = sum(executor.map(_insert, range(8)))
    assert accepted == 16_000
    assert dedup.approximate_count == 16_000
