"""Question selection: bounded, distinct, drawn from the pool, uniformly shuffled."""
import random
from collections import Counter
from types import SimpleNamespace

from exam_engine.selector import select_questions, shuffle


def _pool(n):
    return [SimpleNamespace(id=f"q{i}") for i in range(n)]


def test_k_le_n_returns_k_distinct_from_pool():
    pool = _pool(20)
    for seed in range(50):
        picked = select_questions(pool, 7, random.Random(seed))
        ids = [q.id for q in picked]
        assert len(ids) == 7
        assert len(set(ids)) == 7
        assert set(ids) <= {q.id for q in pool}


def test_k_gt_n_returns_whole_pool_shuffled():
    pool = _pool(5)
    orders = set()
    for seed in range(30):
        picked = select_questions(pool, 10, random.Random(seed))
        assert sorted(q.id for q in picked) == sorted(q.id for q in pool)
        orders.add(tuple(q.id for q in picked))
    assert len(orders) > 1


def test_same_seed_same_selection():
    pool = _pool(12)
    first = select_questions(pool, 4, random.Random(99))
    second = select_questions(pool, 4, random.Random(99))
    assert [q.id for q in first] == [q.id for q in second]


def test_non_positive_request_selects_nothing():
    assert select_questions(_pool(3), 0) == []
    assert select_questions(_pool(3), -2) == []


def test_duplicate_pool_entries_are_selected_once():
    q = SimpleNamespace(id="dup")
    picked = select_questions([q, q, SimpleNamespace(id="other")], 5, random.Random(1))
    assert sorted(x.id for x in picked) == ["dup", "other"]


def test_input_pool_is_not_mutated():
    pool = _pool(6)
    before = [q.id for q in pool]
    select_questions(pool, 3, random.Random(5))
    assert [q.id for q in pool] == before


def test_selection_is_uniform():
    # Each of 5 questions should be picked ~ 2/5 of the time when choosing 2
    pool = _pool(5)
    rng = random.Random(2024)
    runs = 5000
    counts = Counter()
    for _ in range(runs):
        counts.update(q.id for q in select_questions(pool, 2, rng))
    expected = runs * 2 / 5
    for q in pool:
        assert abs(counts[q.id] - expected) < expected * 0.1


def test_shuffle_has_no_position_bias():
    rng = random.Random(7)
    runs = 6000
    first = Counter(shuffle([0, 1, 2], rng)[0] for _ in range(runs))
    for value in (0, 1, 2):
        assert abs(first[value] - runs / 3) < runs / 3 * 0.1
