"""Random question selection for a new exam session."""
import random
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


def shuffle(items: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """Fisher-Yates shuffle over a copy; every permutation equally likely."""
    rng = rng or random.SystemRandom()
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def select_questions(valid_questions: Sequence[T], requested_count: int, rng: Optional[random.Random] = None) -> List[T]:
    """
    Pick min(requested_count, len(valid_questions)) distinct questions in random order.

    A pool no larger than the request is returned whole, still shuffled.
    """
    if requested_count <= 0:
        return []
    seen = set()
    pool = []
    for question in valid_questions:
        key = getattr(question, "id", id(question))
        if key not in seen:
            seen.add(key)
            pool.append(question)
    shuffled = shuffle(pool, rng)
    if len(shuffled) <= requested_count:
        return shuffled
    return shuffled[:requested_count]
