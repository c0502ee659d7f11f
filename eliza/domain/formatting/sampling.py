from typing import List, Optional, Sequence, TypeVar
import random

T = TypeVar("T")


def make_rng(seed: Optional[int] = None) -> random.Random:
    """Seeded generator when ``seed`` is set, otherwise freshly seeded"""
    return random.Random(seed) if seed is not None else random.Random()


def sample(items: Sequence[T], k: int, rng: random.Random) -> List[T]:
    """Random sample without replacement of at most ``k`` items"""
    if k <= 0 or not items:
        return []
    return rng.sample(list(items), min(k, len(items)))


def shuffled(items: Sequence[T], rng: random.Random) -> List[T]:
    """Shuffled copy; the input is left untouched"""
    result = list(items)
    rng.shuffle(result)
    return result


def choice(items: Sequence[T], rng: random.Random) -> Optional[T]:
    return rng.choice(list(items)) if items else None
