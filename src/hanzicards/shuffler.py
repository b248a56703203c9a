"""Deck shuffling."""

import random
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


def shuffle(entries: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """Returns a uniformly random permutation of `entries`.

    Fisher-Yates over a copy, walking down from the last position. The input
    sequence is left untouched.

    Args:
        entries: The items to shuffle. May be empty.
        rng: Random source. The module-level generator is used when omitted.

    Returns:
        A new list holding the same items in random order.
    """
    randrange = rng.randrange if rng is not None else random.randrange
    result = list(entries)
    for i in range(len(result) - 1, 0, -1):
        j = randrange(i + 1)
        result[i], result[j] = result[j], result[i]
    return result
