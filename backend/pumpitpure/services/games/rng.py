import random
from typing import Optional


def random_int(low: int, high: int, rng: Optional[random.Random] = None) -> int:
    """Return a uniformly distributed integer in the inclusive range [low, high]."""
    if low > high:
        raise ValueError(f"random_int range is inverted: {low} > {high}")
    source = rng if rng is not None else random
    return source.randint(int(low), int(high))


def make_rng(seed=None) -> random.Random:
    """Build the RNG a game owns. A seed of None gives a nondeterministic stream."""
    if seed is None or seed == '':
        return random.Random()
    return random.Random(int(seed))
