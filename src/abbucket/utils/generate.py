"""
Module generates synthetic user identifiers
"""

from typing import List

import numpy as np


def generate_user_ids(n_users: int, seed: int = 0, low: int = 10**12, high: int = 10**13) -> List[str]:
    """Random numeric ids shaped like production user ids (13 digits by default)."""
    if n_users < 0:
        raise ValueError("n_users must be >= 0")
    rng = np.random.default_rng(seed)
    return [str(v) for v in rng.integers(low, high, size=n_users, dtype=np.int64)]


def sequential_user_ids(n_users: int, start: int = 0) -> List[str]:
    return [str(v) for v in np.arange(start, start + n_users)]
