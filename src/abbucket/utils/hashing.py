"""
Stable hashing used for both assignment stages.

The digest algorithm, truncation width and byte order are fixed: SHA-256 over
the UTF-8 bytes, first 4 bytes read as a big-endian unsigned integer.
Changing any of them reshuffles every live user.
"""

import hashlib

from abbucket.constants import BUCKET_SPACE


def stable_hash(text: str) -> int:
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
    return int(digest[:8], 16)


def bucket_for(layer_id: str, user_id: str) -> int:
    """Map a user to a bucket in [1, 100] within a layer."""
    return stable_hash(f"{layer_id}{user_id}") % BUCKET_SPACE + 1


def group_point(experiment_id: str, user_id: str, total_weight: float) -> float:
    """Position of the user on the [0, total_weight) weight line of an experiment."""
    return (stable_hash(f"{experiment_id}{user_id}") % 100) / 100 * total_weight
