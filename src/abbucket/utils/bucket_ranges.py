from typing import Dict, Iterable, List, Set, Tuple, Union

from abbucket.constants import MAX_BUCKET, MIN_BUCKET
from abbucket.exceptions import BucketAlreadyUsed, DuplicateBucketInRequest, InvalidBucketRange

RangeSpec = Union[str, int, Tuple[int, int], List[int]]


def parse_bucket_range(spec: RangeSpec) -> Tuple[int, int]:
    """
    Parse a closed bucket range.

    Accepts "start-end", a single "n", an int, or a (start, end) pair.
    Bounds are not checked here, only the shape.
    """
    if isinstance(spec, bool):
        raise InvalidBucketRange(f"invalid bucket range: {spec!r}")
    if isinstance(spec, int):
        return spec, spec
    if isinstance(spec, str):
        parts = [p.strip() for p in spec.strip().split("-")]
        if len(parts) == 1:
            parts = parts * 2
        if len(parts) != 2:
            raise InvalidBucketRange(f"invalid bucket range: {spec!r}")
        try:
            start, end = int(parts[0]), int(parts[1])
        except ValueError:
            raise InvalidBucketRange(f"invalid bucket range: {spec!r}") from None
    else:
        try:
            start, end = spec
        except (TypeError, ValueError):
            raise InvalidBucketRange(f"invalid bucket range: {spec!r}") from None
        if not isinstance(start, int) or not isinstance(end, int):
            raise InvalidBucketRange(f"invalid bucket range: {spec!r}")

    if start > end:
        raise InvalidBucketRange(f"invalid bucket range: {spec!r} (start > end)")
    return start, end


def expand_bucket_ranges(ranges: Iterable[RangeSpec], used: Dict[int, str]) -> Set[int]:
    """
    Expand ranges into a bucket set, validating every bucket.

    ``used`` maps buckets already owned in the layer to their experiment.
    Checks run per bucket: bounds, then ownership, then repeats in this request.
    """
    buckets: Set[int] = set()
    for spec in ranges:
        start, end = parse_bucket_range(spec)
        if start < MIN_BUCKET or end > MAX_BUCKET:
            raise InvalidBucketRange(
                f"bucket range {spec!r} must lie within [{MIN_BUCKET}, {MAX_BUCKET}]"
            )
        for bucket in range(start, end + 1):
            if bucket in used:
                raise BucketAlreadyUsed(bucket, used[bucket])
            if bucket in buckets:
                raise DuplicateBucketInRequest(bucket)
            buckets.add(bucket)
    return buckets


def format_buckets(buckets: Iterable[int]) -> str:
    """Render buckets compactly, e.g. [1, 2, 3, 7] -> "1-3,7"."""
    ordered = sorted(set(buckets))
    chunks = []
    i = 0
    while i < len(ordered):
        j = i
        while j + 1 < len(ordered) and ordered[j + 1] == ordered[j] + 1:
            j += 1
        chunks.append(str(ordered[i]) if i == j else f"{ordered[i]}-{ordered[j]}")
        i = j + 1
    return ",".join(chunks)
