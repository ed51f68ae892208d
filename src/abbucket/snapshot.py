from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from abbucket.constants import MAX_BUCKET, MIN_BUCKET
from abbucket.exceptions import InvalidBucketRange
from abbucket.models.group import Group

GroupKey = Tuple[str, str]


@dataclass(frozen=True)
class AllocationSnapshot:
    """
    Read-only view of bucket ownership and group tables.

    ``owners`` maps layer id to a 100-tuple where index i holds the owner of
    bucket i + 1 (or None). ``groups`` maps (layer id, experiment id) to the
    name-sorted group table. Instances are never mutated after construction,
    so any number of threads may read one without locking.
    """

    owners: Mapping[str, Tuple[Optional[str], ...]] = field(default_factory=lambda: MappingProxyType({}))
    groups: Mapping[GroupKey, Tuple[Group, ...]] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self):
        object.__setattr__(self, "owners", MappingProxyType(dict(self.owners)))
        object.__setattr__(self, "groups", MappingProxyType(dict(self.groups)))

    def has_experiments(self, layer_id: str) -> bool:
        slots = self.owners.get(layer_id)
        return slots is not None and any(owner is not None for owner in slots)

    def experiment_for_bucket(self, layer_id: str, bucket: int) -> Optional[str]:
        if bucket < MIN_BUCKET or bucket > MAX_BUCKET:
            raise InvalidBucketRange(f"bucket {bucket} must lie within [{MIN_BUCKET}, {MAX_BUCKET}]")
        slots = self.owners.get(layer_id)
        if slots is None:
            return None
        return slots[bucket - 1]

    def groups_for(self, layer_id: str, experiment_id: str) -> Optional[Tuple[Group, ...]]:
        return self.groups.get((layer_id, experiment_id))
