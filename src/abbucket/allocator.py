from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from abbucket.constants import BUCKET_SPACE, MAX_BUCKET, MIN_BUCKET
from abbucket.exceptions import ExperimentAlreadyRegistered, InsufficientBuckets, InvalidBucketRange
from abbucket.models.group import Group
from abbucket.snapshot import AllocationSnapshot
from abbucket.utils.bucket_ranges import RangeSpec, expand_bucket_ranges, format_buckets

logger = logging.getLogger(__name__)


@dataclass
class Layer:
    """Traffic layer with a fixed space of 100 buckets."""

    layer_id: str
    slots: List[Optional[str]] = field(default_factory=list)
    ratios: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        if not self.layer_id:
            raise ValueError("layer_id cannot be empty")
        if not self.slots:
            self.slots = [None] * BUCKET_SPACE
        if len(self.slots) != BUCKET_SPACE:
            raise ValueError(f"a layer must have exactly {BUCKET_SPACE} slots")

    def used_buckets(self) -> Dict[int, str]:
        return {i + 1: owner for i, owner in enumerate(self.slots) if owner is not None}

    def free_buckets(self) -> List[int]:
        """Unowned buckets in ascending order."""
        return [i + 1 for i, owner in enumerate(self.slots) if owner is None]

    def buckets_of(self, experiment_id: str) -> Tuple[int, ...]:
        return tuple(i + 1 for i, owner in enumerate(self.slots) if owner == experiment_id)

    def add_experiment(
        self, experiment_id: str, ratio: float, explicit_ranges: Optional[Iterable[RangeSpec]] = None
    ) -> Tuple[int, ...]:
        """
        Give an experiment its buckets.

        With explicit ranges the experiment owns exactly their union and
        ``ratio`` is informational. Without them it takes the first
        ceil(ratio * 100) free buckets in ascending order. Nothing is written
        unless every check passes.
        """
        if experiment_id in self.ratios:
            raise ExperimentAlreadyRegistered(
                f"experiment '{experiment_id}' already exists in layer '{self.layer_id}'"
            )

        if explicit_ranges is not None:
            assigned = sorted(expand_bucket_ranges(explicit_ranges, self.used_buckets()))
            if not assigned:
                raise InvalidBucketRange("explicit bucket ranges must not be empty")
        else:
            required = required_buckets(ratio)
            free = self.free_buckets()
            if required > len(free):
                raise InsufficientBuckets(experiment_id, required, len(free))
            assigned = free[:required]

        for bucket in assigned:
            self.slots[bucket - 1] = experiment_id
        self.ratios[experiment_id] = ratio
        return tuple(assigned)

    def get_layer_info(self) -> Dict[str, Any]:
        free = len(self.free_buckets())
        experiments = {}
        for experiment_id, ratio in self.ratios.items():
            buckets = self.buckets_of(experiment_id)
            experiments[experiment_id] = {
                "ratio": ratio,
                "bucket_count": len(buckets),
                "buckets": format_buckets(buckets),
            }
        return {
            "layer_id": self.layer_id,
            "total_buckets": BUCKET_SPACE,
            "free_buckets": free,
            "used_buckets": BUCKET_SPACE - free,
            "utilization_percentage": (BUCKET_SPACE - free) / BUCKET_SPACE * 100,
            "experiments": experiments,
        }


def required_buckets(ratio: float) -> int:
    # rounding first keeps 0.07 * 100 == 7.000000000000001 at 7 buckets
    required = math.ceil(round(ratio * BUCKET_SPACE, 9))
    # any positive ratio owns at least one bucket
    return max(1, required) if ratio > 0 else required


def validate_ratio(ratio: float) -> float:
    if isinstance(ratio, bool) or not isinstance(ratio, (int, float)):
        raise ValueError(f"ratio must be a number, got {ratio!r}")
    if not 0 < ratio <= 1:
        raise ValueError(f"ratio must be in (0, 1], got {ratio}")
    return float(ratio)


class TrafficAllocator:
    """Owns the per-layer partition of buckets into mutually exclusive experiments."""

    def __init__(self):
        self._layers: Dict[str, Layer] = {}

    def register_experiment(
        self,
        layer_id: str,
        experiment_id: str,
        ratio: float,
        explicit_ranges: Optional[Iterable[RangeSpec]] = None,
    ) -> Tuple[int, ...]:
        if not layer_id:
            raise ValueError("layer_id cannot be empty")
        if not experiment_id:
            raise ValueError("experiment_id cannot be empty")
        ratio = validate_ratio(ratio)
        if explicit_ranges is not None and isinstance(explicit_ranges, str):
            explicit_ranges = [explicit_ranges]

        layer = self._layers.get(layer_id) or Layer(layer_id)
        assigned = layer.add_experiment(experiment_id, ratio, explicit_ranges)
        self._layers[layer_id] = layer

        mode = "explicit" if explicit_ranges is not None else "auto"
        logger.info(
            "Experiment %s in layer %s assigned buckets (%s): %s",
            experiment_id,
            layer_id,
            mode,
            format_buckets(assigned),
        )
        return assigned

    def experiment_for_bucket(self, layer_id: str, bucket: int) -> Optional[str]:
        if bucket < MIN_BUCKET or bucket > MAX_BUCKET:
            raise InvalidBucketRange(f"bucket {bucket} must lie within [{MIN_BUCKET}, {MAX_BUCKET}]")
        layer = self._layers.get(layer_id)
        if layer is None:
            return None
        return layer.slots[bucket - 1]

    def buckets_for(self, layer_id: str, experiment_id: str) -> Tuple[int, ...]:
        layer = self._layers.get(layer_id)
        return layer.buckets_of(experiment_id) if layer else ()

    def has_experiment(self, layer_id: str, experiment_id: str) -> bool:
        layer = self._layers.get(layer_id)
        return layer is not None and experiment_id in layer.ratios

    def layer_ids(self) -> List[str]:
        return list(self._layers)

    def get_layer_info(self, layer_id: str) -> Dict[str, Any]:
        layer = self._layers.get(layer_id)
        if layer is None:
            raise KeyError(f"unknown layer '{layer_id}'")
        return layer.get_layer_info()

    def snapshot(self, groups: Optional[Mapping[Tuple[str, str], Tuple[Group, ...]]] = None) -> AllocationSnapshot:
        """Copy the current partition (plus group tables) into an immutable snapshot."""
        owners = {layer_id: tuple(layer.slots) for layer_id, layer in self._layers.items()}
        return AllocationSnapshot(owners=owners, groups=dict(groups or {}))
