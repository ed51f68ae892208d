from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from abbucket.allocator import TrafficAllocator
from abbucket.exceptions import ConfigurationFrozen
from abbucket.models.assignment import Assignment
from abbucket.models.group import Group, build_group_table
from abbucket.services.assignment_service import AssignmentEngine
from abbucket.snapshot import AllocationSnapshot
from abbucket.utils.bucket_ranges import RangeSpec

logger = logging.getLogger(__name__)


class ABTestSDK:
    """
    Configure-then-serve entry point.

    Registration calls are serialised by a lock. Each successful change
    publishes a fresh immutable snapshot by swapping a single reference, so
    ``assign`` never locks and always sees a consistent configuration.
    Call ``freeze()`` once startup configuration is complete.
    """

    def __init__(self):
        self._allocator = TrafficAllocator()
        self._groups: Dict[Tuple[str, str], Tuple[Group, ...]] = {}
        self._lock = threading.Lock()
        self._frozen = False
        self._engine = AssignmentEngine(AllocationSnapshot())

    # ---------- configuration ----------
    def register_experiment(
        self,
        layer_id: str,
        experiment_id: str,
        ratio: float,
        ranges: Optional[Iterable[RangeSpec]] = None,
    ) -> Tuple[int, ...]:
        """Give an experiment its buckets, from explicit ranges or by sequential auto-fill."""
        with self._lock:
            self._ensure_mutable()
            buckets = self._allocator.register_experiment(layer_id, experiment_id, ratio, ranges)
            self._publish()
        return buckets

    def add_group_table(self, layer_id: str, experiment_id: str, groups: Mapping[str, Any]) -> None:
        if not layer_id or not experiment_id:
            raise ValueError("layer_id and experiment_id cannot be empty")
        table = build_group_table(groups)
        with self._lock:
            self._ensure_mutable()
            key = (layer_id, experiment_id)
            if key in self._groups:
                logger.warning("Replacing group table of experiment %s in layer %s", experiment_id, layer_id)
            self._groups[key] = table
            self._publish()
        logger.info(
            "Experiment %s in layer %s has groups: %s",
            experiment_id,
            layer_id,
            ", ".join(f"{g.name}={g.weight:g}" for g in table) or "<none>",
        )

    def freeze(self) -> AllocationSnapshot:
        with self._lock:
            self._frozen = True
            orphans = [key for key in self._groups if not self._allocator.has_experiment(*key)]
        for layer_id, experiment_id in orphans:
            logger.warning("Group table for %s/%s has no registered experiment", layer_id, experiment_id)
        return self.snapshot

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def snapshot(self) -> AllocationSnapshot:
        return self._engine.snapshot

    # ---------- serving ----------
    def assign(self, layer_id: str, user_id: str | int) -> Assignment:
        return self._engine.assign(layer_id, user_id)

    def assign_bulk(self, layer_id: str, user_ids: Iterable[str | int]):
        return self._engine.assign_bulk(layer_id, user_ids)

    def check_stability(self, layer_id: str, user_id: str | int, iterations: int = 50) -> List[Assignment]:
        return self._engine.check_stability(layer_id, user_id, iterations)

    def preview_assignment_distribution(self, layer_id: str, sample_user_ids: Iterable[str | int]) -> Dict[str, Any]:
        return self._engine.preview_assignment_distribution(layer_id, sample_user_ids)

    def experiment_for_bucket(self, layer_id: str, bucket: int) -> Optional[str]:
        return self._engine.snapshot.experiment_for_bucket(layer_id, bucket)

    # ---------- introspection ----------
    def buckets_for(self, layer_id: str, experiment_id: str) -> Tuple[int, ...]:
        with self._lock:
            return self._allocator.buckets_for(layer_id, experiment_id)

    def get_layer_info(self, layer_id: str) -> Dict[str, Any]:
        with self._lock:
            info = self._allocator.get_layer_info(layer_id)
            for experiment_id, details in info["experiments"].items():
                table = self._groups.get((layer_id, experiment_id))
                details["groups"] = [g.name for g in table] if table is not None else None
        return info

    def layer_ids(self) -> List[str]:
        with self._lock:
            return self._allocator.layer_ids()

    def _ensure_mutable(self):
        if self._frozen:
            raise ConfigurationFrozen("configuration is frozen; register experiments before serving")

    def _publish(self):
        # single reference swap, readers keep whichever snapshot they already hold
        self._engine = AssignmentEngine(self._allocator.snapshot(self._groups))
