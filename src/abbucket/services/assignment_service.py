from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Tuple

from abbucket.constants import (
    GROUP_NOT_CONFIGURED,
    NO_EXPERIMENT_AVAILABLE,
    NOT_IN_ANY_EXPERIMENT,
    STATUS_ASSIGNED,
    STATUS_NO_EXPERIMENTS,
    STATUS_NO_GROUPS,
    STATUS_NOT_ASSIGNED,
    UNKNOWN_GROUP,
)
from abbucket.models.assignment import Assignment
from abbucket.services.splitter import WeightedGroupSplitter
from abbucket.snapshot import AllocationSnapshot
from abbucket.utils.hashing import bucket_for

logger = logging.getLogger(__name__)


class AssignmentEngine:
    """Layer/bucket assignment over a frozen allocation snapshot. Holds no mutable state."""

    def __init__(self, snapshot: AllocationSnapshot):
        self.snapshot = snapshot

    def assign(self, layer_id: str, user_id: str | int) -> Assignment:
        user_id = str(user_id)
        if not self.snapshot.has_experiments(layer_id):
            return Assignment(user_id, layer_id, NO_EXPERIMENT_AVAILABLE, status=STATUS_NO_EXPERIMENTS)

        bucket = bucket_for(layer_id, user_id)
        experiment_id = self.snapshot.experiment_for_bucket(layer_id, bucket)
        if experiment_id is None:
            return Assignment(user_id, layer_id, NOT_IN_ANY_EXPERIMENT, bucket=bucket, status=STATUS_NOT_ASSIGNED)

        groups = self.snapshot.groups_for(layer_id, experiment_id)
        if groups is None:
            return Assignment(
                user_id, layer_id, experiment_id, GROUP_NOT_CONFIGURED, bucket=bucket, status=STATUS_NO_GROUPS
            )

        group = WeightedGroupSplitter(experiment_id).select(user_id, groups)
        if group is None:
            return Assignment(user_id, layer_id, experiment_id, UNKNOWN_GROUP, bucket=bucket, status=STATUS_NO_GROUPS)

        return Assignment(user_id, layer_id, experiment_id, group.name, group.param, bucket=bucket)

    def assign_bulk(
        self, layer_id: str, user_ids: Iterable[str | int]
    ) -> Tuple[List[Assignment], List[Tuple[Any, Exception]]]:
        """
        Assign many users. A failure on one id is logged and collected, the
        rest of the batch still gets assigned.
        """
        assignments: List[Assignment] = []
        failures: List[Tuple[Any, Exception]] = []
        for uid in user_ids:
            try:
                assignments.append(self.assign(layer_id, uid))
            except Exception as exc:
                logger.warning("Skipping user %r in layer %s: %s", uid, layer_id, exc)
                failures.append((uid, exc))
        return assignments, failures

    def check_stability(self, layer_id: str, user_id: str | int, iterations: int = 50) -> List[Assignment]:
        """Distinct outcomes over repeated calls; a stable user yields exactly one."""
        if iterations < 1:
            raise ValueError("iterations must be >= 1")
        results: List[Assignment] = []
        for _ in range(iterations):
            outcome = self.assign(layer_id, user_id)
            if outcome not in results:
                results.append(outcome)
        if len(results) == 1:
            logger.info("Assignment for user %s in layer %s is stable over %d calls", user_id, layer_id, iterations)
        else:
            logger.warning(
                "Assignment for user %s in layer %s is unstable: %d distinct results", user_id, layer_id, len(results)
            )
        return results

    def preview_assignment_distribution(self, layer_id: str, sample_user_ids: Iterable[str | int]) -> Dict[str, Any]:
        """Preview experiment/group distribution for a sample population."""
        distribution: Dict[str, int] = {}
        unassigned_count = 0
        total = 0
        for uid in sample_user_ids:
            total += 1
            assignment = self.assign(layer_id, uid)
            if assignment.status == STATUS_ASSIGNED:
                key = f"{assignment.selected_experiment}:{assignment.selected_group}"
                distribution[key] = distribution.get(key, 0) + 1
            else:
                unassigned_count += 1
        return {
            "total_users": total,
            "assignment_distribution": distribution,
            "unassigned_count": unassigned_count,
            "assignment_rate": ((total - unassigned_count) / total * 100) if total else None,
        }
