from typing import Optional, Sequence

from abbucket.models.group import Group
from abbucket.utils.hashing import group_point


class WeightedGroupSplitter:
    """
    Hash-based deterministic group selection inside one experiment.

    Groups are walked in ascending name order and the first group whose
    cumulative weight reaches the user's point on the weight line wins.
    """

    def __init__(self, experiment_id: str):
        self.exp_id = experiment_id

    def select(self, unit_id: str, groups: Sequence[Group]) -> Optional[Group]:
        if not groups:
            return None

        ordered = sorted(groups, key=lambda g: g.name)
        total = sum(g.weight for g in ordered)
        target = group_point(self.exp_id, str(unit_id), total)

        cumulative = 0.0
        for group in ordered:
            # zero-weight groups never take traffic, not even at point 0
            if group.weight <= 0:
                continue
            cumulative += group.weight
            if cumulative >= target:
                return group
        return ordered[-1]  # Fallback if rounding edge-case
