from __future__ import annotations

import copy
import math
from dataclasses import dataclass
from typing import Any, Mapping, Tuple

from abbucket.exceptions import InvalidGroupTable
from abbucket.models.config_models import GroupConfig


@dataclass(frozen=True)
class Group:
    name: str
    weight: float
    param: Any = None


def build_group_table(groups: Mapping[str, Any]) -> Tuple[Group, ...]:
    """
    Validate a group table and return it sorted by group name.

    Values may be a Group, a GroupConfig, a dict with ``weight`` (or ``ratio``)
    and ``param``, or a ``(weight, param)`` pair.
    """
    if not isinstance(groups, Mapping):
        raise InvalidGroupTable("groups must be a mapping of group name to weight/param")

    table = []
    for name, spec in groups.items():
        if not isinstance(name, str) or not name:
            raise InvalidGroupTable(f"group name must be a non-empty string, got {name!r}")
        weight, param = _unpack_group(name, spec)
        if isinstance(weight, bool) or not isinstance(weight, (int, float)):
            raise InvalidGroupTable(f"group '{name}' weight must be a number")
        if not math.isfinite(weight) or weight < 0:
            raise InvalidGroupTable(f"group '{name}' weight must be finite and >= 0")
        table.append(Group(name=name, weight=float(weight), param=copy.deepcopy(param)))

    if table and sum(g.weight for g in table) <= 0:
        raise InvalidGroupTable("total group weight must be > 0")

    # Group order is part of the assignment contract
    return tuple(sorted(table, key=lambda g: g.name))


def _unpack_group(name: str, spec: Any):
    if isinstance(spec, Group):
        return spec.weight, spec.param
    if isinstance(spec, GroupConfig):
        return spec.weight, spec.param
    if isinstance(spec, Mapping):
        if "weight" in spec:
            return spec["weight"], spec.get("param")
        if "ratio" in spec:
            return spec["ratio"], spec.get("param")
        raise InvalidGroupTable(f"group '{name}' is missing a weight")
    if isinstance(spec, (tuple, list)) and len(spec) == 2:
        return spec[0], spec[1]
    raise InvalidGroupTable(f"group '{name}' has an unsupported definition: {spec!r}")
