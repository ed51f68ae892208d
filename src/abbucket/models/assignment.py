from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from abbucket.constants import STATUS_ASSIGNED

OUTPUT_COLUMNS = ["userId", "selectedExperiment", "selectedGroup", "param"]


@dataclass(frozen=True)
class Assignment:
    """Outcome of assigning one user within one layer. Recomputed on every call."""

    user_id: str
    layer_id: str
    selected_experiment: str
    selected_group: Optional[str] = None
    param: Any = None
    bucket: Optional[int] = None
    status: str = STATUS_ASSIGNED

    @property
    def is_assigned(self) -> bool:
        return self.status == STATUS_ASSIGNED

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_row(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "selectedExperiment": self.selected_experiment,
            "selectedGroup": self.selected_group,
            "param": self.param,
        }
