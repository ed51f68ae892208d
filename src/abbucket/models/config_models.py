from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator


class GroupConfig(BaseModel):
    weight: float = Field(ge=0)
    param: Any = None


class ExperimentConfig(BaseModel):
    experiment_id: str = Field(min_length=1)
    ratio: float = Field(gt=0, le=1)
    buckets: Optional[List[Union[str, int, List[int]]]] = None
    groups: Dict[str, GroupConfig] = {}

    @field_validator("buckets")
    @classmethod
    def _buckets_not_empty(cls, value):
        if value is not None and not value:
            raise ValueError("buckets must be omitted or contain at least one range")
        return value


class LayerConfig(BaseModel):
    layer_id: str = Field(min_length=1)
    experiments: List[ExperimentConfig] = []


class SDKConfig(BaseModel):
    layers: List[LayerConfig] = []
