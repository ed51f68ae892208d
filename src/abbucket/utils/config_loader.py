import yaml

from abbucket.models.config_models import LayerConfig, SDKConfig


def load_config(path) -> SDKConfig:
    """Load a YAML file with a top-level ``layers`` list."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return SDKConfig(**data)


def load_layer_config(path) -> LayerConfig:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return LayerConfig(**data)
