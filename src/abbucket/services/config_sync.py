from __future__ import annotations

from typing import Iterable

from abbucket.models.config_models import ExperimentConfig, LayerConfig, SDKConfig
from abbucket.sdk import ABTestSDK


def apply_layer_configs(sdk: ABTestSDK, layer_configs: Iterable[LayerConfig]) -> None:
    """Register every experiment and group table, in file order."""
    seen_layers = set()
    for layer_config in layer_configs:
        if layer_config.layer_id in seen_layers:
            raise ValueError(f"layer {layer_config.layer_id} is declared more than once")
        seen_layers.add(layer_config.layer_id)
        _apply_layer_config(sdk, layer_config)


def _apply_layer_config(sdk: ABTestSDK, layer_config: LayerConfig) -> None:
    for experiment_config in layer_config.experiments:
        _apply_experiment_config(sdk, layer_config.layer_id, experiment_config)


def _apply_experiment_config(sdk: ABTestSDK, layer_id: str, experiment_config: ExperimentConfig) -> None:
    sdk.register_experiment(
        layer_id,
        experiment_config.experiment_id,
        experiment_config.ratio,
        experiment_config.buckets,
    )
    if experiment_config.groups:
        sdk.add_group_table(layer_id, experiment_config.experiment_id, experiment_config.groups)


def build_sdk(config: SDKConfig, freeze: bool = True) -> ABTestSDK:
    sdk = ABTestSDK()
    apply_layer_configs(sdk, config.layers)
    if freeze:
        sdk.freeze()
    return sdk
