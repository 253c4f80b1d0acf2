"""
Consolidated configuration for the forecasting pipeline.

This module contains all configuration classes for a single series run:
data locations, windowing, imputation, partitioning, scaling, network
architecture and the quasi-Newton training strategy.
"""

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .exceptions import ConfigurationError

IMPUTATION_METHODS = ("mean", "median")
PARTITION_METHODS = ("sequential", "random")
SCALING_METHODS = ("none", "minimum_maximum", "mean_standard_deviation")


@dataclass
class DataPaths:
    """Configuration for data file paths."""

    data_dir: str = "data"
    output_prefix: str = "output_"
    delimiter: str = ","
    has_header: bool = False

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)

    def source_file(self, series_name: str) -> Path:
        """Path of the CSV file holding a named series."""
        return self.data_path / f"{series_name}.csv"

    def output_stem(self, series_name: str) -> str:
        """Prefix shared by every artifact written for a series."""
        return str(self.data_path / f"{self.output_prefix}{series_name}_")


@dataclass
class TimeSeriesConfig:
    """Configuration for the lag window transformation."""

    lags_number: int = 1
    steps_ahead: int = 1
    time_column: Optional[Union[int, str]] = 0


@dataclass
class ProcessingConfig:
    """Configuration for data processing."""

    imputation_method: str = "mean"  # mean, median
    impute_after_transform: bool = True
    histogram_bins: int = 10


@dataclass
class PartitionConfig:
    """Configuration for training/selection/testing partitioning."""

    method: str = "sequential"  # sequential, random
    training_ratio: float = 0.6
    selection_ratio: float = 0.2
    testing_ratio: float = 0.2
    random_state: Optional[int] = None


@dataclass
class ScalingConfig:
    """Configuration for dataset scaling."""

    inputs_method: str = "minimum_maximum"  # none, minimum_maximum, mean_standard_deviation
    targets_method: str = "minimum_maximum"
    feature_range: Tuple[float, float] = (-1.0, 1.0)


@dataclass
class NetworkConfig:
    """Configuration for the forecasting network."""

    hidden_units: int = 6
    timesteps: int = 4
    scaling_method: str = "none"
    unscaling_method: str = "none"
    random_state: Optional[int] = None


@dataclass
class TrainingConfig:
    """Configuration for the quasi-Newton training strategy."""

    maximum_epochs: int = 10000
    maximum_time: float = 250.0  # seconds
    minimum_loss_decrease: float = 0.0
    gradient_norm_goal: float = 0.0
    loss_goal: Optional[float] = None
    display_period: int = 10
    reserve_training_error_history: bool = True
    reserve_selection_error_history: bool = True
    maximum_step: float = 1.0e3


@dataclass
class ForecastConfig:
    """Main configuration class combining all settings."""

    data_paths: DataPaths = field(default_factory=DataPaths)
    time_series: TimeSeriesConfig = field(default_factory=TimeSeriesConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    partition: PartitionConfig = field(default_factory=PartitionConfig)
    scaling: ScalingConfig = field(default_factory=ScalingConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    training: TrainingConfig = field(default_factory=TrainingConfig)
    series: List[str] = field(
        default_factory=lambda: ["parabola", "sine", "increasing_sine"]
    )

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "ForecastConfig":
        """Create configuration from dictionary."""
        scaling = dict(config_dict.get("scaling", {}))
        if "feature_range" in scaling:
            scaling["feature_range"] = tuple(scaling["feature_range"])

        config = cls(
            data_paths=DataPaths(**config_dict.get("data_paths", {})),
            time_series=TimeSeriesConfig(**config_dict.get("time_series", {})),
            processing=ProcessingConfig(**config_dict.get("processing", {})),
            partition=PartitionConfig(**config_dict.get("partition", {})),
            scaling=ScalingConfig(**scaling),
            network=NetworkConfig(**config_dict.get("network", {})),
            training=TrainingConfig(**config_dict.get("training", {})),
        )
        if "series" in config_dict:
            config.series = list(config_dict["series"])
        return config

    @classmethod
    def from_json(cls, json_path: Union[str, Path]) -> "ForecastConfig":
        """Load configuration from a JSON file."""
        with open(json_path, "r") as f:
            return cls.from_dict(json.load(f))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def validate(self) -> None:
        """Check the settings every stage depends on; all problems are reported together."""
        problems = []
        if self.time_series.lags_number < 0:
            problems.append(f"lags_number must be >= 0, got {self.time_series.lags_number}")
        if self.time_series.steps_ahead < 1:
            problems.append(f"steps_ahead must be >= 1, got {self.time_series.steps_ahead}")
        if self.processing.imputation_method not in IMPUTATION_METHODS:
            problems.append(f"Unknown imputation method: {self.processing.imputation_method}")
        if self.partition.method not in PARTITION_METHODS:
            problems.append(f"Unknown partition method: {self.partition.method}")
        for name, method in (("inputs_method", self.scaling.inputs_method),
                             ("targets_method", self.scaling.targets_method),
                             ("scaling_method", self.network.scaling_method),
                             ("unscaling_method", self.network.unscaling_method)):
            if method not in SCALING_METHODS:
                problems.append(f"Unknown {name}: {method}")
        low, high = self.scaling.feature_range
        if low >= high:
            problems.append(f"Invalid feature range: {self.scaling.feature_range}")
        if self.network.hidden_units < 1:
            problems.append(f"hidden_units must be >= 1, got {self.network.hidden_units}")
        if self.network.timesteps < 1:
            problems.append(f"timesteps must be >= 1, got {self.network.timesteps}")
        if self.training.maximum_epochs < 0:
            problems.append("maximum_epochs must be non-negative")
        if self.training.maximum_time < 0:
            problems.append("maximum_time must be non-negative")
        if self.training.display_period < 1:
            problems.append("display_period must be >= 1")

        if problems:
            raise ConfigurationError("; ".join(problems))
