"""
Data pipeline for single-series time series forecasting.

This module provides a unified interface for loading a delimited series,
turning it into lagged windows, imputing missing values, partitioning rows
and scaling columns ahead of network training.
"""

from .base import PipelineComponent
from .config import (
    DataPaths,
    ForecastConfig,
    NetworkConfig,
    PartitionConfig,
    ProcessingConfig,
    ScalingConfig,
    TimeSeriesConfig,
    TrainingConfig,
)
from .dataset import (
    Column,
    ColumnRole,
    Descriptives,
    Histogram,
    PartitionLabel,
    ScalingMethod,
    TabularDataset,
)
from .exceptions import (
    AlreadyTransformedError,
    ConfigurationError,
    DatasetError,
    DegenerateRangeError,
    EmptyColumnError,
    FileIOError,
    ForecastingError,
    InsufficientDataError,
    InvalidRatioError,
    NumericalFailure,
    TimeColumnError,
)
from .loader import DataLoader
from .partitioner import Partitioner, PartitionStage
from .processor import DataProcessor, MissingValueImputer
from .scaler import Scaler, ScalingStage
from .transformer import TimeSeriesTransformer, WindowSpec

__version__ = "1.0.0"

__all__ = [
    # Configuration
    "ForecastConfig",
    "DataPaths",
    "TimeSeriesConfig",
    "ProcessingConfig",
    "PartitionConfig",
    "ScalingConfig",
    "NetworkConfig",
    "TrainingConfig",
    # Dataset model
    "TabularDataset",
    "Column",
    "ColumnRole",
    "ScalingMethod",
    "PartitionLabel",
    "Descriptives",
    "Histogram",
    # Core components
    "PipelineComponent",
    "DataLoader",
    "TimeSeriesTransformer",
    "WindowSpec",
    "MissingValueImputer",
    "DataProcessor",
    "Partitioner",
    "PartitionStage",
    "Scaler",
    "ScalingStage",
    # Errors
    "ForecastingError",
    "ConfigurationError",
    "DatasetError",
    "FileIOError",
    "InsufficientDataError",
    "AlreadyTransformedError",
    "TimeColumnError",
    "EmptyColumnError",
    "InvalidRatioError",
    "DegenerateRangeError",
    "NumericalFailure",
]
