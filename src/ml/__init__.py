"""
Machine learning components for time series forecasting.

This module provides the trainable forecasting network, the quasi-Newton
optimization loop and the testing analysis, all operating on datasets
prepared by the data pipeline.
"""

from .base import TrainableModel
from .evaluation import LinearRegressionAnalysis, TestingAnalysis, TimeSeriesMetrics
from .layers import PerceptronLayer, ScalingLayer, UnscalingLayer
from .long_short_term_memory import LongShortTermMemoryLayer
from .network import ForecastingNetwork
from .optimization import (
    HistoryRecord,
    ProgressReport,
    QuasiNewtonMethod,
    TrainingResults,
    TrainingState,
)

__version__ = "1.0.0"

__all__ = [
    'TrainableModel',
    'ForecastingNetwork',
    'ScalingLayer',
    'UnscalingLayer',
    'PerceptronLayer',
    'LongShortTermMemoryLayer',
    'QuasiNewtonMethod',
    'TrainingState',
    'TrainingResults',
    'HistoryRecord',
    'ProgressReport',
    'TestingAnalysis',
    'LinearRegressionAnalysis',
    'TimeSeriesMetrics',
]
