"""
Model evaluation components.

This module provides the testing-partition analysis of a trained network:
regression of outputs on targets, error correlations and error metrics.
"""

from .metrics import TimeSeriesMetrics
from .testing_analysis import LinearRegressionAnalysis, TestingAnalysis

__all__ = [
    'TimeSeriesMetrics',
    'TestingAnalysis',
    'LinearRegressionAnalysis',
]
