"""
Forecast error metrics.

This module provides the scalar metrics reported for each target variable
of the testing partition.
"""

import logging
from typing import Dict

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score

logger = logging.getLogger(__name__)


class TimeSeriesMetrics:
    """Scalar error metrics for a single forecast variable."""

    @staticmethod
    def calculate_all_metrics(y_true: np.ndarray, y_pred: np.ndarray) -> Dict[str, float]:
        """
        Calculate all available metrics.

        Parameters:
        ----------
        y_true : np.ndarray
            True values
        y_pred : np.ndarray
            Predicted values

        Returns:
        -------
        Dict[str, float]
            Dictionary of all calculated metrics
        """
        y_true = np.asarray(y_true, dtype=float)
        y_pred = np.asarray(y_pred, dtype=float)

        # Remove NaN values
        mask = ~(np.isnan(y_true) | np.isnan(y_pred))
        y_true_clean = y_true[mask]
        y_pred_clean = y_pred[mask]

        if len(y_true_clean) == 0:
            logger.warning("No valid predictions for metric calculation")
            return {}

        metrics = TimeSeriesMetrics._calculate_basic_metrics(y_true_clean, y_pred_clean)
        metrics.update(TimeSeriesMetrics._calculate_scaled_metrics(y_true_clean, y_pred_clean))
        return metrics

    @staticmethod
    def _calculate_basic_metrics(y_true: np.ndarray, y_pred: np.ndarray) -> Dict[str, float]:
        """Calculate basic regression metrics."""
        metrics = {}

        metrics['mae'] = float(mean_absolute_error(y_true, y_pred))
        metrics['mse'] = float(mean_squared_error(y_true, y_pred))
        metrics['rmse'] = float(np.sqrt(metrics['mse']))
        if len(y_true) >= 2:
            metrics['r2'] = float(r2_score(y_true, y_pred))

        residuals = y_true - y_pred
        metrics['mean_residual'] = float(np.mean(residuals))
        metrics['max_error'] = float(np.max(np.abs(residuals)))

        return metrics

    @staticmethod
    def _calculate_scaled_metrics(y_true: np.ndarray, y_pred: np.ndarray) -> Dict[str, float]:
        """Metrics relative to the naive previous-value forecast."""
        metrics = {}

        if len(y_true) >= 2:
            naive_errors = y_true[1:] - y_true[:-1]
            naive_mae = np.mean(np.abs(naive_errors))
            mse_naive = np.mean(naive_errors ** 2)

            if naive_mae > 0:
                metrics['mase'] = float(np.mean(np.abs(y_true - y_pred)) / naive_mae)
            if mse_naive > 0:
                metrics['theil_u'] = float(
                    np.sqrt(np.mean((y_true - y_pred) ** 2)) / np.sqrt(mse_naive)
                )

        return metrics
