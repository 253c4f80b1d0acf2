"""
Error analysis of a trained network on the testing partition.

Outputs and targets can be reported in original units by passing the
Scaler that scaled the dataset; its cached fit is reversed, never refit.
"""

import logging
import warnings
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
from scipy.stats import linregress
from statsmodels.tsa.stattools import acf, ccf

from pipeline.dataset import Descriptives, TabularDataset
from pipeline.exceptions import DatasetError
from pipeline.scaler import Scaler

from ..base import TrainableModel
from .metrics import TimeSeriesMetrics

logger = logging.getLogger(__name__)

ERROR_KINDS = ("absolute_error", "relative_error", "percentage_error")


@dataclass
class LinearRegressionAnalysis:
    """Regression of outputs on targets for one target variable."""

    correlation: float
    intercept: float
    slope: float
    targets: np.ndarray
    outputs: np.ndarray

    def parameters(self) -> np.ndarray:
        return np.array([self.correlation, self.intercept, self.slope])


class TestingAnalysis:
    """Regression, correlation and error statistics over testing rows."""

    __test__ = False

    def __init__(self,
                 model: TrainableModel,
                 dataset: TabularDataset,
                 scaler: Optional[Scaler] = None):
        self.model = model
        self.dataset = dataset
        self.scaler = scaler
        self._cache: Optional[Tuple[np.ndarray, np.ndarray, np.ndarray]] = None

    def _testing_data(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Inputs, targets and outputs of the testing rows."""
        if self._cache is not None:
            return self._cache

        testing = self.dataset.testing_indices
        if len(testing) == 0:
            raise DatasetError(f"Dataset '{self.dataset.name}' has no testing rows")

        inputs = self.dataset.get_input_data(testing)
        targets = self.dataset.get_target_data(testing)
        outputs = self.model.calculate_outputs(inputs)

        if self.scaler is not None:
            names = self.dataset.target_names
            targets = self.scaler.reverse(targets, names)
            outputs = self.scaler.reverse(outputs, names)

        self._cache = (inputs, targets, outputs)
        return self._cache

    def calculate_errors(self) -> np.ndarray:
        _, targets, outputs = self._testing_data()
        return outputs - targets

    def perform_linear_regression_analysis(self) -> List[LinearRegressionAnalysis]:
        """One regression of outputs against targets per target variable."""
        _, targets, outputs = self._testing_data()
        analyses = []

        for j in range(targets.shape[1]):
            t, y = targets[:, j], outputs[:, j]
            if len(t) < 2 or np.ptp(t) == 0:
                logger.warning(f"Cannot regress target {j}: fewer than two distinct values")
                correlation = intercept = slope = float("nan")
            else:
                result = linregress(t, y)
                correlation, intercept, slope = result.rvalue, result.intercept, result.slope
            analyses.append(LinearRegressionAnalysis(
                float(correlation), float(intercept), float(slope), t.copy(), y.copy()
            ))

        return analyses

    def calculate_error_autocorrelation(self, maximum_lags: int = 10) -> List[np.ndarray]:
        """Autocorrelation of the errors of each target, lags 0..maximum_lags."""
        errors = self.calculate_errors()
        lags = min(maximum_lags, errors.shape[0] - 1)

        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            return [acf(errors[:, j], nlags=lags, fft=False) for j in range(errors.shape[1])]

    def calculate_inputs_errors_cross_correlation(self, maximum_lags: int = 10) -> List[np.ndarray]:
        """
        Cross-correlation between every input and the errors of each target.

        Returns:
        -------
        List[np.ndarray]
            One (inputs, lags + 1) matrix per target variable
        """
        inputs, _, _ = self._testing_data()
        errors = self.calculate_errors()
        lags = min(maximum_lags, errors.shape[0] - 1)

        correlations = []
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            for j in range(errors.shape[1]):
                correlations.append(np.vstack([
                    ccf(inputs[:, i], errors[:, j])[:lags + 1] for i in range(inputs.shape[1])
                ]))
        return correlations

    def calculate_error_data(self) -> List[np.ndarray]:
        """
        Absolute, relative and percentage error of every testing row.

        Relative errors are taken over the target range: the fitted
        descriptives when a scaler is attached, otherwise the testing range.
        """
        _, targets, outputs = self._testing_data()
        absolute = np.abs(outputs - targets)
        matrices = []

        for j, name in enumerate(self.dataset.target_names):
            if self.scaler is not None and name in self.scaler.descriptives:
                stats = self.scaler.descriptives[name]
                target_range = stats.maximum - stats.minimum
            else:
                target_range = float(np.ptp(targets[:, j]))

            with np.errstate(divide="ignore", invalid="ignore"):
                relative = absolute[:, j] / target_range if target_range != 0 else np.full(len(absolute), np.nan)
            matrices.append(np.column_stack([absolute[:, j], relative, relative * 100.0]))

        return matrices

    def calculate_error_data_statistics(self) -> List[Dict[str, Descriptives]]:
        """Descriptives of absolute, relative and percentage errors per target."""
        statistics = []
        for matrix in self.calculate_error_data():
            target_statistics = {}
            for k, kind in enumerate(ERROR_KINDS):
                # relative errors are undefined for a constant target
                if np.all(np.isnan(matrix[:, k])):
                    continue
                target_statistics[kind] = Descriptives.from_values(matrix[:, k], kind)
            statistics.append(target_statistics)
        return statistics

    def calculate_metrics(self) -> Dict[str, Dict[str, float]]:
        _, targets, outputs = self._testing_data()
        return {
            name: TimeSeriesMetrics.calculate_all_metrics(targets[:, j], outputs[:, j])
            for j, name in enumerate(self.dataset.target_names)
        }
