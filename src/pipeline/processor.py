"""
Missing value handling for tabular datasets.

Statistics are recomputed from the current cells on every call, so earlier
imputations only influence later ones through the values they wrote.
"""

import logging
from typing import Any, Dict, List, Tuple

import numpy as np

from .base import PipelineComponent
from .config import ForecastConfig
from .dataset import ColumnRole, TabularDataset
from .exceptions import ConfigurationError, EmptyColumnError

logger = logging.getLogger(__name__)


class MissingValueImputer:
    """Fill missing cells of input and target columns with a column statistic."""

    METHODS = ("mean", "median")

    def impute(self, dataset: TabularDataset, method: str = "mean") -> Dict[str, int]:
        """
        Impute missing values in place.

        Parameters:
        ----------
        dataset : TabularDataset
            Dataset to modify
        method : str
            Column statistic to fill with ('mean' or 'median')

        Returns:
        -------
        Dict[str, int]
            Number of imputed cells per column
        """
        if method not in self.METHODS:
            raise ConfigurationError(f"Unknown imputation method: {method}")

        columns = self._imputable_columns(dataset)

        # Validate every column before touching any cell
        for name in columns:
            if dataset.data[name].isnull().all():
                raise EmptyColumnError(f"Column '{name}' is entirely missing")

        imputed = {}
        for name in columns:
            series = dataset.data[name]
            missing = int(series.isnull().sum())
            if missing == 0:
                imputed[name] = 0
                continue

            fill_value = series.mean() if method == "mean" else series.median()
            dataset.data[name] = series.fillna(fill_value)
            imputed[name] = missing
            logger.debug(f"Imputed {missing} cells of {name} with {method} {fill_value:.6g}")

        total = sum(imputed.values())
        if total:
            logger.info(f"Imputed {total} missing values using column {method}")
        return imputed

    def impute_mean(self, dataset: TabularDataset) -> Dict[str, int]:
        return self.impute(dataset, "mean")

    def impute_median(self, dataset: TabularDataset) -> Dict[str, int]:
        return self.impute(dataset, "median")

    @staticmethod
    def _imputable_columns(dataset: TabularDataset) -> List[str]:
        return [
            column.name for column in dataset.columns
            if column.role in (ColumnRole.INPUT, ColumnRole.TARGET)
        ]


class DataProcessor(PipelineComponent):
    """Pipeline stage running the configured imputation."""

    def __init__(self, config: ForecastConfig):
        super().__init__(config)
        self.imputer = MissingValueImputer()

    def process(self, dataset: TabularDataset) -> Tuple[TabularDataset, Dict[str, Any]]:
        missing_before = int(dataset.count_missing_values().sum())
        imputed = self.imputer.impute(dataset, self.config.processing.imputation_method)
        missing_after = int(
            np.sum([dataset.data[name].isnull().sum() for name in imputed])
        )

        logger.info(f"Missing values in {dataset.name}: {missing_before} → {missing_after}")
        return dataset, self.generate_report(
            method=self.config.processing.imputation_method,
            imputed=imputed,
            missing_before=missing_before,
        )
