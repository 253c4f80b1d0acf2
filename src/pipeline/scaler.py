"""
Per-column scaling fitted on the training partition.

Descriptives are computed from training rows only so that selection and
testing values never leak into the transform. The fitted scikit-learn
scalers are cached per column and reused for the exact inverse.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.preprocessing import MinMaxScaler, StandardScaler

from .base import PipelineComponent
from .config import ForecastConfig
from .dataset import Descriptives, ScalingMethod, TabularDataset
from .exceptions import ConfigurationError, DatasetError, DegenerateRangeError

logger = logging.getLogger(__name__)

ArrayLike = Union[np.ndarray, pd.DataFrame]


class Scaler:
    """Fits, applies and reverses column scaling."""

    def __init__(self, feature_range: Tuple[float, float] = (-1.0, 1.0)):
        if feature_range[0] >= feature_range[1]:
            raise ConfigurationError(f"Invalid feature range: {feature_range}")
        self.feature_range = tuple(feature_range)
        self.descriptives: Dict[str, Descriptives] = {}
        self.methods: Dict[str, ScalingMethod] = {}
        self._scalers: Dict[str, Optional[Union[MinMaxScaler, StandardScaler]]] = {}

    @property
    def fitted_columns(self) -> List[str]:
        return list(self.methods)

    def fit(self,
            dataset: TabularDataset,
            columns: Sequence[str],
            method: Union[str, ScalingMethod]) -> List[Descriptives]:
        """
        Compute descriptives over the training partition and fit scalers.

        Parameters:
        ----------
        dataset : TabularDataset
            Dataset holding the columns
        columns : Sequence[str]
            Column names to fit
        method : ScalingMethod
            Scaling method applied to every listed column

        Returns:
        -------
        List[Descriptives]
            Training descriptives, in the order of `columns`
        """
        method = ScalingMethod(method)
        training = dataset.training_indices
        if len(training) == 0:
            raise DatasetError(f"Dataset '{dataset.name}' has no training rows to fit a scaler")

        descriptives = dataset.calculate_columns_descriptives(training, list(columns))

        for name in columns:
            stats = descriptives[name]
            if method == ScalingMethod.MINIMUM_MAXIMUM and stats.maximum == stats.minimum:
                raise DegenerateRangeError(
                    f"Column '{name}' has minimum == maximum == {stats.minimum}"
                )
            if method == ScalingMethod.MEAN_STANDARD_DEVIATION and stats.standard_deviation == 0:
                raise DegenerateRangeError(f"Column '{name}' has zero standard deviation")

        for name in columns:
            values = dataset.data[name].iloc[training].dropna().to_numpy().reshape(-1, 1)

            if method == ScalingMethod.MINIMUM_MAXIMUM:
                scaler = MinMaxScaler(feature_range=self.feature_range).fit(values)
            elif method == ScalingMethod.MEAN_STANDARD_DEVIATION:
                scaler = StandardScaler().fit(values)
            else:
                scaler = None

            self._scalers[name] = scaler
            self.methods[name] = method
            self.descriptives[name] = descriptives[name]
            dataset.get_column(name).scaling_method = method

        logger.debug(f"Fitted {method.value} scaling for {len(columns)} columns")
        return [descriptives[name] for name in columns]

    def apply(self, dataset: TabularDataset, columns: Optional[Sequence[str]] = None) -> None:
        """Transform every row of the fitted columns in place."""
        columns = list(columns) if columns is not None else self.fitted_columns
        self._check_fitted(columns)

        for name in columns:
            scaler = self._scalers[name]
            if scaler is None:
                continue
            values = dataset.data[name].to_numpy(dtype=float).reshape(-1, 1)
            dataset.data[name] = scaler.transform(values).ravel()

        logger.info(f"Scaled {len(columns)} columns of {dataset.name}")

    def transform(self, values: ArrayLike, columns: Optional[Sequence[str]] = None) -> ArrayLike:
        """Scale an array whose columns correspond to `columns`."""
        return self._map(values, columns, inverse=False)

    def reverse(self, values: ArrayLike, columns: Optional[Sequence[str]] = None) -> ArrayLike:
        """
        Undo the scaling of an array using the cached fit.

        Parameters:
        ----------
        values : np.ndarray or pd.DataFrame
            Scaled values, one column per name in `columns` (a DataFrame
            supplies its own column names)
        columns : Sequence[str], optional
            Fitted column names matching the columns of `values`

        Returns:
        -------
        np.ndarray or pd.DataFrame
            Values in original units, same type and shape as the input
        """
        return self._map(values, columns, inverse=True)

    def _map(self, values: ArrayLike, columns: Optional[Sequence[str]], inverse: bool) -> ArrayLike:
        if isinstance(values, pd.DataFrame):
            columns = list(values.columns) if columns is None else list(columns)
            result = self._map(values.to_numpy(dtype=float), columns, inverse)
            return pd.DataFrame(result, index=values.index, columns=values.columns)

        if columns is None:
            raise ValueError("Column names are required for array input")
        columns = list(columns)
        self._check_fitted(columns)

        array = np.asarray(values, dtype=float)
        squeeze = array.ndim == 1
        matrix = array.reshape(-1, 1) if squeeze else array.copy()
        if matrix.shape[1] != len(columns):
            raise ValueError(f"Got {matrix.shape[1]} value columns for {len(columns)} names")

        for j, name in enumerate(columns):
            scaler = self._scalers[name]
            if scaler is None:
                continue
            column = matrix[:, j].reshape(-1, 1)
            mapped = scaler.inverse_transform(column) if inverse else scaler.transform(column)
            matrix[:, j] = mapped.ravel()

        return matrix.ravel() if squeeze else matrix

    def _check_fitted(self, columns: Sequence[str]) -> None:
        unfitted = [name for name in columns if name not in self.methods]
        if unfitted:
            raise DatasetError(f"Scaler not fitted for columns: {unfitted}")

    # Driver-level helpers

    def scale_inputs(self, dataset: TabularDataset, method: Union[str, ScalingMethod]) -> List[Descriptives]:
        descriptives = self.fit(dataset, dataset.input_names, method)
        self.apply(dataset, dataset.input_names)
        return descriptives

    def scale_targets(self, dataset: TabularDataset, method: Union[str, ScalingMethod]) -> List[Descriptives]:
        descriptives = self.fit(dataset, dataset.target_names, method)
        self.apply(dataset, dataset.target_names)
        return descriptives

    def scale_inputs_minimum_maximum(self, dataset: TabularDataset) -> List[Descriptives]:
        return self.scale_inputs(dataset, ScalingMethod.MINIMUM_MAXIMUM)

    def scale_targets_minimum_maximum(self, dataset: TabularDataset) -> List[Descriptives]:
        return self.scale_targets(dataset, ScalingMethod.MINIMUM_MAXIMUM)


class ScalingStage(PipelineComponent):
    """Pipeline stage scaling inputs and targets with the configured methods."""

    def __init__(self, config: ForecastConfig):
        super().__init__(config)
        self.scaler = Scaler(config.scaling.feature_range)
        self.inputs_descriptives: List[Descriptives] = []
        self.targets_descriptives: List[Descriptives] = []

    def process(self, dataset: TabularDataset) -> Tuple[TabularDataset, Dict[str, Any]]:
        settings = self.config.scaling
        self.inputs_descriptives = self.scaler.scale_inputs(dataset, settings.inputs_method)
        self.targets_descriptives = self.scaler.scale_targets(dataset, settings.targets_method)

        return dataset, self.generate_report(
            inputs_method=settings.inputs_method,
            targets_method=settings.targets_method,
            descriptives={name: d.to_dict() for name, d in self.scaler.descriptives.items()},
        )
