"""
Conversion of a flat table into lagged input/target windows.

For every time index t with a complete window, the output row holds the
values of each input/target column at t-L, ..., t-1, t as inputs and the
values of each target column at t+1, ..., t+S as targets. Row order is
defined by the time column, never by storage order.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from .base import PipelineComponent
from .config import ForecastConfig
from .dataset import Column, ColumnKey, ColumnRole, ScalingMethod, TabularDataset
from .exceptions import (
    AlreadyTransformedError,
    ConfigurationError,
    DatasetError,
    InsufficientDataError,
    TimeColumnError,
)

logger = logging.getLogger(__name__)


@dataclass
class WindowSpec:
    """Lag window definition."""

    lags_number: int = 1
    steps_ahead: int = 1
    time_column: Optional[ColumnKey] = None

    def __post_init__(self):
        if self.lags_number < 0:
            raise ConfigurationError(f"lags_number must be >= 0, got {self.lags_number}")
        if self.steps_ahead < 1:
            raise ConfigurationError(f"steps_ahead must be >= 1, got {self.steps_ahead}")

    @property
    def window_length(self) -> int:
        """Distinct time points spanned by one window."""
        return self.lags_number + self.steps_ahead + 1


def lag_name(column_name: str, lag: int) -> str:
    return f"{column_name}_lag_{lag}"


def ahead_name(column_name: str, step: int) -> str:
    return f"{column_name}_ahead_{step}"


class TimeSeriesTransformer(PipelineComponent):
    """Turns a dataset into a lagged supervised-learning dataset."""

    def __init__(self, config: ForecastConfig, window: Optional[WindowSpec] = None):
        super().__init__(config)
        self.window = window or WindowSpec(
            lags_number=config.time_series.lags_number,
            steps_ahead=config.time_series.steps_ahead,
            time_column=config.time_series.time_column,
        )

    def transform(self, dataset: TabularDataset) -> TabularDataset:
        """
        Apply the window transformation in place.

        Parameters:
        ----------
        dataset : TabularDataset
            Flat dataset; its time-series flag must not be set

        Returns:
        -------
        TabularDataset
            The same dataset, with rows = distinct time points - L - S
        """
        if dataset.is_time_series:
            raise AlreadyTransformedError(f"Dataset '{dataset.name}' is already a time series")

        lags, steps = self.window.lags_number, self.window.steps_ahead

        time_column = self._resolve_time_column(dataset)
        frame = self._sort_by_time(dataset, time_column)
        points = len(frame)

        if points < self.window.window_length:
            raise InsufficientDataError(
                f"Need at least {self.window.window_length} distinct time points for "
                f"{lags} lags and {steps} steps ahead, got {points}"
            )

        value_columns = [
            c for c in dataset.columns
            if c is not time_column and c.role != ColumnRole.UNUSED
        ]
        target_columns = [c for c in value_columns if c.role == ColumnRole.TARGET]
        if not target_columns:
            raise DatasetError(f"Dataset '{dataset.name}' has no target columns")

        windows = points - lags - steps
        data: Dict[str, Any] = {}
        columns: List[Column] = []

        if time_column is not None:
            data[time_column.name] = frame[time_column.name].to_numpy()[lags:lags + windows]
            columns.append(Column(0, time_column.name, ColumnRole.TIME, ScalingMethod.NONE))

        for column in value_columns:
            values = frame[column.name].to_numpy()
            for lag in range(lags, -1, -1):
                start = lags - lag
                name = lag_name(column.name, lag)
                data[name] = values[start:start + windows]
                columns.append(Column(0, name, ColumnRole.INPUT, column.scaling_method))

        for column in target_columns:
            values = frame[column.name].to_numpy()
            for step in range(1, steps + 1):
                start = lags + step
                name = ahead_name(column.name, step)
                data[name] = values[start:start + windows]
                columns.append(Column(0, name, ColumnRole.TARGET, column.scaling_method))

        original_rows = dataset.rows_number
        dataset.replace_contents(pd.DataFrame(data), columns)
        dataset.is_time_series = True
        dataset.lags_number = lags
        dataset.steps_ahead = steps

        logger.info(
            f"Time series transform of {dataset.name}: {original_rows} → {dataset.rows_number} rows, "
            f"{dataset.input_variables_number} inputs, {dataset.target_variables_number} targets"
        )
        return dataset

    def _resolve_time_column(self, dataset: TabularDataset) -> Optional[Column]:
        """Column ordering the rows, or None for storage order. Roles are left untouched."""
        if self.window.time_column is None:
            return dataset.time_column

        column = dataset.get_column(self.window.time_column)
        value_columns = [
            c for c in dataset.columns if c.role in (ColumnRole.INPUT, ColumnRole.TARGET)
        ]
        if len(value_columns) == 1 and value_columns[0] is column:
            logger.warning(
                f"Time column '{column.name}' is the only value column of {dataset.name}; "
                f"using storage order"
            )
            return dataset.time_column
        return column

    def _sort_by_time(self, dataset: TabularDataset,
                      time_column: Optional[Column]) -> pd.DataFrame:
        if time_column is None:
            return dataset.data

        times = dataset.data[time_column.name]
        if times.isnull().any():
            raise TimeColumnError(f"Time column '{time_column.name}' has missing values")
        if times.duplicated().any():
            raise TimeColumnError(f"Time column '{time_column.name}' repeats time points")

        return dataset.data.sort_values(time_column.name, kind="mergesort").reset_index(drop=True)

    def process(self, dataset: TabularDataset) -> Tuple[TabularDataset, Dict[str, Any]]:
        rows_before = dataset.rows_number
        self.transform(dataset)
        return dataset, self.generate_report(
            rows_before=rows_before,
            rows_after=dataset.rows_number,
            lags_number=self.window.lags_number,
            steps_ahead=self.window.steps_ahead,
        )
