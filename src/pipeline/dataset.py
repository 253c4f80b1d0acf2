"""
Tabular dataset model shared by every pipeline stage.

A TabularDataset owns a numeric DataFrame together with per-column metadata
(role and scaling method), the one-way time-series flag and the partition
label of every row. Stages mutate it in place; the optimization loop only
reads from it.
"""

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .exceptions import DatasetError, EmptyColumnError

logger = logging.getLogger(__name__)

ColumnKey = Union[int, str]


class ColumnRole(str, Enum):
    INPUT = "input"
    TARGET = "target"
    TIME = "time"
    UNUSED = "unused"


class ScalingMethod(str, Enum):
    NONE = "none"
    MINIMUM_MAXIMUM = "minimum_maximum"
    MEAN_STANDARD_DEVIATION = "mean_standard_deviation"


class PartitionLabel(str, Enum):
    TRAINING = "training"
    SELECTION = "selection"
    TESTING = "testing"


@dataclass
class Column:
    """Identity and role of a single dataset column."""

    index: int
    name: str
    role: ColumnRole = ColumnRole.INPUT
    scaling_method: ScalingMethod = ScalingMethod.MINIMUM_MAXIMUM


@dataclass
class Descriptives:
    """Summary statistics of a column over a subset of rows."""

    minimum: float
    maximum: float
    mean: float
    standard_deviation: float

    @classmethod
    def from_values(cls, values: Iterable[float], name: str = "column") -> "Descriptives":
        """
        Compute descriptives ignoring missing cells.

        Parameters:
        ----------
        values : Iterable[float]
            Cell values, possibly containing NaN
        name : str
            Column name used in error messages

        Returns:
        -------
        Descriptives
            Statistics of the non-missing values
        """
        array = np.asarray(values, dtype=float)
        array = array[~np.isnan(array)]

        if array.size == 0:
            raise EmptyColumnError(f"Column '{name}' has no non-missing values")

        standard_deviation = float(np.std(array, ddof=1)) if array.size > 1 else 0.0

        return cls(
            minimum=float(np.min(array)),
            maximum=float(np.max(array)),
            mean=float(np.mean(array)),
            standard_deviation=standard_deviation,
        )

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class Histogram:
    """Frequency distribution of a column."""

    centers: np.ndarray
    minimums: np.ndarray
    maximums: np.ndarray
    frequencies: np.ndarray

    @classmethod
    def from_values(cls, values: Iterable[float], bins: int = 10) -> "Histogram":
        array = np.asarray(values, dtype=float)
        array = array[~np.isnan(array)]

        if array.size == 0:
            empty = np.array([], dtype=float)
            return cls(empty, empty, empty, np.array([], dtype=int))

        frequencies, edges = np.histogram(array, bins=bins)
        return cls(
            centers=(edges[:-1] + edges[1:]) / 2.0,
            minimums=edges[:-1],
            maximums=edges[1:],
            frequencies=frequencies,
        )


class TabularDataset:
    """Numeric table with column roles, partitions and time-series state."""

    def __init__(self, data: pd.DataFrame, name: str = "dataset"):
        if data.shape[1] == 0:
            raise DatasetError("Dataset must have at least one column")

        self.name = name
        self.data = data.astype(float).reset_index(drop=True)
        self.data.columns = [str(column) for column in self.data.columns]
        self.columns: List[Column] = []
        last = len(self.data.columns) - 1
        for index, column_name in enumerate(self.data.columns):
            role = ColumnRole.TARGET if index == last else ColumnRole.INPUT
            self.columns.append(Column(index=index, name=column_name, role=role))

        self.is_time_series = False
        self.lags_number = 0
        self.steps_ahead = 0
        self.partition: Optional[np.ndarray] = None

    @classmethod
    def from_array(cls,
                   values: Union[np.ndarray, Sequence[Sequence[float]]],
                   column_names: Optional[List[str]] = None,
                   name: str = "dataset") -> "TabularDataset":
        """Build a dataset from a 1-D or 2-D array of numbers."""
        array = np.asarray(values, dtype=float)
        if array.ndim == 1:
            array = array.reshape(-1, 1)
        if column_names is None:
            column_names = [f"column_{i + 1}" for i in range(array.shape[1])]
        return cls(pd.DataFrame(array, columns=column_names), name=name)

    @property
    def rows_number(self) -> int:
        return len(self.data)

    @property
    def columns_number(self) -> int:
        return len(self.columns)

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    def get_column(self, key: ColumnKey) -> Column:
        """Look up a column by position or by name."""
        if isinstance(key, (int, np.integer)):
            if not 0 <= key < len(self.columns):
                raise DatasetError(f"Column index {key} out of range")
            return self.columns[int(key)]

        for column in self.columns:
            if column.name == key:
                return column
        raise DatasetError(f"Unknown column: {key}")

    def get_columns(self, role: ColumnRole) -> List[Column]:
        return [column for column in self.columns if column.role == role]

    def set_column_role(self, key: ColumnKey, role: ColumnRole) -> None:
        column = self.get_column(key)
        if role == ColumnRole.TIME:
            self.set_time_column(key)
            return
        column.role = role

    def set_time_column(self, key: ColumnKey) -> None:
        """Designate the single column that orders rows in time."""
        column = self.get_column(key)
        for other in self.columns:
            if other.role == ColumnRole.TIME and other is not column:
                other.role = ColumnRole.INPUT
        column.role = ColumnRole.TIME

    @property
    def time_column(self) -> Optional[Column]:
        time_columns = self.get_columns(ColumnRole.TIME)
        return time_columns[0] if time_columns else None

    @property
    def input_names(self) -> List[str]:
        return [column.name for column in self.get_columns(ColumnRole.INPUT)]

    @property
    def target_names(self) -> List[str]:
        return [column.name for column in self.get_columns(ColumnRole.TARGET)]

    @property
    def input_variables_number(self) -> int:
        return len(self.input_names)

    @property
    def target_variables_number(self) -> int:
        return len(self.target_names)

    def replace_contents(self, data: pd.DataFrame, columns: List[Column]) -> None:
        """
        Replace rows and column metadata in one step.

        Used by stages that redefine row and column identity. Any existing
        partition no longer refers to valid rows and is cleared.
        """
        if list(data.columns) != [column.name for column in columns]:
            raise DatasetError("Column metadata does not match data columns")

        self.data = data.astype(float).reset_index(drop=True)
        self.columns = [
            Column(index=i, name=c.name, role=c.role, scaling_method=c.scaling_method)
            for i, c in enumerate(columns)
        ]
        self.partition = None

    # Partitions

    def set_partition(self, labels: Sequence[str]) -> None:
        labels = np.asarray([PartitionLabel(label).value for label in labels], dtype=object)
        if labels.shape[0] != self.rows_number:
            raise DatasetError(
                f"Partition has {labels.shape[0]} labels for {self.rows_number} rows"
            )
        self.partition = labels

    def get_partition_indices(self, label: PartitionLabel) -> np.ndarray:
        """
        Row indices of a partition.

        An unpartitioned dataset treats every row as training.
        """
        label = PartitionLabel(label)
        if self.partition is None:
            if label == PartitionLabel.TRAINING:
                return np.arange(self.rows_number)
            return np.array([], dtype=int)
        return np.flatnonzero(self.partition == label.value)

    @property
    def training_indices(self) -> np.ndarray:
        return self.get_partition_indices(PartitionLabel.TRAINING)

    @property
    def selection_indices(self) -> np.ndarray:
        return self.get_partition_indices(PartitionLabel.SELECTION)

    @property
    def testing_indices(self) -> np.ndarray:
        return self.get_partition_indices(PartitionLabel.TESTING)

    # Data access

    def get_input_data(self, indices: Optional[np.ndarray] = None) -> np.ndarray:
        return self._select(self.input_names, indices)

    def get_target_data(self, indices: Optional[np.ndarray] = None) -> np.ndarray:
        return self._select(self.target_names, indices)

    def _select(self, names: List[str], indices: Optional[np.ndarray]) -> np.ndarray:
        frame = self.data[names]
        if indices is not None:
            frame = frame.iloc[np.asarray(indices, dtype=int)]
        return frame.to_numpy(dtype=float)

    # Statistics

    def count_missing_values(self) -> pd.Series:
        return self.data.isnull().sum()

    def calculate_columns_descriptives(self,
                                       indices: Optional[np.ndarray] = None,
                                       names: Optional[List[str]] = None) -> Dict[str, Descriptives]:
        """
        Compute descriptives per column over a subset of rows.

        Parameters:
        ----------
        indices : np.ndarray, optional
            Row indices to include (all rows if None)
        names : List[str], optional
            Columns to describe (all non-unused columns if None)

        Returns:
        -------
        Dict[str, Descriptives]
            Descriptives keyed by column name
        """
        if names is None:
            names = [c.name for c in self.columns if c.role != ColumnRole.UNUSED]
        frame = self.data[names]
        if indices is not None:
            frame = frame.iloc[np.asarray(indices, dtype=int)]

        return {
            name: Descriptives.from_values(frame[name].to_numpy(), name)
            for name in names
        }

    def calculate_columns_histograms(self, bins: int = 10) -> Dict[str, Histogram]:
        histograms = {
            column.name: Histogram.from_values(self.data[column.name].to_numpy(), bins)
            for column in self.columns
            if column.role != ColumnRole.UNUSED
        }
        logger.debug(f"Computed {len(histograms)} histograms with {bins} bins")
        return histograms

    # Persistence

    def to_frame(self) -> pd.DataFrame:
        """Data with an extra partition column, as written by save()."""
        frame = self.data.copy()
        if self.partition is not None:
            frame["partition"] = self.partition
        return frame

    def save(self, file_path: Union[str, Path]) -> None:
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        self.to_frame().to_csv(file_path, index=False)
        logger.info(f"Dataset saved to {file_path}")

    def get_summary(self) -> Dict:
        return {
            "name": self.name,
            "rows": self.rows_number,
            "columns": self.columns_number,
            "is_time_series": self.is_time_series,
            "lags_number": self.lags_number,
            "steps_ahead": self.steps_ahead,
            "inputs": self.input_names,
            "targets": self.target_names,
            "missing_values": int(self.count_missing_values().sum()),
        }

    def __repr__(self) -> str:
        return (f"TabularDataset(name={self.name!r}, rows={self.rows_number}, "
                f"columns={self.columns_number}, is_time_series={self.is_time_series})")
