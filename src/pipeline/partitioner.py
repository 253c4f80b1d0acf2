"""
Training/selection/testing partitioning of dataset rows.
"""

import logging
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np

from .base import PipelineComponent
from .config import ForecastConfig
from .dataset import PartitionLabel, TabularDataset
from .exceptions import ConfigurationError, InvalidRatioError

logger = logging.getLogger(__name__)

RATIO_TOLERANCE = 1.0e-6


class Partitioner:
    """Assigns every row to exactly one of training, selection or testing."""

    def __init__(self,
                 training_ratio: float = 0.6,
                 selection_ratio: float = 0.2,
                 testing_ratio: float = 0.2,
                 random_state: Optional[Union[int, np.random.Generator]] = None):
        ratios = (training_ratio, selection_ratio, testing_ratio)
        if any(ratio < 0 for ratio in ratios):
            raise InvalidRatioError(f"Partition ratios must be non-negative, got {ratios}")
        if abs(sum(ratios) - 1.0) > RATIO_TOLERANCE:
            raise InvalidRatioError(f"Partition ratios must sum to 1.0, got {sum(ratios)}")

        self.training_ratio = training_ratio
        self.selection_ratio = selection_ratio
        self.testing_ratio = testing_ratio
        self.rng = np.random.default_rng(random_state)

    def partition_sizes(self, rows_number: int) -> Tuple[int, int, int]:
        """Row counts per partition; testing takes the rounding remainder."""
        training = min(int(round(rows_number * self.training_ratio)), rows_number)
        selection = min(int(round(rows_number * self.selection_ratio)), rows_number - training)
        testing = rows_number - training - selection
        return training, selection, testing

    def split_sequential(self, dataset: TabularDataset) -> Dict[PartitionLabel, np.ndarray]:
        """Contiguous split in storage order: training, then selection, then testing."""
        return self._assign(dataset, np.arange(dataset.rows_number))

    def split_random(self, dataset: TabularDataset) -> Dict[PartitionLabel, np.ndarray]:
        """
        Proportional split over a random permutation of the rows.

        Not time-respecting: callers must not use it on a dataset that has
        been transformed into a time series.
        """
        return self._assign(dataset, self.rng.permutation(dataset.rows_number))

    def _assign(self, dataset: TabularDataset, order: np.ndarray) -> Dict[PartitionLabel, np.ndarray]:
        training, selection, _ = self.partition_sizes(dataset.rows_number)

        parts = {
            PartitionLabel.TRAINING: np.sort(order[:training]),
            PartitionLabel.SELECTION: np.sort(order[training:training + selection]),
            PartitionLabel.TESTING: np.sort(order[training + selection:]),
        }

        labels = np.empty(dataset.rows_number, dtype=object)
        for label, indices in parts.items():
            labels[indices] = label.value
        dataset.set_partition(labels)

        logger.info(
            f"Partitioned {dataset.name}: training={len(parts[PartitionLabel.TRAINING])}, "
            f"selection={len(parts[PartitionLabel.SELECTION])}, "
            f"testing={len(parts[PartitionLabel.TESTING])}"
        )
        return parts


class PartitionStage(PipelineComponent):
    """Pipeline stage applying the configured partition method."""

    def __init__(self, config: ForecastConfig, rng: Optional[np.random.Generator] = None):
        super().__init__(config)
        settings = config.partition
        self.partitioner = Partitioner(
            settings.training_ratio,
            settings.selection_ratio,
            settings.testing_ratio,
            random_state=rng if rng is not None else settings.random_state,
        )

    def process(self, dataset: TabularDataset) -> Tuple[TabularDataset, Dict[str, Any]]:
        method = self.config.partition.method
        if method == "sequential":
            parts = self.partitioner.split_sequential(dataset)
        elif method == "random":
            if dataset.is_time_series:
                logger.warning("Random partition requested for a time series dataset")
            parts = self.partitioner.split_random(dataset)
        else:
            raise ConfigurationError(f"Unknown partition method: {method}")

        return dataset, self.generate_report(
            method=method,
            sizes={label.value: len(indices) for label, indices in parts.items()},
        )
