"""
Abstract base class for pipeline stages.

Each stage takes the dataset produced by the previous stage, mutates it in
place and returns it together with a processing report.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Tuple

import pandas as pd

from .config import ForecastConfig
from .dataset import TabularDataset


class PipelineComponent(ABC):
    """Base class for pipeline components."""

    def __init__(self, config: ForecastConfig):
        self.config = config

    @abstractmethod
    def process(self, dataset: TabularDataset) -> Tuple[TabularDataset, Dict[str, Any]]:
        """
        Process a dataset and return it with a report.

        Returns:
        -------
        Tuple[TabularDataset, Dict]
            Processed dataset and processing report
        """
        pass

    def generate_report(self, **kwargs) -> Dict[str, Any]:
        """Generate processing report."""
        report = {
            'component': self.__class__.__name__,
            'timestamp': pd.Timestamp.now(),
            'success': True
        }
        report.update(kwargs)
        return report
