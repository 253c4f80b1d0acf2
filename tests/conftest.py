import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pipeline.config import ForecastConfig  # noqa: E402
from pipeline.dataset import TabularDataset  # noqa: E402


@pytest.fixture
def ramp_dataset():
    """Single column series 1, 2, ..., 20 in storage order."""
    return TabularDataset.from_array(np.arange(1.0, 21.0), column_names=["value"], name="ramp")


@pytest.fixture
def timed_frame():
    """Two columns: time index and a parabola, shuffled in storage."""
    time = np.arange(12.0)
    frame = pd.DataFrame({"time": time, "value": time ** 2})
    return frame.iloc[[3, 0, 7, 1, 11, 5, 2, 9, 4, 10, 6, 8]].reset_index(drop=True)


@pytest.fixture
def quick_config(tmp_path):
    """Small, fast, seeded configuration writing into a temporary directory."""
    config = ForecastConfig()
    config.data_paths.data_dir = str(tmp_path)
    config.network.hidden_units = 3
    config.network.random_state = 0
    config.partition.random_state = 0
    config.training.maximum_epochs = 20
    config.training.maximum_time = 60.0
    config.training.display_period = 5
    return config


@pytest.fixture
def write_series(tmp_path):
    """Write a header-less comma separated series file into tmp_path."""

    def _write(name, rows):
        path = tmp_path / f"{name}.csv"
        lines = [",".join(str(value) for value in row) for row in rows]
        path.write_text("\n".join(lines) + "\n")
        return path

    return _write
