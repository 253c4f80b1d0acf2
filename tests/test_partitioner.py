import numpy as np
import pytest

from pipeline.config import ForecastConfig
from pipeline.dataset import PartitionLabel, TabularDataset
from pipeline.exceptions import InvalidRatioError
from pipeline.partitioner import Partitioner, PartitionStage


def dataset_of(rows):
    return TabularDataset.from_array(np.arange(float(rows)))


@pytest.mark.parametrize("rows", [1, 7, 18, 100, 101])
@pytest.mark.parametrize("method", ["split_sequential", "split_random"])
def test_partitions_cover_rows_exactly_once(rows, method):
    dataset = dataset_of(rows)

    parts = getattr(Partitioner(random_state=3), method)(dataset)

    combined = np.concatenate(list(parts.values()))
    assert sorted(combined.tolist()) == list(range(rows)), "Every row belongs to one partition"
    assert len(set(combined.tolist())) == rows


@pytest.mark.parametrize("rows,expected", [(10, (6, 2, 2)), (18, (11, 4, 3)), (100, (60, 20, 20))])
def test_sizes_follow_ratios(rows, expected):
    assert Partitioner().partition_sizes(rows) == expected


def test_sequential_is_contiguous():
    dataset = dataset_of(10)

    parts = Partitioner().split_sequential(dataset)

    assert parts[PartitionLabel.TRAINING].tolist() == list(range(6))
    assert parts[PartitionLabel.SELECTION].tolist() == [6, 7]
    assert parts[PartitionLabel.TESTING].tolist() == [8, 9]
    assert dataset.testing_indices.tolist() == [8, 9]


def test_random_is_reproducible_with_seed():
    first = Partitioner(random_state=42).split_random(dataset_of(50))
    second = Partitioner(random_state=42).split_random(dataset_of(50))

    for label in PartitionLabel:
        np.testing.assert_array_equal(first[label], second[label])


def test_accepts_generator():
    rng = np.random.default_rng(1)
    parts = Partitioner(random_state=rng).split_random(dataset_of(20))

    assert len(parts[PartitionLabel.TRAINING]) == 12


@pytest.mark.parametrize("ratios", [(0.5, 0.2, 0.2), (0.7, 0.5, -0.2), (1.0, 0.1, 0.0)])
def test_invalid_ratios(ratios):
    with pytest.raises(InvalidRatioError):
        Partitioner(*ratios)


def test_zero_selection_ratio():
    parts = Partitioner(0.8, 0.0, 0.2).split_sequential(dataset_of(10))

    assert len(parts[PartitionLabel.SELECTION]) == 0
    assert len(parts[PartitionLabel.TESTING]) == 2


def test_stage_reports_sizes():
    config = ForecastConfig()
    config.partition.method = "random"
    config.partition.random_state = 0

    _, report = PartitionStage(config).process(dataset_of(10))

    assert report["sizes"] == {"training": 6, "selection": 2, "testing": 2}
