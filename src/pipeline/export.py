"""
Writing of per-series artifacts.

Every file shares the stem `<data_dir>/<output_prefix><series>_` so that a
run over several series leaves one group of files per series.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

from .dataset import TabularDataset

logger = logging.getLogger(__name__)


def _json_safe(value: Any) -> Any:
    """Replace NaN and infinities with None so the result is strict JSON."""
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    if isinstance(value, (float, np.floating)) and not np.isfinite(value):
        return None
    return value


def _save_vector_list(file_path: Path, vectors: List[np.ndarray]) -> None:
    """One line per vector; vectors may differ in length."""
    with open(file_path, "w") as f:
        for vector in vectors:
            f.write(" ".join(f"{value:.10g}" for value in np.ravel(vector)) + "\n")


def _save_matrix_list(file_path: Path, matrices: List[np.ndarray]) -> None:
    """Matrices written one after another, separated by a blank line."""
    with open(file_path, "w") as f:
        for i, matrix in enumerate(matrices):
            if i:
                f.write("\n")
            np.savetxt(f, np.atleast_2d(matrix), fmt="%.10g")


class ArtifactExporter:
    """Writes the dataset, network, training and testing artifacts of a series."""

    def __init__(self, output_stem: str):
        self.output_stem = output_stem
        self.written: List[Path] = []

    def path(self, suffix: str) -> Path:
        return Path(f"{self.output_stem}{suffix}")

    def _register(self, suffix: str) -> Path:
        file_path = self.path(suffix)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        self.written.append(file_path)
        return file_path

    def save_dataset(self, dataset: TabularDataset) -> None:
        dataset.save(self._register("Data.csv"))

    def save_network(self, network) -> None:
        network.save(self._register("ANN.json"))
        network.save_expression(self._register("ANN_Expression.txt"))

    def save_training(self, settings: Dict[str, Any], results) -> None:
        strategy = _json_safe({"settings": settings, "results": results.to_dict()})
        with open(self._register("Training_Strategy.json"), "w") as f:
            json.dump(strategy, f, indent=2, default=str, allow_nan=False)
        results.save(self._register("Training_Results.csv"))

    def save_testing_analysis(self, analysis, maximum_lags: int = 10) -> None:
        """
        Write regression, error correlation and error data files.

        Parameters:
        ----------
        analysis : TestingAnalysis
            Analysis bound to the trained network and dataset
        maximum_lags : int
            Lags for the autocorrelation and cross-correlation files
        """
        for i, regression in enumerate(analysis.perform_linear_regression_analysis()):
            np.savetxt(self._register(f"LinearAnalysis_{i}Data.dat"), regression.parameters(), fmt="%.10g")
            np.savetxt(self._register(f"LinearAnalysis_{i}Targets.dat"), regression.targets, fmt="%.10g")
            np.savetxt(self._register(f"LinearAnalysis_{i}Outputs.dat"), regression.outputs, fmt="%.10g")

        _save_vector_list(
            self._register("ErrorAutocorrelation.dat"),
            analysis.calculate_error_autocorrelation(maximum_lags),
        )
        _save_matrix_list(
            self._register("ErrorCrossCorrelation.dat"),
            analysis.calculate_inputs_errors_cross_correlation(maximum_lags),
        )
        _save_matrix_list(self._register("ErrorData.dat"), analysis.calculate_error_data())

    def export_all(self,
                   dataset: TabularDataset,
                   network,
                   settings: Dict[str, Any],
                   results,
                   analysis: Optional[Any] = None) -> List[Path]:
        """Write every artifact available for the series."""
        self.save_dataset(dataset)
        self.save_network(network)
        self.save_training(settings, results)
        if analysis is not None:
            self.save_testing_analysis(analysis)

        logger.info(f"Saved {len(self.written)} files with prefix {self.output_stem}")
        return list(self.written)
