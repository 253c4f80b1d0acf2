"""
Non-recurrent layers of the forecasting network.

The scaling and unscaling layers are affine maps built from column
descriptives; they hold no trainable parameters. The perceptron layer is a
linear output layer.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from pipeline.dataset import Descriptives, ScalingMethod

logger = logging.getLogger(__name__)


def _format(value: float) -> str:
    return f"{value:.6g}"


class _AffineLayer:
    """Shared machinery for layers defined by per-column descriptives."""

    def __init__(self,
                 descriptives: Sequence[Descriptives],
                 method: ScalingMethod = ScalingMethod.NONE,
                 feature_range: Tuple[float, float] = (-1.0, 1.0)):
        self.descriptives: List[Descriptives] = list(descriptives)
        self.method = ScalingMethod(method)
        self.feature_range = tuple(feature_range)

    @property
    def neurons_number(self) -> int:
        return len(self.descriptives)

    def set_descriptives(self, descriptives: Sequence[Descriptives]) -> None:
        self.descriptives = list(descriptives)

    def set_method(self, method: ScalingMethod) -> None:
        self.method = ScalingMethod(method)

    def _scaling_coefficients(self) -> Tuple[np.ndarray, np.ndarray]:
        """Slope and intercept of the map from original to scaled units."""
        n = self.neurons_number
        slope = np.ones(n)
        intercept = np.zeros(n)
        low, high = self.feature_range

        for j, stats in enumerate(self.descriptives):
            if self.method == ScalingMethod.MINIMUM_MAXIMUM:
                spread = stats.maximum - stats.minimum
                if spread == 0:
                    logger.warning(f"Zero range for variable {j}, leaving it unscaled")
                    continue
                slope[j] = (high - low) / spread
                intercept[j] = low - stats.minimum * slope[j]
            elif self.method == ScalingMethod.MEAN_STANDARD_DEVIATION:
                if stats.standard_deviation == 0:
                    logger.warning(f"Zero standard deviation for variable {j}, leaving it unscaled")
                    continue
                slope[j] = 1.0 / stats.standard_deviation
                intercept[j] = -stats.mean / stats.standard_deviation

        return slope, intercept

    def to_dict(self) -> Dict:
        return {
            "method": self.method.value,
            "feature_range": list(self.feature_range),
            "descriptives": [d.to_dict() for d in self.descriptives],
        }


class ScalingLayer(_AffineLayer):
    """Maps raw network inputs into the scaled space."""

    def calculate_outputs(self, inputs: np.ndarray) -> np.ndarray:
        slope, intercept = self._scaling_coefficients()
        return inputs * slope + intercept

    def write_expression(self, input_names: List[str], output_names: List[str]) -> str:
        slope, intercept = self._scaling_coefficients()
        lines = []
        for j, (source, target) in enumerate(zip(input_names, output_names)):
            if self.method == ScalingMethod.NONE:
                lines.append(f"{target} = {source};")
            else:
                lines.append(f"{target} = {source}*{_format(slope[j])}+{_format(intercept[j])};")
        return "\n".join(lines)


class UnscalingLayer(_AffineLayer):
    """Maps network outputs from the scaled space back to original units."""

    def coefficients(self) -> Tuple[np.ndarray, np.ndarray]:
        """Slope and intercept of the unscaling map."""
        slope, intercept = self._scaling_coefficients()
        return 1.0 / slope, -intercept / slope

    def calculate_outputs(self, inputs: np.ndarray) -> np.ndarray:
        slope, intercept = self.coefficients()
        return inputs * slope + intercept

    def write_expression(self, input_names: List[str], output_names: List[str]) -> str:
        slope, intercept = self.coefficients()
        lines = []
        for j, (source, target) in enumerate(zip(input_names, output_names)):
            if self.method == ScalingMethod.NONE:
                lines.append(f"{target} = {source};")
            else:
                lines.append(f"{target} = {source}*{_format(slope[j])}+{_format(intercept[j])};")
        return "\n".join(lines)


class PerceptronLayer:
    """Linear dense layer: outputs = inputs @ weights + biases."""

    def __init__(self, inputs_number: int, neurons_number: int,
                 rng: Optional[np.random.Generator] = None):
        self.inputs_number = inputs_number
        self.neurons_number = neurons_number
        rng = rng if rng is not None else np.random.default_rng()
        self.parameters = rng.uniform(-1.0, 1.0, self.parameters_number)

    @property
    def parameters_number(self) -> int:
        return self.neurons_number * (self.inputs_number + 1)

    def unpack(self, parameters: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        biases = parameters[:self.neurons_number]
        weights = parameters[self.neurons_number:].reshape(self.inputs_number, self.neurons_number)
        return biases, weights

    def forward(self, inputs: np.ndarray, parameters: np.ndarray) -> np.ndarray:
        biases, weights = self.unpack(parameters)
        return inputs @ weights + biases

    def backward(self, inputs: np.ndarray, parameters: np.ndarray,
                 output_deltas: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Input deltas and parameter gradient for the given output deltas."""
        _, weights = self.unpack(parameters)
        gradient = np.concatenate([
            output_deltas.sum(axis=0),
            (inputs.T @ output_deltas).ravel(),
        ])
        return output_deltas @ weights.T, gradient

    def write_expression(self, input_names: List[str], output_names: List[str]) -> str:
        biases, weights = self.unpack(self.parameters)
        lines = []
        for k, target in enumerate(output_names):
            terms = "".join(
                f" + ({_format(weights[i, k])}*{name})" for i, name in enumerate(input_names)
            )
            lines.append(f"{target} = {_format(biases[k])}{terms};")
        return "\n".join(lines)
