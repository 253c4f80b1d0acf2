"""
Forecasting network: scaling → LSTM → linear perceptron → unscaling.

The network owns its layers as attributes. Only the LSTM and perceptron
layers are trainable; the scaling layers are configured from dataset
descriptives and may be set to pass values through unchanged when the
dataset itself has already been scaled.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from pipeline.dataset import Descriptives, ScalingMethod

from .base import TrainableModel
from .layers import PerceptronLayer, ScalingLayer, UnscalingLayer
from .long_short_term_memory import LongShortTermMemoryLayer

logger = logging.getLogger(__name__)


def _default_descriptives(count: int) -> List[Descriptives]:
    return [Descriptives(-1.0, 1.0, 0.0, 1.0) for _ in range(count)]


class ForecastingNetwork(TrainableModel):
    """Recurrent forecaster trained on mean squared error."""

    def __init__(self,
                 inputs_number: int,
                 hidden_units: int,
                 outputs_number: int,
                 timesteps: int = 4,
                 random_state: Optional[Union[int, np.random.Generator]] = None,
                 input_names: Optional[List[str]] = None,
                 output_names: Optional[List[str]] = None):
        if min(inputs_number, hidden_units, outputs_number) < 1:
            raise ValueError(
                f"Invalid architecture {inputs_number}-{hidden_units}-{outputs_number}"
            )

        rng = np.random.default_rng(random_state)
        self.input_names = input_names or [f"input_{i + 1}" for i in range(inputs_number)]
        self.output_names = output_names or [f"output_{i + 1}" for i in range(outputs_number)]

        self.scaling_layer = ScalingLayer(_default_descriptives(inputs_number))
        self.long_short_term_memory_layer = LongShortTermMemoryLayer(
            inputs_number, hidden_units, timesteps, rng
        )
        self.perceptron_layer = PerceptronLayer(hidden_units, outputs_number, rng)
        self.unscaling_layer = UnscalingLayer(_default_descriptives(outputs_number))

    @property
    def inputs_number(self) -> int:
        return self.long_short_term_memory_layer.inputs_number

    @property
    def outputs_number(self) -> int:
        return self.perceptron_layer.neurons_number

    @property
    def architecture(self) -> Tuple[int, int, int]:
        return (self.inputs_number,
                self.long_short_term_memory_layer.neurons_number,
                self.outputs_number)

    @property
    def parameters_number(self) -> int:
        return (self.long_short_term_memory_layer.parameters_number
                + self.perceptron_layer.parameters_number)

    def _split(self, parameters: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        parameters = np.asarray(parameters, dtype=float)
        if parameters.shape != (self.parameters_number,):
            raise ValueError(
                f"Expected {self.parameters_number} parameters, got {parameters.shape}"
            )
        boundary = self.long_short_term_memory_layer.parameters_number
        return parameters[:boundary], parameters[boundary:]

    def get_parameters(self) -> np.ndarray:
        return np.concatenate([
            self.long_short_term_memory_layer.parameters,
            self.perceptron_layer.parameters,
        ])

    def set_parameters(self, parameters: np.ndarray) -> None:
        recurrent, perceptron = self._split(parameters)
        self.long_short_term_memory_layer.parameters = recurrent.copy()
        self.perceptron_layer.parameters = perceptron.copy()

    def set_input_descriptives(self, descriptives: Sequence[Descriptives],
                               method: Union[str, ScalingMethod] = ScalingMethod.NONE) -> None:
        self.scaling_layer.set_descriptives(descriptives)
        self.scaling_layer.set_method(method)

    def set_output_descriptives(self, descriptives: Sequence[Descriptives],
                                method: Union[str, ScalingMethod] = ScalingMethod.NONE) -> None:
        self.unscaling_layer.set_descriptives(descriptives)
        self.unscaling_layer.set_method(method)

    def _forward(self, parameters: np.ndarray, inputs: np.ndarray):
        recurrent, perceptron = self._split(parameters)
        scaled_inputs = self.scaling_layer.calculate_outputs(np.asarray(inputs, dtype=float))
        hidden, cache = self.long_short_term_memory_layer.forward(scaled_inputs, recurrent)
        scaled_outputs = self.perceptron_layer.forward(hidden, perceptron)
        outputs = self.unscaling_layer.calculate_outputs(scaled_outputs)
        return outputs, (recurrent, perceptron, scaled_inputs, hidden, cache)

    def calculate_outputs(self, inputs: np.ndarray) -> np.ndarray:
        outputs, _ = self._forward(self.get_parameters(), inputs)
        return outputs

    def calculate_loss(self, parameters: np.ndarray, inputs: np.ndarray, targets: np.ndarray) -> float:
        outputs, _ = self._forward(parameters, inputs)
        return float(np.mean((outputs - targets) ** 2))

    def calculate_loss_gradient(self,
                                parameters: np.ndarray,
                                inputs: np.ndarray,
                                targets: np.ndarray) -> Tuple[float, np.ndarray]:
        outputs, (recurrent, perceptron, scaled_inputs, hidden, cache) = self._forward(parameters, inputs)
        errors = outputs - targets
        loss = float(np.mean(errors ** 2))

        slope, _ = self.unscaling_layer.coefficients()
        output_deltas = 2.0 * errors * slope / errors.size

        hidden_deltas, perceptron_gradient = self.perceptron_layer.backward(
            hidden, perceptron, output_deltas
        )
        recurrent_gradient = self.long_short_term_memory_layer.backward(
            scaled_inputs, recurrent, cache, hidden_deltas
        )
        return loss, np.concatenate([recurrent_gradient, perceptron_gradient])

    def write_expression(self) -> str:
        """Human-readable expression of the whole network."""
        hidden_names = [
            f"long_short_term_memory_output_{j}"
            for j in range(self.long_short_term_memory_layer.neurons_number)
        ]
        scaled_inputs = [f"scaled_{name}" for name in self.input_names]
        scaled_outputs = [f"scaled_{name}" for name in self.output_names]

        sections = [
            self.scaling_layer.write_expression(self.input_names, scaled_inputs),
            self.long_short_term_memory_layer.write_expression(scaled_inputs, hidden_names),
            self.perceptron_layer.write_expression(hidden_names, scaled_outputs),
            self.unscaling_layer.write_expression(scaled_outputs, self.output_names),
        ]
        return "\n".join(sections) + "\n"

    def save_expression(self, file_path: Union[str, Path]) -> None:
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(self.write_expression())

    def to_dict(self) -> Dict:
        return {
            "architecture": list(self.architecture),
            "timesteps": self.long_short_term_memory_layer.timesteps,
            "input_names": self.input_names,
            "output_names": self.output_names,
            "scaling_layer": self.scaling_layer.to_dict(),
            "unscaling_layer": self.unscaling_layer.to_dict(),
            "parameters": self.get_parameters().tolist(),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ForecastingNetwork":
        inputs_number, hidden_units, outputs_number = data["architecture"]
        network = cls(
            inputs_number, hidden_units, outputs_number,
            timesteps=data["timesteps"],
            input_names=data["input_names"],
            output_names=data["output_names"],
        )
        for layer, key in ((network.scaling_layer, "scaling_layer"),
                           (network.unscaling_layer, "unscaling_layer")):
            layer.set_descriptives([Descriptives(**d) for d in data[key]["descriptives"]])
            layer.set_method(data[key]["method"])
            layer.feature_range = tuple(data[key]["feature_range"])
        network.set_parameters(np.asarray(data["parameters"], dtype=float))
        return network

    def save(self, file_path: Union[str, Path]) -> None:
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Network saved to {file_path}")

    @classmethod
    def load(cls, file_path: Union[str, Path]) -> "ForecastingNetwork":
        with open(file_path, "r") as f:
            return cls.from_dict(json.load(f))
