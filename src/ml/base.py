"""
Base classes for trainable models.

The optimization loop only depends on this contract: a flat parameter
vector, forward outputs, and a loss with its gradient evaluated at an
arbitrary parameter vector without installing it.
"""

from abc import ABC, abstractmethod
from typing import Tuple

import numpy as np


class TrainableModel(ABC):
    """Abstract base class for gradient-trainable function approximators."""

    @property
    @abstractmethod
    def parameters_number(self) -> int:
        pass

    @abstractmethod
    def get_parameters(self) -> np.ndarray:
        """Copy of the installed parameter vector."""
        pass

    @abstractmethod
    def set_parameters(self, parameters: np.ndarray) -> None:
        """Install a parameter vector."""
        pass

    @abstractmethod
    def calculate_outputs(self, inputs: np.ndarray) -> np.ndarray:
        """Outputs for a (samples, inputs) matrix with the installed parameters."""
        pass

    @abstractmethod
    def calculate_loss_gradient(self,
                                parameters: np.ndarray,
                                inputs: np.ndarray,
                                targets: np.ndarray) -> Tuple[float, np.ndarray]:
        """
        Loss and its gradient at a given parameter vector.

        Parameters:
        ----------
        parameters : np.ndarray
            Parameter vector to evaluate (not installed)
        inputs : np.ndarray
            Input matrix (samples, inputs)
        targets : np.ndarray
            Target matrix (samples, targets)

        Returns:
        -------
        Tuple[float, np.ndarray]
            Loss value and gradient with respect to `parameters`
        """
        pass

    def calculate_loss(self,
                       parameters: np.ndarray,
                       inputs: np.ndarray,
                       targets: np.ndarray) -> float:
        """Loss only; subclasses may override with a cheaper forward pass."""
        return self.calculate_loss_gradient(parameters, inputs, targets)[0]
