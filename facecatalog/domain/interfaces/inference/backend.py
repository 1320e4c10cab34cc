"""Inference backend interface for embedding models."""
from abc import ABC, abstractmethod
from typing import Sequence, Tuple

import numpy as np


class InferenceBackend(ABC):
    """Interface to a loaded embedding model.

    A backend is constructed once and shared read-only across calls.
    """

    @property
    @abstractmethod
    def input_size(self) -> Tuple[int, int]:
        """Fixed model input resolution as (width, height)."""
        pass

    @abstractmethod
    def run(self, tensor: np.ndarray) -> Sequence[np.ndarray]:
        """
        Run the model once.

        Args:
            tensor: float32 array of shape (1, 3, height, width), values in [0, 1]

        Returns:
            Model output tensors; the first one holds the raw embedding
        """
        pass
