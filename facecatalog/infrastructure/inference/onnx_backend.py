"""ONNX Runtime implementation of the inference backend."""
from typing import List, Optional, Sequence, Tuple

import numpy as np
import onnxruntime as ort

from facecatalog.core.config import settings
from facecatalog.core.exceptions import BackendFailureError
from facecatalog.core.logging import get_logger
from facecatalog.domain.interfaces.inference.backend import InferenceBackend

logger = get_logger(__name__)


class OnnxInferenceBackend(InferenceBackend):
    """Runs an NCHW face embedding model with onnxruntime.

    The session is created once and shared; onnxruntime sessions support
    concurrent `run` calls.
    """

    def __init__(
        self,
        model_path: Optional[str] = None,
        providers: Optional[List[str]] = None,
    ) -> None:
        """Load the model.

        Args:
            model_path: Path to the .onnx file, defaults to settings.MODEL_PATH
            providers: Execution providers, defaults to settings.inference_providers

        Raises:
            BackendFailureError: If the model cannot be loaded
        """
        self.model_path = model_path or settings.MODEL_PATH
        try:
            self.session = ort.InferenceSession(
                self.model_path,
                providers=providers or settings.inference_providers
            )
        except Exception as e:
            logger.error(
                "Failed to load embedding model",
                model_path=self.model_path,
                error=str(e),
                exc_info=True
            )
            raise BackendFailureError(
                f"Failed to load embedding model: {str(e)}",
                details={"model_path": self.model_path}
            ) from e

        model_input = self.session.get_inputs()[0]
        self.input_name = model_input.name
        self._input_size = self._resolve_input_size(model_input.shape)

        logger.info(
            "Embedding model loaded",
            model_path=self.model_path,
            input_name=self.input_name,
            input_size=self._input_size
        )

    @staticmethod
    def _resolve_input_size(shape: Sequence) -> Tuple[int, int]:
        """Read (width, height) from an NCHW input shape.

        Dynamic axes come back as strings or None; those fall back to the
        configured square size.
        """
        default = settings.MODEL_INPUT_SIZE
        if len(shape) != 4:
            return default, default
        height, width = shape[2], shape[3]
        height = height if isinstance(height, int) and height > 0 else default
        width = width if isinstance(width, int) and width > 0 else default
        return width, height

    @property
    def input_size(self) -> Tuple[int, int]:
        return self._input_size

    def run(self, tensor: np.ndarray) -> Sequence[np.ndarray]:
        return self.session.run(None, {self.input_name: tensor})
