"""
Embedding generation for cropped face rasters.

The preprocessing matches what the embedding models were trained with and
must not change:

    1. Convert to 3-channel color
    2. Resize to the backend input resolution with bilinear interpolation
    3. Scale channel values to [0, 1]
    4. Rearrange to channel-major (1, 3, H, W)
    5. Run the backend once and read the first output tensor

The raw output is then checked for length and L2-normalized.

Example:
    ```python
    generator = EmbeddingGenerator(OnnxInferenceBackend())
    embedding = await generator.generate(face_crop)
    ```
"""
import asyncio
from typing import Optional, Sequence

import cv2
import numpy as np

from facecatalog.core.config import settings
from facecatalog.core.exceptions import (
    BackendFailureError,
    DegenerateEmbeddingError,
    ShapeMismatchError,
)
from facecatalog.core.logging import get_logger
from facecatalog.core.utils.image import scale_to_unit_range, to_three_channel
from facecatalog.domain.interfaces.inference.backend import InferenceBackend

logger = get_logger(__name__)

# dtypes cv2.resize accepts for bilinear interpolation
_RESIZABLE_DTYPES = (np.uint8, np.uint16, np.float32, np.float64)


class EmbeddingGenerator:
    """Turns a cropped face raster into a unit-length embedding.

    Attributes:
        embedding_dim: Expected length of the model output (D)
        norm_epsilon: Norms at or below this value count as zero
    """

    def __init__(
        self,
        backend: InferenceBackend,
        embedding_dim: Optional[int] = None,
        norm_epsilon: float = 1e-12,
    ) -> None:
        """Initialize the generator.

        Args:
            backend: Loaded inference backend, shared read-only across calls
            embedding_dim: Expected embedding length, defaults to settings.EMBEDDING_DIM
            norm_epsilon: Threshold below which a norm is treated as zero
        """
        self._backend = backend
        self.embedding_dim = embedding_dim or settings.EMBEDDING_DIM
        self.norm_epsilon = norm_epsilon

    def preprocess(self, face_image: np.ndarray) -> np.ndarray:
        """Build the model input tensor from a face raster.

        Args:
            face_image: HxW, HxWx1, HxWx3 or HxWx4 raster of any size

        Returns:
            float32 array of shape (1, 3, height, width) with values in [0, 1]
        """
        raster = to_three_channel(np.asarray(face_image))
        if raster.dtype not in _RESIZABLE_DTYPES:
            raster = scale_to_unit_range(raster)

        width, height = self._backend.input_size
        resized = cv2.resize(raster, (width, height), interpolation=cv2.INTER_LINEAR)
        scaled = scale_to_unit_range(resized)

        # HWC -> CHW, then add the batch axis
        chw = np.transpose(scaled, (2, 0, 1))
        return np.ascontiguousarray(chw[np.newaxis, ...], dtype=np.float32)

    def postprocess(self, outputs: Sequence[np.ndarray]) -> np.ndarray:
        """Validate and L2-normalize the first output tensor.

        Raises:
            BackendFailureError: If the backend returned no outputs
            ShapeMismatchError: If the output length is not embedding_dim
            DegenerateEmbeddingError: If the output norm is numerically zero
        """
        if outputs is None or len(outputs) == 0:
            raise BackendFailureError("Inference backend returned no outputs")

        raw = np.asarray(outputs[0], dtype=np.float32).reshape(-1)
        if raw.size != self.embedding_dim:
            raise ShapeMismatchError(
                f"Embedding has {raw.size} dimensions, expected {self.embedding_dim}",
                details={"expected": self.embedding_dim, "actual": int(raw.size)}
            )

        norm = float(np.linalg.norm(raw.astype(np.float64)))
        if not np.isfinite(norm) or norm <= self.norm_epsilon:
            raise DegenerateEmbeddingError(
                "Embedding norm is zero or not finite",
                details={"norm": norm}
            )

        return (raw.astype(np.float64) / norm).astype(np.float32)

    async def generate(self, face_image: np.ndarray) -> np.ndarray:
        """Generate a normalized embedding for a face raster.

        The inference call runs in a worker thread so the event loop is not
        blocked.

        Args:
            face_image: Cropped face raster

        Returns:
            float32 vector of length embedding_dim with unit L2 norm

        Raises:
            FaceValidationError: If the raster cannot be interpreted as color
            BackendFailureError: If the inference call fails
            ShapeMismatchError: If the output length is wrong
            DegenerateEmbeddingError: If the output norm is zero
        """
        tensor = self.preprocess(face_image)

        try:
            outputs = await asyncio.to_thread(self._backend.run, tensor)
        except Exception as e:
            logger.error(
                "Inference call failed",
                tensor_shape=tensor.shape,
                error=str(e),
                exc_info=True
            )
            raise BackendFailureError(f"Inference failed: {str(e)}") from e

        embedding = self.postprocess(outputs)
        logger.debug(
            "Generated embedding",
            input_shape=tuple(np.shape(face_image)),
            dimension=embedding.size
        )
        return embedding
