"""
Image processing utility functions.
"""
import cv2
import numpy as np

from facecatalog.core.exceptions import BackendFailureError, FaceValidationError


def to_three_channel(image: np.ndarray) -> np.ndarray:
    """Convert a raster to 3-channel BGR.

    Args:
        image: Grayscale (HxW or HxWx1), BGR (HxWx3) or BGRA (HxWx4) raster

    Returns:
        numpy.ndarray: HxWx3 raster with the input dtype

    Raises:
        FaceValidationError: If the raster cannot be interpreted as color
    """
    if image is None or image.size == 0:
        raise FaceValidationError("Face image is empty")

    # Channel shuffling is done in numpy so every dtype is accepted
    if image.ndim == 2:
        return np.repeat(image[:, :, np.newaxis], 3, axis=2)

    if image.ndim == 3:
        channels = image.shape[2]
        if channels == 1:
            return np.repeat(image, 3, axis=2)
        if channels == 3:
            return image
        if channels == 4:
            return np.ascontiguousarray(image[:, :, :3])

    raise FaceValidationError(
        "Unsupported face image shape",
        details={"shape": tuple(image.shape)}
    )


def scale_to_unit_range(image: np.ndarray) -> np.ndarray:
    """Scale channel values to float32 in [0, 1].

    uint8 and uint16 rasters are divided by their dtype maximum. Other integer
    dtypes (int16, int32, int64, ...) are treated as holding 8-bit values:
    they are clipped to [0, 255] and divided by 255. Float rasters are assumed
    to already be in [0, 1] and are clipped.
    """
    if image.dtype in (np.uint8, np.uint16):
        return image.astype(np.float32) / np.float32(np.iinfo(image.dtype).max)
    if np.issubdtype(image.dtype, np.integer):
        return np.clip(image, 0, 255).astype(np.float32) / np.float32(255)
    return np.clip(image.astype(np.float32), 0.0, 1.0)


def encode_image(image: np.ndarray, extension: str = ".jpg") -> bytes:
    """Encode a raster into image file bytes.

    Args:
        image: Raster to encode
        extension: Target format extension understood by OpenCV

    Returns:
        bytes: Encoded image

    Raises:
        BackendFailureError: If OpenCV cannot encode the raster
    """
    raster = to_three_channel(image)
    if not np.issubdtype(raster.dtype, np.uint8):
        raster = (scale_to_unit_range(raster) * 255.0).round().astype(np.uint8)

    ok, buffer = cv2.imencode(extension, raster)
    if not ok:
        raise BackendFailureError(f"Failed to encode image as {extension}")
    return buffer.tobytes()
