"""Tests for embedding generation."""
import cv2
import numpy as np
import pytest

from facecatalog.core.exceptions import (
    BackendFailureError,
    DegenerateEmbeddingError,
    FaceValidationError,
    ShapeMismatchError,
)
from facecatalog.services.embedding import EmbeddingGenerator

DIM = 8


class TestPreprocess:
    """Test suite for model input preparation."""

    def test_tensor_layout(self, stub_backend, face_image):
        """Should produce a (1, 3, H, W) float32 tensor at the backend resolution."""
        stub_backend.size = (16, 12)
        generator = EmbeddingGenerator(stub_backend, embedding_dim=DIM)

        tensor = generator.preprocess(face_image)

        assert tensor.shape == (1, 3, 12, 16)
        assert tensor.dtype == np.float32

    def test_scales_to_unit_range(self, stub_backend):
        """Should map uint8 values by dividing by 255."""
        generator = EmbeddingGenerator(stub_backend, embedding_dim=DIM)
        image = np.full((16, 16, 3), 255, dtype=np.uint8)
        image[:, :, 1] = 0

        tensor = generator.preprocess(image)

        assert np.allclose(tensor[0, 0], 1.0)
        assert np.allclose(tensor[0, 1], 0.0)
        assert tensor.min() >= 0.0 and tensor.max() <= 1.0

    def test_channel_major(self, stub_backend):
        """Should put each color channel in its own plane."""
        generator = EmbeddingGenerator(stub_backend, embedding_dim=DIM)
        image = np.zeros((16, 16, 3), dtype=np.uint8)
        image[:, :, 2] = 51

        tensor = generator.preprocess(image)

        assert np.allclose(tensor[0, 2], 0.2)
        assert np.allclose(tensor[0, :2], 0.0)

    @pytest.mark.parametrize("shape", [(20, 20), (20, 20, 1), (20, 20, 4)])
    def test_converts_to_three_channels(self, stub_backend, shape):
        """Should accept grayscale and BGRA rasters."""
        generator = EmbeddingGenerator(stub_backend, embedding_dim=DIM)
        image = np.full(shape, 128, dtype=np.uint8)

        tensor = generator.preprocess(image)

        assert tensor.shape == (1, 3, 16, 16)
        assert np.allclose(tensor, 128 / 255)

    def test_bilinear_resize(self, stub_backend, face_image):
        """Should resize with bilinear interpolation before scaling."""
        stub_backend.size = (16, 12)
        generator = EmbeddingGenerator(stub_backend, embedding_dim=DIM)

        tensor = generator.preprocess(face_image)

        resized = cv2.resize(face_image, (16, 12), interpolation=cv2.INTER_LINEAR)
        expected = np.transpose(resized.astype(np.float32) / 255, (2, 0, 1))[np.newaxis]
        nearest = cv2.resize(face_image, (16, 12), interpolation=cv2.INTER_NEAREST)
        assert np.allclose(tensor, expected)
        assert not np.allclose(tensor[0], np.transpose(nearest.astype(np.float32) / 255, (2, 0, 1)))

    @pytest.mark.parametrize("dtype", [np.int16, np.int32, np.int64])
    def test_wide_integers_hold_8_bit_values(self, stub_backend, dtype):
        """Should scale signed and wide integer rasters as 8-bit values."""
        generator = EmbeddingGenerator(stub_backend, embedding_dim=DIM)
        image = np.full((20, 20, 3), 128, dtype=dtype)
        image[:, :, 2] = 300

        tensor = generator.preprocess(image)

        assert np.allclose(tensor[0, :2], 128 / 255)
        assert np.allclose(tensor[0, 2], 1.0)

    def test_uint16_uses_full_range(self, stub_backend):
        generator = EmbeddingGenerator(stub_backend, embedding_dim=DIM)
        image = np.full((16, 16, 3), 65535, dtype=np.uint16)

        assert np.allclose(generator.preprocess(image), 1.0)

    def test_rejects_unsupported_raster(self, stub_backend):
        generator = EmbeddingGenerator(stub_backend, embedding_dim=DIM)
        with pytest.raises(FaceValidationError):
            generator.preprocess(np.zeros((10, 10, 2), dtype=np.uint8))

    def test_rejects_empty_raster(self, stub_backend):
        generator = EmbeddingGenerator(stub_backend, embedding_dim=DIM)
        with pytest.raises(FaceValidationError):
            generator.preprocess(np.zeros((0, 0, 3), dtype=np.uint8))


class TestGenerate:
    """Test suite for the full generation path."""

    async def test_unit_norm_and_length(self, stub_backend, face_image):
        """Should return a unit-length vector of the configured dimension."""
        generator = EmbeddingGenerator(stub_backend, embedding_dim=DIM)

        embedding = await generator.generate(face_image)

        assert embedding.shape == (DIM,)
        assert embedding.dtype == np.float32
        assert np.linalg.norm(embedding) == pytest.approx(1.0, abs=1e-5)
        assert len(stub_backend.calls) == 1

    async def test_deterministic(self, stub_backend, face_image):
        """Should return the same embedding for the same raster."""
        generator = EmbeddingGenerator(stub_backend, embedding_dim=DIM)

        first = await generator.generate(face_image)
        second = await generator.generate(face_image.copy())

        assert np.array_equal(first, second)

    async def test_normalizes_raw_output(self, fixed_backend, face_image):
        generator = EmbeddingGenerator(fixed_backend([3.0, 4.0] + [0.0] * (DIM - 2)), embedding_dim=DIM)

        embedding = await generator.generate(face_image)

        assert embedding[:2] == pytest.approx([0.6, 0.8])

    async def test_wrong_length(self, fixed_backend, face_image):
        """Should reject outputs whose length differs from the configured dimension."""
        generator = EmbeddingGenerator(fixed_backend([1.0] * (DIM + 1)), embedding_dim=DIM)

        with pytest.raises(ShapeMismatchError) as exc_info:
            await generator.generate(face_image)
        assert exc_info.value.details == {"expected": DIM, "actual": DIM + 1}

    async def test_zero_output(self, fixed_backend, face_image):
        """Should refuse to normalize an all-zero output."""
        generator = EmbeddingGenerator(fixed_backend([0.0] * DIM), embedding_dim=DIM)

        with pytest.raises(DegenerateEmbeddingError):
            await generator.generate(face_image)

    async def test_non_finite_output(self, fixed_backend, face_image):
        generator = EmbeddingGenerator(fixed_backend([np.nan] + [1.0] * (DIM - 1)), embedding_dim=DIM)

        with pytest.raises(DegenerateEmbeddingError):
            await generator.generate(face_image)

    async def test_backend_failure(self, failing_backend, face_image):
        """Should wrap inference errors."""
        generator = EmbeddingGenerator(failing_backend, embedding_dim=DIM)

        with pytest.raises(BackendFailureError) as exc_info:
            await generator.generate(face_image)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_no_outputs(self, stub_backend):
        generator = EmbeddingGenerator(stub_backend, embedding_dim=DIM)
        with pytest.raises(BackendFailureError):
            generator.postprocess([])
