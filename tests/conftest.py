"""Shared fixtures for the face catalog tests."""
import uuid
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pytest

from facecatalog.domain.entities.face import FaceMetadata, FaceRecord, utc_now
from facecatalog.domain.interfaces.inference.backend import InferenceBackend
from facecatalog.infrastructure.database.session import build_engine, build_session_factory, init_schema
from facecatalog.infrastructure.storage.filesystem.artifact_store import LocalArtifactStore
from facecatalog.infrastructure.storage.sql.record_store import SqlFaceRecordStore
from facecatalog.services.notifications import NotificationHub

EMBEDDING_DIM = 8
IMAGE_BYTES = b"\xff\xd8\xff\xe0 not really a jpeg"


class StubBackend(InferenceBackend):
    """Deterministic backend returning the channel means of the input tensor."""

    def __init__(self, dim: int = EMBEDDING_DIM, size: Tuple[int, int] = (16, 16)):
        self.dim = dim
        self.size = size
        self.calls: List[np.ndarray] = []

    @property
    def input_size(self) -> Tuple[int, int]:
        return self.size

    def run(self, tensor: np.ndarray) -> Sequence[np.ndarray]:
        self.calls.append(tensor)
        means = tensor.reshape(3, -1).mean(axis=1)
        raw = np.resize(np.concatenate([means, [1.0]]), self.dim)
        return [raw.astype(np.float32)[np.newaxis, :]]


class FixedBackend(InferenceBackend):
    """Backend returning the same raw output for every input."""

    def __init__(self, output: Iterable[float], size: Tuple[int, int] = (16, 16)):
        self.output = np.asarray(list(output), dtype=np.float32)
        self.size = size

    @property
    def input_size(self) -> Tuple[int, int]:
        return self.size

    def run(self, tensor: np.ndarray) -> Sequence[np.ndarray]:
        return [self.output]


class FailingBackend(InferenceBackend):
    """Backend whose inference call always raises."""

    @property
    def input_size(self) -> Tuple[int, int]:
        return (16, 16)

    def run(self, tensor: np.ndarray) -> Sequence[np.ndarray]:
        raise RuntimeError("model crashed")


def unit_vector(*values: float, dim: int = EMBEDDING_DIM) -> List[float]:
    """Pad the values with zeros to dim and L2-normalize."""
    vector = np.zeros(dim)
    vector[:len(values)] = values
    return list(vector / np.linalg.norm(vector))


def make_record(
    embedding: Optional[List[float]] = None,
    name: Optional[str] = None,
    tags: Iterable[str] = (),
    confidence: float = 0.9,
    timestamp: Optional[datetime] = None,
    face_id: Optional[str] = None,
) -> FaceRecord:
    """Build an unstored record with sensible defaults."""
    return FaceRecord(
        face_id=face_id or str(uuid.uuid4()),
        embedding=embedding or unit_vector(1.0),
        metadata=FaceMetadata(
            name=name,
            tags=set(tags),
            timestamp=timestamp or utc_now(),
            source_image="camera-1/frame-0001.jpg",
            confidence=confidence,
        ),
    )


@pytest.fixture
async def engine(tmp_path):
    """Provide an engine on a fresh SQLite database."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    await init_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def artifacts(tmp_path):
    """Provide an artifact store under a temporary directory."""
    return LocalArtifactStore(tmp_path / "artifacts", extension=".jpg")


@pytest.fixture
def store(session_factory, artifacts):
    """Provide a record store over the temporary database and artifact root."""
    return SqlFaceRecordStore(session_factory, artifacts, embedding_dim=EMBEDDING_DIM)


@pytest.fixture
def hub():
    return NotificationHub(buffer_size=10)


@pytest.fixture
def face_image():
    """A small BGR face crop."""
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(24, 20, 3), dtype=np.uint8)


@pytest.fixture
def old_timestamp():
    return utc_now() - timedelta(days=40)


@pytest.fixture
def record_factory():
    """Provide the record builder."""
    return make_record


@pytest.fixture
def vector():
    """Provide the unit vector builder."""
    return unit_vector


@pytest.fixture
def stub_backend():
    return StubBackend()


@pytest.fixture
def fixed_backend():
    """Provide a factory for backends with a fixed raw output."""
    return FixedBackend


@pytest.fixture
def failing_backend():
    return FailingBackend()


@pytest.fixture
def image_bytes():
    return IMAGE_BYTES
