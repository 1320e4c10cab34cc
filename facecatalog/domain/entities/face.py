"""Core face domain entities."""
import math
import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Set, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def normalize_face_id(value: Union[str, uuid.UUID]) -> str:
    """Return the canonical string form of a face id.

    Raises:
        ValueError: If the value is not a UUID
    """
    if isinstance(value, uuid.UUID):
        return str(value)
    return str(uuid.UUID(str(value)))


def as_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class FaceMetadata(BaseModel):
    """Descriptive data stored alongside an embedding."""
    name: Optional[str] = Field(None, description="Optional display name of the person")
    tags: Set[str] = Field(default_factory=set, description="Unordered set of labels")
    timestamp: datetime = Field(default_factory=utc_now, description="Creation time (UTC)")
    source_image: str = Field(..., description="Path or identifier of the paired image")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Detection confidence (0-1)")

    model_config = ConfigDict(frozen=True)

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        """Store every timestamp in UTC."""
        return as_utc(v)


class FaceRecord(BaseModel):
    """A stored facial identity signature and its metadata.

    The embedding is kept as a list of Python floats so records compare by
    value and serialize to JSON without conversion; use `vector` for numeric
    work.
    """
    face_id: str = Field(..., description="Unique identifier, never reused")
    embedding: List[float] = Field(..., description="Unit L2-norm face embedding")
    metadata: FaceMetadata = Field(..., description="Record metadata")

    model_config = ConfigDict(frozen=True)

    @field_validator("face_id", mode="before")
    @classmethod
    def validate_face_id(cls, v: Union[str, uuid.UUID]) -> str:
        """Require a UUID and store it in canonical form."""
        return normalize_face_id(v)

    @field_validator("embedding", mode="before")
    @classmethod
    def validate_embedding(cls, v: Union[np.ndarray, Iterable[float]]) -> List[float]:
        """Convert numpy arrays to plain floats and reject empty or non-finite vectors."""
        values = [float(x) for x in np.asarray(v, dtype=np.float64).reshape(-1)]
        if not values:
            raise ValueError("Embedding must not be empty")
        if not all(math.isfinite(x) for x in values):
            raise ValueError("Embedding must contain only finite values")
        return values

    @property
    def vector(self) -> np.ndarray:
        """Embedding as a float64 numpy array."""
        return np.asarray(self.embedding, dtype=np.float64)

    @classmethod
    def create(
        cls,
        embedding: Union[np.ndarray, List[float]],
        source_image: str,
        confidence: float,
        name: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        face_id: Optional[str] = None,
    ) -> "FaceRecord":
        """Create a new record with a fresh id and the current UTC time.

        Args:
            embedding: Normalized embedding produced by the generator
            source_image: Path or identifier of the image the face came from
            confidence: Detection confidence reported upstream (0-1)
            name: Optional display name
            tags: Optional labels
            face_id: Pre-allocated id, a new UUID4 when omitted

        Returns:
            FaceRecord: New record, not yet stored
        """
        return cls(
            face_id=face_id or str(uuid.uuid4()),
            embedding=embedding,
            metadata=FaceMetadata(
                name=name,
                tags=set(tags or ()),
                timestamp=utc_now(),
                source_image=source_image,
                confidence=confidence,
            ),
        )
