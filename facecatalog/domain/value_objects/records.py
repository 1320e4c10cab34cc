"""Face record query and update value objects."""
from datetime import datetime
from typing import Any, Dict, Optional, Set

from pydantic import BaseModel, Field, field_validator, model_validator

from facecatalog.domain.entities.face import FaceMetadata, FaceRecord, as_utc


class SearchFilter(BaseModel):
    """Filter for record search.

    Every field is optional; absent fields impose no constraint and present
    fields are combined with logical AND.
    """
    name_contains: Optional[str] = Field(None, description="Case-insensitive substring of the name")
    tags_any_of: Optional[Set[str]] = Field(None, description="Match records carrying any of these tags")
    start_time: Optional[datetime] = Field(None, description="Inclusive lower bound on timestamp")
    end_time: Optional[datetime] = Field(None, description="Inclusive upper bound on timestamp")
    min_confidence: Optional[float] = Field(None, ge=0.0, le=1.0, description="Inclusive minimum confidence")

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_bounds(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Compare times in UTC."""
        return as_utc(v) if v is not None else None

    def matches(self, record: FaceRecord) -> bool:
        """Check a single record against the filter in memory."""
        metadata = record.metadata
        if self.name_contains is not None:
            if metadata.name is None or self.name_contains.lower() not in metadata.name.lower():
                return False
        if self.tags_any_of is not None and not (metadata.tags & self.tags_any_of):
            return False
        if self.start_time is not None and metadata.timestamp < self.start_time:
            return False
        if self.end_time is not None and metadata.timestamp > self.end_time:
            return False
        if self.min_confidence is not None and metadata.confidence < self.min_confidence:
            return False
        return True


class FaceUpdate(BaseModel):
    """Partial update of a face record.

    Only fields explicitly passed to the constructor are applied. `name` may
    be explicitly set to None to clear it; `tags` and `confidence` cannot be
    cleared.
    """
    name: Optional[str] = Field(None, description="New display name")
    tags: Optional[Set[str]] = Field(None, description="Replacement tag set")
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0, description="New confidence (0-1)")

    @model_validator(mode="after")
    def validate_non_nullable(self) -> "FaceUpdate":
        """Reject explicit None for fields that cannot be cleared."""
        for field in ("tags", "confidence"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be set to None")
        return self

    def changes(self) -> Dict[str, Any]:
        """Supplied fields and their new values."""
        return {field: getattr(self, field) for field in self.model_fields_set}

    def is_empty(self) -> bool:
        """Whether the update carries no fields."""
        return not self.model_fields_set

    def apply(self, record: FaceRecord) -> FaceRecord:
        """Return a copy of the record with the supplied fields overwritten."""
        metadata: FaceMetadata = record.metadata.model_copy(update=self.changes())
        return record.model_copy(update={"metadata": metadata})
