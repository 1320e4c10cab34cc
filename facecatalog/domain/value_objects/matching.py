"""Similarity search value objects."""
from typing import List, NamedTuple

from pydantic import BaseModel, Field


class FaceMatch(NamedTuple):
    """A corpus entry scoring above the match threshold."""
    face_id: str
    score: float


class MatchResult(BaseModel):
    """Result of matching a query face against stored records."""
    threshold: float = Field(..., description="Cosine similarity threshold that was applied")
    candidates: int = Field(..., description="Number of records compared against")
    matches: List[FaceMatch] = Field(..., description="Matches ordered by descending score")


class ClusterResult(BaseModel):
    """Result of clustering stored records."""
    threshold: float = Field(..., description="Cosine similarity threshold to the cluster seed")
    clusters: List[List[str]] = Field(..., description="Partition of face ids, seed first")
