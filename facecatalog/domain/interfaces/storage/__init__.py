"""Storage interfaces."""
from .artifact_store import ArtifactStore
from .record_store import FaceRecordStore

__all__ = ["ArtifactStore", "FaceRecordStore"]
