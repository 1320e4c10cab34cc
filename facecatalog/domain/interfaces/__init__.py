"""Service interfaces package."""
from .inference import InferenceBackend
from .storage import ArtifactStore, FaceRecordStore

__all__ = ["ArtifactStore", "FaceRecordStore", "InferenceBackend"]
