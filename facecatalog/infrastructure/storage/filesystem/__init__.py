from .artifact_store import LocalArtifactStore

__all__ = ["LocalArtifactStore"]
