"""Domain entities package."""
from .face import FaceMetadata, FaceRecord

__all__ = ["FaceMetadata", "FaceRecord"]
