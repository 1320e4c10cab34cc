"""Custom exceptions for the face catalog."""
from typing import Optional


class FaceCatalogError(Exception):
    """Base exception for face catalog operations."""

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize face catalog error.

        Args:
            message: Error description
            details: Additional error context
        """
        super().__init__(message)
        self.details = details or {}


class FaceValidationError(FaceCatalogError):
    """Raised for malformed ids, out-of-range confidence or wrongly sized embeddings."""
    pass


class NotFoundError(FaceCatalogError):
    """Raised when a face record does not exist."""
    pass


class DuplicateIdError(FaceCatalogError):
    """Raised when storing a record whose face_id already exists."""
    pass


class BackendFailureError(FaceCatalogError):
    """Raised when the inference backend, database or filesystem fails."""
    pass


class ShapeMismatchError(FaceCatalogError):
    """Raised when an embedding does not have the expected dimension."""
    pass


class DegenerateEmbeddingError(FaceCatalogError):
    """Raised when the inference output has a numerically zero norm."""
    pass


class InconsistentStateError(FaceCatalogError):
    """Raised by reconciliation when rows and artifacts disagree.

    Core store operations never raise this; it only comes from an explicit
    reconciliation pass.
    """
    pass
