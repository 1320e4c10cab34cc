"""Value objects package."""
from .events import ErrorEvent, FaceDeleted, FaceDetected, FaceUpdated, NotificationEvent, parse_event
from .matching import ClusterResult, FaceMatch, MatchResult
from .reconciliation import OrphanArtifact, ReconciliationReport
from .records import FaceUpdate, SearchFilter

__all__ = [
    "ClusterResult",
    "ErrorEvent",
    "FaceDeleted",
    "FaceDetected",
    "FaceMatch",
    "FaceUpdate",
    "FaceUpdated",
    "MatchResult",
    "NotificationEvent",
    "OrphanArtifact",
    "ReconciliationReport",
    "SearchFilter",
    "parse_event",
]
