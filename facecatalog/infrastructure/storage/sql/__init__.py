from .record_store import SqlFaceRecordStore

__all__ = ["SqlFaceRecordStore"]
