"""Face record store interface."""
from abc import ABC, abstractmethod
from datetime import timedelta
from pathlib import Path
from typing import List, Optional

from ...entities.face import FaceRecord
from ...value_objects.records import FaceUpdate, SearchFilter


class FaceRecordStore(ABC):
    """Interface for durable face records, each paired 1:1 with an image artifact.

    Row and artifact are two independent resources. A store keeps their
    lifetimes paired on a best-effort basis: orphan artifacts may be left
    behind by a failed insert or a failed artifact removal, and are found by
    reconciliation rather than reported by these operations.
    """

    @abstractmethod
    async def store(self, record: FaceRecord, image: Optional[bytes] = None) -> None:
        """
        Persist a record and its image artifact.

        The artifact is written first; the row is inserted only after that
        succeeds.

        Args:
            record: Record to store
            image: Encoded image bytes; when omitted the file at
                record.metadata.source_image is copied

        Raises:
            FaceValidationError: If the embedding has the wrong dimension or is not unit length
            DuplicateIdError: If the face_id already exists
            BackendFailureError: If the artifact write or row insert fails
        """
        pass

    @abstractmethod
    async def get(self, face_id: str) -> Optional[FaceRecord]:
        """
        Get a record by id.

        Raises:
            FaceValidationError: If the id is malformed
            BackendFailureError: If the database fails
        """
        pass

    @abstractmethod
    async def search(self, search_filter: Optional[SearchFilter] = None) -> List[FaceRecord]:
        """
        Find records matching every present filter field, newest first.

        Raises:
            BackendFailureError: If the database fails
        """
        pass

    @abstractmethod
    async def update(self, face_id: str, update: FaceUpdate) -> FaceRecord:
        """
        Overwrite the supplied fields of a record.

        Existence is checked when the update is applied, so an update racing
        a delete fails instead of recreating the row.

        Returns:
            The record after the update

        Raises:
            FaceValidationError: If the id is malformed
            NotFoundError: If the record does not exist
            BackendFailureError: If the database fails
        """
        pass

    @abstractmethod
    async def delete(self, face_id: str) -> bool:
        """
        Delete a record, then try to remove its artifact.

        Artifact removal failures are logged and do not undo the row deletion.

        Returns:
            True if a row was deleted, False if none existed

        Raises:
            FaceValidationError: If the id is malformed
            BackendFailureError: If the database fails
        """
        pass

    @abstractmethod
    async def cleanup(self, retention: timedelta) -> int:
        """
        Delete every record with a timestamp older than now - retention.

        Returns:
            Number of deleted records

        Raises:
            BackendFailureError: If the database fails
        """
        pass

    @abstractmethod
    async def list_ids(self) -> List[str]:
        """List the id of every stored record."""
        pass

    @abstractmethod
    async def count(self) -> int:
        """Number of stored records."""
        pass

    @abstractmethod
    def artifact_path(self, face_id: str) -> Path:
        """Location of the artifact paired with a face id."""
        pass
