"""Artifact store interface for face images."""
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import List


class ArtifactStore(ABC):
    """Interface for storing one image artifact per face id.

    Artifacts are named deterministically from the face id. No locking is
    performed; correctness relies on ids never being reused.
    """

    @abstractmethod
    def path_for(self, face_id: str) -> Path:
        """Location of the artifact for a face id."""
        pass

    @abstractmethod
    async def write(self, face_id: str, data: bytes) -> Path:
        """
        Write the artifact for a face id.

        Args:
            face_id: Face identifier
            data: Encoded image bytes

        Returns:
            Path of the written artifact

        Raises:
            FileExistsError: If an artifact for the id already exists
            OSError: If the write fails
        """
        pass

    @abstractmethod
    async def copy_from(self, face_id: str, source: Path) -> Path:
        """
        Copy an existing image file into the artifact for a face id.

        Raises:
            FileExistsError: If an artifact for the id already exists
            OSError: If the source cannot be read or the write fails
        """
        pass

    @abstractmethod
    async def read(self, face_id: str) -> bytes:
        """
        Read the artifact for a face id.

        Raises:
            FileNotFoundError: If no artifact exists
        """
        pass

    @abstractmethod
    async def remove(self, face_id: str) -> None:
        """
        Remove the artifact for a face id.

        Raises:
            FileNotFoundError: If no artifact exists
            OSError: If removal fails
        """
        pass

    @abstractmethod
    async def list_ids(self) -> List[str]:
        """List the face ids of every artifact present."""
        pass

    @abstractmethod
    async def modified_at(self, face_id: str) -> datetime:
        """
        Last modification time of an artifact in UTC.

        Raises:
            FileNotFoundError: If no artifact exists
        """
        pass
