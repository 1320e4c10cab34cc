"""SQLAlchemy implementation of the face record store.

Each record is a database row paired with an image artifact named after its
id. The two are written and removed in a fixed order without a distributed
transaction:

- store: artifact first, then the row. A failed artifact write fails the
  whole operation with no row created; a failed insert leaves an orphan
  artifact behind.
- delete/cleanup: row first, then the artifact. A failed artifact removal is
  logged and leaves an orphan artifact behind.

Orphans are found by comparing `list_ids()` against the artifact listing
(see `facecatalog.services.reconciliation`).
"""
import uuid
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path
from typing import Any, AsyncGenerator, List, Optional

import numpy as np
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from facecatalog.core.config import settings
from facecatalog.core.exceptions import (
    BackendFailureError,
    DuplicateIdError,
    FaceValidationError,
    NotFoundError,
)
from facecatalog.core.logging import get_logger
from facecatalog.domain.entities.face import FaceRecord, utc_now
from facecatalog.domain.interfaces.storage.artifact_store import ArtifactStore
from facecatalog.domain.interfaces.storage.record_store import FaceRecordStore
from facecatalog.domain.value_objects.records import FaceUpdate, SearchFilter
from facecatalog.infrastructure.database.repositories import row_to_record
from facecatalog.infrastructure.database.session import get_db_session
from facecatalog.infrastructure.database.unit_of_work import UnitOfWork

logger = get_logger(__name__)


class SqlFaceRecordStore(FaceRecordStore):
    """Face record store over an async SQLAlchemy database and an artifact store.

    Row-level atomicity is delegated to the database; no in-process lock is
    held across I/O. Safe for concurrent callers acting on distinct ids.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        artifacts: ArtifactStore,
        embedding_dim: Optional[int] = None,
        norm_tolerance: float = 1e-3,
    ) -> None:
        """Initialize the store.

        Args:
            session_factory: Factory for database sessions
            artifacts: Store holding the paired image artifacts
            embedding_dim: Required embedding length, defaults to settings.EMBEDDING_DIM
            norm_tolerance: Allowed distance of the embedding L2 norm from 1
        """
        self._session_factory = session_factory
        self._artifacts = artifacts
        self.embedding_dim = embedding_dim or settings.EMBEDDING_DIM
        self.norm_tolerance = norm_tolerance

    @asynccontextmanager
    async def _transaction(self, operation: str, **context: Any) -> AsyncGenerator[UnitOfWork, None]:
        """Run a block in one transaction, mapping database errors to BackendFailureError."""
        try:
            async with get_db_session(self._session_factory) as session:
                async with UnitOfWork(session) as uow:
                    yield uow
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                "Database operation failed",
                operation=operation,
                error=str(e),
                **context
            )
            raise BackendFailureError(f"Failed to {operation}: {str(e)}", details=context) from e

    @staticmethod
    def _parse_id(face_id: str) -> uuid.UUID:
        try:
            return uuid.UUID(str(face_id))
        except ValueError as e:
            raise FaceValidationError(
                f"Malformed face id: {face_id!r}",
                details={"face_id": face_id}
            ) from e

    def _validate_embedding(self, record: FaceRecord) -> None:
        if len(record.embedding) != self.embedding_dim:
            raise FaceValidationError(
                f"Embedding has {len(record.embedding)} dimensions, expected {self.embedding_dim}",
                details={"face_id": record.face_id, "dimension": len(record.embedding)}
            )

        norm = float(np.linalg.norm(np.asarray(record.embedding, dtype=np.float64)))
        if not np.isfinite(norm) or abs(norm - 1.0) > self.norm_tolerance:
            raise FaceValidationError(
                f"Embedding must have unit L2 norm, got {norm:.6f}",
                details={"face_id": record.face_id, "norm": norm}
            )

    def artifact_path(self, face_id: str) -> Path:
        return self._artifacts.path_for(str(self._parse_id(face_id)))

    async def store(self, record: FaceRecord, image: Optional[bytes] = None) -> None:
        self._validate_embedding(record)
        face_uuid = self._parse_id(record.face_id)

        async with self._transaction("check face record", face_id=record.face_id) as uow:
            if await uow.faces.exists(face_uuid):
                raise DuplicateIdError(
                    f"Face record already exists: {record.face_id}",
                    details={"face_id": record.face_id}
                )

        try:
            if image is not None:
                path = await self._artifacts.write(record.face_id, image)
            else:
                path = await self._artifacts.copy_from(
                    record.face_id, Path(record.metadata.source_image)
                )
        except FileExistsError as e:
            raise DuplicateIdError(
                f"Artifact already exists for face: {record.face_id}",
                details={"face_id": record.face_id, "path": str(e.filename)}
            ) from e
        except OSError as e:
            logger.error(
                "Failed to write face artifact",
                face_id=record.face_id,
                error=str(e)
            )
            raise BackendFailureError(
                f"Failed to write artifact: {str(e)}",
                details={"face_id": record.face_id}
            ) from e

        try:
            async with self._transaction("insert face record", face_id=record.face_id) as uow:
                await uow.faces.add(record)
        except BackendFailureError as e:
            logger.warning(
                "Row insert failed after artifact write, orphan artifact left",
                face_id=record.face_id,
                path=str(path)
            )
            if isinstance(e.__cause__, IntegrityError):
                raise DuplicateIdError(
                    f"Face record already exists: {record.face_id}",
                    details={"face_id": record.face_id}
                ) from e.__cause__
            raise

        logger.info(
            "Stored face record",
            face_id=record.face_id,
            path=str(path)
        )

    async def get(self, face_id: str) -> Optional[FaceRecord]:
        face_uuid = self._parse_id(face_id)
        async with self._transaction("get face record", face_id=face_id) as uow:
            row = await uow.faces.get(face_uuid)
            return row_to_record(row) if row is not None else None

    async def search(self, search_filter: Optional[SearchFilter] = None) -> List[FaceRecord]:
        search_filter = search_filter or SearchFilter()
        async with self._transaction("search face records") as uow:
            rows = await uow.faces.search(search_filter)
            records = [row_to_record(row) for row in rows]

        logger.debug(
            "Face search completed",
            filter=search_filter.model_dump(exclude_none=True),
            results=len(records)
        )
        return records

    async def update(self, face_id: str, update: FaceUpdate) -> FaceRecord:
        face_uuid = self._parse_id(face_id)
        async with self._transaction("update face record", face_id=face_id) as uow:
            if not await uow.faces.update(face_uuid, update.changes()):
                raise NotFoundError(
                    f"Face record not found: {face_id}",
                    details={"face_id": face_id}
                )
            row = await uow.faces.get(face_uuid)
            record = row_to_record(row)

        logger.info(
            "Updated face record",
            face_id=record.face_id,
            fields=sorted(update.changes())
        )
        return record

    async def delete(self, face_id: str) -> bool:
        face_uuid = self._parse_id(face_id)
        async with self._transaction("delete face record", face_id=face_id) as uow:
            deleted = await uow.faces.delete(face_uuid)

        if not deleted:
            logger.debug("Face record to delete not found", face_id=face_id)
            return False

        await self._remove_artifact(str(face_uuid))
        logger.info("Deleted face record", face_id=str(face_uuid))
        return True

    async def cleanup(self, retention: timedelta) -> int:
        if retention < timedelta(0):
            raise FaceValidationError(
                "Retention period must not be negative",
                details={"retention_seconds": retention.total_seconds()}
            )

        cutoff = utc_now() - retention
        async with self._transaction("clean up face records", cutoff=cutoff.isoformat()) as uow:
            deleted_ids = await uow.faces.delete_older_than(cutoff)

        for face_uuid in deleted_ids:
            await self._remove_artifact(str(face_uuid))

        logger.info(
            "Retention cleanup finished",
            cutoff=cutoff.isoformat(),
            deleted=len(deleted_ids)
        )
        return len(deleted_ids)

    async def list_ids(self) -> List[str]:
        async with self._transaction("list face ids") as uow:
            ids = await uow.faces.list_ids()
        return [str(face_uuid) for face_uuid in ids]

    async def count(self) -> int:
        async with self._transaction("count face records") as uow:
            return await uow.faces.count()

    async def _remove_artifact(self, face_id: str) -> None:
        """Remove an artifact after its row is gone; failures only leave an orphan."""
        path = self._artifacts.path_for(face_id)
        try:
            await self._artifacts.remove(face_id)
        except FileNotFoundError:
            logger.warning(
                "Artifact already missing for deleted face",
                face_id=face_id,
                path=str(path)
            )
        except OSError as e:
            logger.warning(
                "Failed to remove artifact, orphan left",
                face_id=face_id,
                path=str(path),
                error=str(e)
            )
