"""Face catalog service composing generation, storage and notifications."""
import uuid
from typing import Iterable, Optional

import numpy as np

from facecatalog.core.config import settings
from facecatalog.core.exceptions import FaceCatalogError, FaceValidationError, NotFoundError
from facecatalog.core.logging import get_logger
from facecatalog.core.utils.image import encode_image
from facecatalog.domain.entities.face import FaceRecord, normalize_face_id
from facecatalog.domain.interfaces.storage.record_store import FaceRecordStore
from facecatalog.domain.value_objects.events import ErrorEvent, FaceDeleted, FaceDetected, FaceUpdated
from facecatalog.domain.value_objects.matching import ClusterResult, MatchResult
from facecatalog.domain.value_objects.records import FaceUpdate, SearchFilter
from facecatalog.services.comparison import EmbeddingComparator
from facecatalog.services.embedding import EmbeddingGenerator
from facecatalog.services.notifications import NotificationHub

logger = get_logger(__name__)


class FaceCatalogService:
    """Entry point for callers that ingest, edit and query faces.

    Every change goes Generator -> Store -> Hub: the event is broadcast only
    after the store succeeded. Failures are broadcast as error events and
    re-raised.

    Example:
        ```python
        service = FaceCatalogService(generator, store, hub)

        record = await service.ingest(face_crop, confidence=0.97, name="Ada")
        result = await service.match(other_crop)
        ```
    """

    def __init__(
        self,
        generator: EmbeddingGenerator,
        store: FaceRecordStore,
        hub: NotificationHub,
        artifact_extension: Optional[str] = None,
    ) -> None:
        """Initialize the service.

        Args:
            generator: Embedding generator
            store: Face record store
            hub: Notification hub receiving change events
            artifact_extension: Image format used for artifacts, defaults to settings.ARTIFACT_EXTENSION
        """
        self._generator = generator
        self._store = store
        self._hub = hub
        self._comparator = EmbeddingComparator
        self._artifact_extension = artifact_extension or settings.ARTIFACT_EXTENSION

    def _notify_error(self, message: str) -> None:
        self._hub.broadcast(ErrorEvent(message=message))

    async def ingest(
        self,
        face_image: np.ndarray,
        confidence: float,
        name: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        source_image: Optional[str] = None,
    ) -> FaceRecord:
        """Generate, store and announce a new face.

        Args:
            face_image: Cropped face raster from the detector
            confidence: Detection confidence from the detector (0-1)
            name: Optional display name
            tags: Optional labels
            source_image: Identifier of the original image, defaults to the artifact path

        Returns:
            FaceRecord: The stored record

        Raises:
            FaceValidationError: If the confidence or raster is invalid
            BackendFailureError: If inference, encoding or storage fails
            ShapeMismatchError: If the model output has the wrong length
            DegenerateEmbeddingError: If the model output has zero norm
        """
        try:
            if not 0.0 <= confidence <= 1.0:
                raise FaceValidationError(
                    f"Confidence must be within [0, 1], got {confidence}",
                    details={"confidence": confidence}
                )

            embedding = await self._generator.generate(face_image)
            image_bytes = encode_image(face_image, self._artifact_extension)

            face_id = str(uuid.uuid4())
            record = FaceRecord.create(
                embedding=embedding,
                source_image=source_image or str(self._store.artifact_path(face_id)),
                confidence=confidence,
                name=name,
                tags=tags,
                face_id=face_id,
            )
            await self._store.store(record, image_bytes)
        except FaceCatalogError as e:
            logger.error("Face ingest failed", error=str(e))
            self._notify_error(f"Ingest failed: {str(e)}")
            raise

        self._hub.broadcast(FaceDetected(record=record))
        logger.info(
            "Ingested face",
            face_id=record.face_id,
            confidence=confidence
        )
        return record

    async def get_face(self, face_id: str) -> FaceRecord:
        """Get a stored face.

        Raises:
            NotFoundError: If no record has the id
        """
        record = await self._store.get(face_id)
        if record is None:
            raise NotFoundError(f"Face record not found: {face_id}", details={"face_id": face_id})
        return record

    async def update_face(self, face_id: str, update: FaceUpdate) -> FaceRecord:
        """Apply a partial update and announce the result.

        Raises:
            NotFoundError: If the record does not exist when the update is applied
        """
        try:
            record = await self._store.update(face_id, update)
        except FaceCatalogError as e:
            logger.warning("Face update failed", face_id=face_id, error=str(e))
            self._notify_error(f"Update of {face_id} failed: {str(e)}")
            raise

        self._hub.broadcast(FaceUpdated(record=record))
        return record

    async def delete_face(self, face_id: str) -> bool:
        """Delete a face and announce it if a record was removed.

        Returns:
            True if a record was deleted
        """
        try:
            deleted = await self._store.delete(face_id)
        except FaceCatalogError as e:
            logger.warning("Face delete failed", face_id=face_id, error=str(e))
            self._notify_error(f"Delete of {face_id} failed: {str(e)}")
            raise

        if deleted:
            self._hub.broadcast(FaceDeleted(face_id=normalize_face_id(face_id)))
        return deleted

    async def match(
        self,
        face_image: np.ndarray,
        threshold: Optional[float] = None,
        search_filter: Optional[SearchFilter] = None,
        max_matches: Optional[int] = None,
    ) -> MatchResult:
        """Find stored faces similar to a query raster.

        Args:
            face_image: Cropped query face
            threshold: Cosine similarity threshold, defaults to settings.SIMILARITY_THRESHOLD
            search_filter: Restricts the candidates
            max_matches: Result limit, defaults to settings.MAX_MATCHES

        Returns:
            MatchResult: Matches ordered by descending similarity
        """
        query = await self._generator.generate(face_image)
        return await self._match_embedding(query, threshold, search_filter, max_matches)

    async def find_similar(
        self,
        face_id: str,
        threshold: Optional[float] = None,
        search_filter: Optional[SearchFilter] = None,
        max_matches: Optional[int] = None,
    ) -> MatchResult:
        """Find stored faces similar to an already stored one, excluding itself."""
        record = await self.get_face(face_id)
        return await self._match_embedding(
            record.vector, threshold, search_filter, max_matches, exclude_id=record.face_id
        )

    async def _match_embedding(
        self,
        query: np.ndarray,
        threshold: Optional[float],
        search_filter: Optional[SearchFilter],
        max_matches: Optional[int],
        exclude_id: Optional[str] = None,
    ) -> MatchResult:
        threshold = settings.SIMILARITY_THRESHOLD if threshold is None else threshold
        limit = max_matches or settings.MAX_MATCHES

        candidates = [
            record for record in await self._store.search(search_filter)
            if record.face_id != exclude_id
        ]
        matches = self._comparator.find_matches(query, candidates, threshold)[:limit]

        logger.info(
            "Matched face against catalog",
            candidates=len(candidates),
            matches=len(matches),
            threshold=threshold
        )
        return MatchResult(threshold=threshold, candidates=len(candidates), matches=matches)

    async def cluster(
        self,
        search_filter: Optional[SearchFilter] = None,
        threshold: Optional[float] = None,
    ) -> ClusterResult:
        """Group stored faces by similarity to a seed.

        Records are visited in search order (newest first), so the newest
        record of each group is its seed.
        """
        threshold = settings.CLUSTER_THRESHOLD if threshold is None else threshold
        records = await self._store.search(search_filter)
        clusters = self._comparator.cluster(records, threshold)

        logger.info(
            "Clustered faces",
            records=len(records),
            clusters=len(clusters),
            threshold=threshold
        )
        return ClusterResult(threshold=threshold, clusters=clusters)
