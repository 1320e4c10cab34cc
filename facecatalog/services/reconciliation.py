"""Detection and removal of orphan rows and artifacts.

Stores never run this implicitly. An artifact is only reported as an orphan
once it is older than the grace period, so a store in progress (artifact
written, row not yet inserted) is not mistaken for one.
"""
from datetime import timedelta
from typing import Optional

from facecatalog.core.logging import get_logger
from facecatalog.domain.entities.face import utc_now
from facecatalog.domain.interfaces.storage.artifact_store import ArtifactStore
from facecatalog.domain.interfaces.storage.record_store import FaceRecordStore
from facecatalog.domain.value_objects.reconciliation import OrphanArtifact, ReconciliationReport

logger = get_logger(__name__)


class ArtifactReconciler:
    """Compares stored ids with the artifact listing."""

    def __init__(
        self,
        store: FaceRecordStore,
        artifacts: ArtifactStore,
        grace_period: timedelta = timedelta(minutes=5),
    ) -> None:
        """Initialize the reconciler.

        Args:
            store: Face record store
            artifacts: Artifact store paired with the record store
            grace_period: Minimum artifact age before it can count as an orphan
        """
        self._store = store
        self._artifacts = artifacts
        self.grace_period = grace_period

    async def scan(self) -> ReconciliationReport:
        """Find artifacts without rows and rows without artifacts."""
        # Artifacts are listed before rows, so a store that finishes in
        # between is seen with its row
        artifact_ids = await self._artifacts.list_ids()
        row_ids = set(await self._store.list_ids())
        cutoff = utc_now() - self.grace_period

        orphan_artifacts = []
        for face_id in artifact_ids:
            if face_id in row_ids:
                continue
            try:
                modified = await self._artifacts.modified_at(face_id)
            except FileNotFoundError:
                continue
            if modified <= cutoff:
                orphan_artifacts.append(OrphanArtifact(
                    face_id=face_id,
                    path=str(self._artifacts.path_for(face_id))
                ))

        orphan_rows = sorted(row_ids - set(artifact_ids))
        report = ReconciliationReport(
            checked_rows=len(row_ids),
            checked_artifacts=len(artifact_ids),
            orphan_artifacts=orphan_artifacts,
            orphan_rows=orphan_rows,
        )

        logger.info(
            "Reconciliation scan finished",
            rows=report.checked_rows,
            artifacts=report.checked_artifacts,
            orphan_artifacts=len(report.orphan_artifacts),
            orphan_rows=len(report.orphan_rows)
        )
        return report

    async def remove_orphan_artifacts(self, report: Optional[ReconciliationReport] = None) -> int:
        """Delete orphan artifact files.

        Args:
            report: A previous scan, a fresh scan is run when omitted

        Returns:
            Number of artifacts removed
        """
        report = report or await self.scan()
        removed = 0
        for orphan in report.orphan_artifacts:
            try:
                await self._artifacts.remove(orphan.face_id)
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(
                    "Failed to remove orphan artifact",
                    face_id=orphan.face_id,
                    path=orphan.path,
                    error=str(e)
                )
                continue
            removed += 1

        logger.info("Removed orphan artifacts", removed=removed)
        return removed
