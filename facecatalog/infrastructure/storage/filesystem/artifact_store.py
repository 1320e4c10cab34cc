"""Local filesystem implementation of the artifact store."""
import asyncio
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from facecatalog.core.config import settings
from facecatalog.core.logging import get_logger
from facecatalog.domain.interfaces.storage.artifact_store import ArtifactStore

logger = get_logger(__name__)


class LocalArtifactStore(ArtifactStore):
    """Stores one image file per face id under a root directory.

    Files are created with exclusive-create semantics so an existing artifact
    is never overwritten. A write that fails halfway removes its partial
    file; a crash mid-write leaves an orphan for reconciliation.
    """

    def __init__(
        self,
        root: Optional[Union[str, Path]] = None,
        extension: Optional[str] = None,
    ) -> None:
        """Initialize the store and create the root directory.

        Args:
            root: Artifact directory, defaults to settings.ARTIFACT_ROOT
            extension: File extension including the dot, defaults to settings.ARTIFACT_EXTENSION
        """
        self.root = Path(root if root is not None else settings.ARTIFACT_ROOT)
        self.extension = extension or settings.ARTIFACT_EXTENSION
        self.root.mkdir(parents=True, exist_ok=True)
        logger.debug("Artifact store ready", root=str(self.root))

    def path_for(self, face_id: str) -> Path:
        return self.root / f"{face_id}{self.extension}"

    async def write(self, face_id: str, data: bytes) -> Path:
        return await asyncio.to_thread(self._write_exclusive, face_id, data)

    async def copy_from(self, face_id: str, source: Path) -> Path:
        return await asyncio.to_thread(self._copy_exclusive, face_id, Path(source))

    async def read(self, face_id: str) -> bytes:
        return await asyncio.to_thread(self.path_for(face_id).read_bytes)

    async def remove(self, face_id: str) -> None:
        await asyncio.to_thread(self.path_for(face_id).unlink)

    async def list_ids(self) -> List[str]:
        return await asyncio.to_thread(self._scan_ids)

    async def modified_at(self, face_id: str) -> datetime:
        stat = await asyncio.to_thread(self.path_for(face_id).stat)
        return datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)

    def _write_exclusive(self, face_id: str, data: bytes) -> Path:
        target = self.path_for(face_id)
        with open(target, "xb") as handle:
            try:
                handle.write(data)
            except OSError:
                handle.close()
                target.unlink(missing_ok=True)
                raise
        return target

    def _copy_exclusive(self, face_id: str, source: Path) -> Path:
        target = self.path_for(face_id)
        with open(source, "rb") as src:
            with open(target, "xb") as dst:
                try:
                    shutil.copyfileobj(src, dst)
                except OSError:
                    dst.close()
                    target.unlink(missing_ok=True)
                    raise
        return target

    def _scan_ids(self) -> List[str]:
        face_ids = []
        for path in self.root.glob(f"*{self.extension}"):
            try:
                face_ids.append(str(uuid.UUID(path.stem)))
            except ValueError:
                # Not named after a face id, not ours
                continue
        return sorted(face_ids)
