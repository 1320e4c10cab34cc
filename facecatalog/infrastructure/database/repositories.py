"""Database repositories for the face catalog."""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from facecatalog.domain.entities.face import FaceMetadata, FaceRecord
from facecatalog.domain.value_objects.records import SearchFilter
from facecatalog.infrastructure.database.models import FaceRow, FaceTagRow


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so the value matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def row_to_record(row: FaceRow) -> FaceRecord:
    """Convert a database row to the domain record."""
    return FaceRecord(
        face_id=str(row.id),
        embedding=row.embedding,
        metadata=FaceMetadata(
            name=row.name,
            tags={tag.tag for tag in row.tags},
            timestamp=row.timestamp,
            source_image=row.source_image,
            confidence=row.confidence,
        ),
    )


class FaceRepository:
    """Repository for face record rows."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository.

        Args:
            session: Database session
        """
        self._session = session

    async def add(self, record: FaceRecord) -> FaceRow:
        """Insert a face record.

        Args:
            record: Record to insert

        Returns:
            FaceRow: Inserted row

        Raises:
            IntegrityError: If a row with the same id exists
        """
        metadata = record.metadata
        row = FaceRow(
            id=UUID(record.face_id),
            embedding=list(record.embedding),
            name=metadata.name,
            timestamp=metadata.timestamp,
            source_image=metadata.source_image,
            confidence=metadata.confidence,
            tags=[FaceTagRow(tag=tag) for tag in sorted(metadata.tags)],
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def exists(self, face_id: UUID) -> bool:
        """Check whether a row exists."""
        stmt = select(FaceRow.id).where(FaceRow.id == face_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def get(self, face_id: UUID) -> Optional[FaceRow]:
        """Get a row with its tags, bypassing any stale identity map entry."""
        stmt = (
            select(FaceRow)
            .where(FaceRow.id == face_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def search(self, search_filter: SearchFilter) -> List[FaceRow]:
        """Find rows matching every present filter field, newest first.

        Args:
            search_filter: Filter; absent fields impose no constraint

        Returns:
            List[FaceRow]: Matching rows ordered by timestamp descending
        """
        stmt = select(FaceRow)

        if search_filter.name_contains is not None:
            pattern = f"%{_escape_like(search_filter.name_contains)}%"
            stmt = stmt.where(FaceRow.name.ilike(pattern, escape="\\"))
        if search_filter.tags_any_of is not None:
            stmt = stmt.where(FaceRow.tags.any(FaceTagRow.tag.in_(sorted(search_filter.tags_any_of))))
        if search_filter.start_time is not None:
            stmt = stmt.where(FaceRow.timestamp >= search_filter.start_time)
        if search_filter.end_time is not None:
            stmt = stmt.where(FaceRow.timestamp <= search_filter.end_time)
        if search_filter.min_confidence is not None:
            stmt = stmt.where(FaceRow.confidence >= search_filter.min_confidence)

        # Id as secondary key keeps equal timestamps in a stable order
        stmt = stmt.order_by(FaceRow.timestamp.desc(), FaceRow.id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def update(self, face_id: UUID, changes: Dict[str, Any]) -> bool:
        """Apply a partial update.

        The UPDATE statement itself decides existence, so a row deleted after
        it was read is reported as missing instead of being recreated.

        Args:
            face_id: Row id
            changes: Supplied fields among name, tags and confidence

        Returns:
            bool: False if no row with the id exists
        """
        values = {key: changes[key] for key in ("name", "confidence") if key in changes}
        if not values:
            # Touch the row so existence is still decided by the statement
            values = {"name": FaceRow.name}

        stmt = (
            update(FaceRow)
            .where(FaceRow.id == face_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return False

        if "tags" in changes:
            await self._session.execute(
                delete(FaceTagRow)
                .where(FaceTagRow.face_id == face_id)
                .execution_options(synchronize_session=False)
            )
            tags = sorted(changes["tags"])
            if tags:
                await self._session.execute(
                    insert(FaceTagRow),
                    [{"face_id": face_id, "tag": tag} for tag in tags]
                )
        return True

    async def delete(self, face_id: UUID) -> bool:
        """Delete a row; its tags are removed by the foreign key cascade.

        Returns:
            bool: True if a row was deleted
        """
        stmt = (
            delete(FaceRow)
            .where(FaceRow.id == face_id)
            .returning(FaceRow.id)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def delete_older_than(self, cutoff: datetime) -> List[UUID]:
        """Delete every row with a timestamp strictly before the cutoff.

        Returns:
            List[UUID]: Ids of the deleted rows
        """
        stmt = (
            delete(FaceRow)
            .where(FaceRow.timestamp < cutoff)
            .returning(FaceRow.id)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_ids(self) -> List[UUID]:
        """Get the id of every row."""
        result = await self._session.execute(select(FaceRow.id).order_by(FaceRow.id))
        return list(result.scalars().all())

    async def count(self) -> int:
        """Get total count of rows."""
        result = await self._session.execute(select(func.count(FaceRow.id)))
        return result.scalar() or 0
