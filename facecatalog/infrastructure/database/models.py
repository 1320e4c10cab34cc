"""SQLAlchemy models for the face catalog."""
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, DateTime, Float, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class FaceRow(Base):
    """One row per face record.

    The paired image artifact lives outside the database and is named after
    the id.
    """

    __tablename__ = "faces"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True
    )
    embedding: Mapped[List[float]] = mapped_column(
        JSON,
        nullable=False,
        comment="Unit L2-norm embedding as an array of floats"
    )
    name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        index=True
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        comment="Creation time in UTC"
    )
    source_image: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Path or identifier of the image the face came from"
    )
    confidence: Mapped[float] = mapped_column(
        Float,
        nullable=False
    )

    # Relationships
    tags: Mapped[List["FaceTagRow"]] = relationship(
        back_populates="face",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin"
    )


class FaceTagRow(Base):
    """A single tag attached to a face record."""

    __tablename__ = "face_tags"

    face_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("faces.id", ondelete="CASCADE"),
        primary_key=True
    )
    tag: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
        index=True
    )

    # Relationships
    face: Mapped[FaceRow] = relationship(
        back_populates="tags"
    )
