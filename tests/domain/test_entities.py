"""Tests for domain entities and value objects."""
import uuid
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest
from pydantic import ValidationError

from facecatalog.domain.entities.face import FaceMetadata, FaceRecord
from facecatalog.domain.value_objects.events import (
    ErrorEvent,
    FaceDeleted,
    FaceDetected,
    FaceUpdated,
    parse_event,
)
from facecatalog.domain.value_objects.records import FaceUpdate, SearchFilter


class TestFaceRecord:
    """Test suite for face records."""

    def test_create_assigns_id_and_utc_time(self):
        record = FaceRecord.create(
            embedding=np.array([0.6, 0.8], dtype=np.float32),
            source_image="frame.jpg",
            confidence=0.9,
            tags=["staff"],
        )

        assert uuid.UUID(record.face_id).version == 4
        assert record.metadata.timestamp.tzinfo == timezone.utc
        assert record.metadata.tags == {"staff"}
        assert all(isinstance(x, float) for x in record.embedding)

    def test_face_id_is_canonical(self, record_factory):
        face_id = uuid.uuid4()
        record = record_factory(face_id=str(face_id).upper())

        assert record.face_id == str(face_id)

    def test_rejects_malformed_id(self, record_factory):
        with pytest.raises(ValidationError):
            record_factory(face_id="face-1")

    @pytest.mark.parametrize("embedding", [[], [1.0, float("nan")], [float("inf")]])
    def test_rejects_bad_embedding(self, embedding):
        with pytest.raises(ValidationError):
            FaceRecord.create(embedding=embedding, source_image="frame.jpg", confidence=0.5)

    @pytest.mark.parametrize("confidence", [-0.01, 1.01])
    def test_rejects_confidence_out_of_range(self, confidence):
        with pytest.raises(ValidationError):
            FaceMetadata(source_image="frame.jpg", confidence=confidence)

    def test_naive_timestamp_is_utc(self):
        metadata = FaceMetadata(
            source_image="frame.jpg",
            confidence=0.5,
            timestamp=datetime(2024, 1, 1, 12, 0),
        )

        assert metadata.timestamp == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_aware_timestamp_converted(self):
        plus_two = timezone(timedelta(hours=2))
        metadata = FaceMetadata(
            source_image="frame.jpg",
            confidence=0.5,
            timestamp=datetime(2024, 1, 1, 14, 0, tzinfo=plus_two),
        )

        assert metadata.timestamp.utcoffset() == timedelta(0)
        assert metadata.timestamp.hour == 12

    def test_is_immutable(self, record_factory):
        record = record_factory()
        with pytest.raises(ValidationError):
            record.face_id = str(uuid.uuid4())


class TestFaceUpdate:
    """Test suite for partial updates."""

    def test_only_supplied_fields(self):
        update = FaceUpdate(confidence=0.4)

        assert update.changes() == {"confidence": 0.4}
        assert not update.is_empty()
        assert FaceUpdate().is_empty()

    def test_name_can_be_cleared(self):
        assert FaceUpdate(name=None).changes() == {"name": None}

    @pytest.mark.parametrize("field", ["tags", "confidence"])
    def test_non_nullable_fields(self, field):
        with pytest.raises(ValidationError):
            FaceUpdate(**{field: None})

    def test_apply(self, record_factory):
        record = record_factory(name="Ada", tags={"staff"}, confidence=0.7)

        updated = FaceUpdate(tags={"vip"}).apply(record)

        assert updated.metadata.tags == {"vip"}
        assert updated.metadata.name == "Ada"
        assert record.metadata.tags == {"staff"}


class TestSearchFilter:
    """Test suite for in-memory filtering."""

    def test_empty_filter_matches_everything(self, record_factory):
        assert SearchFilter().matches(record_factory())

    def test_unnamed_record_fails_name_filter(self, record_factory):
        assert not SearchFilter(name_contains="a").matches(record_factory())

    def test_time_bounds_inclusive(self, record_factory):
        record = record_factory()
        at = record.metadata.timestamp

        assert SearchFilter(start_time=at, end_time=at).matches(record)
        assert not SearchFilter(start_time=at + timedelta(microseconds=1)).matches(record)


class TestEvents:
    """Test suite for notification event serialization."""

    def test_json_round_trip(self, record_factory):
        """Should parse every serialized event back into the same model."""
        record = record_factory(name="Ada", tags={"staff"})
        events = [
            FaceDetected(record=record),
            FaceUpdated(record=record),
            FaceDeleted(face_id=record.face_id),
            ErrorEvent(message="Ingest failed"),
        ]

        for event in events:
            parsed = parse_event(event.model_dump_json())
            assert type(parsed) is type(event)
            assert parsed == event

    def test_type_discriminator(self):
        payload = ErrorEvent(message="boom").model_dump()

        assert payload == {"type": "error", "message": "boom"}

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            parse_event('{"type": "face_renamed", "face_id": "x"}')
