"""Change notification events pushed to subscribers."""
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from facecatalog.domain.entities.face import FaceRecord


class FaceDetected(BaseModel):
    """A new record was stored."""
    type: Literal["face_detected"] = "face_detected"
    record: FaceRecord = Field(..., description="The stored record")


class FaceUpdated(BaseModel):
    """A record's metadata changed."""
    type: Literal["face_updated"] = "face_updated"
    record: FaceRecord = Field(..., description="The record after the update")


class FaceDeleted(BaseModel):
    """A record was removed."""
    type: Literal["face_deleted"] = "face_deleted"
    face_id: str = Field(..., description="Id of the removed record")


class ErrorEvent(BaseModel):
    """An operation failed."""
    type: Literal["error"] = "error"
    message: str = Field(..., description="Human readable failure description")


NotificationEvent = Annotated[
    Union[FaceDetected, FaceUpdated, FaceDeleted, ErrorEvent],
    Field(discriminator="type"),
]

notification_event_adapter: TypeAdapter = TypeAdapter(NotificationEvent)


def parse_event(data: Union[str, bytes]) -> NotificationEvent:
    """Parse a JSON-serialized event back into its model."""
    return notification_event_adapter.validate_json(data)
