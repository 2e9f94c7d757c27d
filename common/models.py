"""Persisted room records and their occupancy transitions."""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

OCCUPANCY_FIELDS = ("booked_by", "purpose", "end_time", "booking_code")


class RoomStatus(str, Enum):
    AVAILABLE = "Available"
    OCCUPIED = "Occupied"


class Room(BaseModel):
    """One entry of the rooms document.

    The occupancy fields are present exactly when the room is occupied. Only
    ``occupy``, ``extend`` and ``vacate`` touch them, which keeps that rule
    intact after a record has been loaded.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    name: str
    status: RoomStatus = RoomStatus.AVAILABLE
    booked_by: Optional[str] = None
    purpose: Optional[str] = None
    end_time: Optional[int] = None
    booking_code: Optional[str] = None

    @model_validator(mode="after")
    def _check_occupancy(self) -> "Room":
        present = [getattr(self, field) is not None for field in OCCUPANCY_FIELDS]
        if self.status is RoomStatus.OCCUPIED and not all(present):
            raise ValueError(f"occupied room {self.id} is missing booking details")
        if self.status is RoomStatus.AVAILABLE and any(present):
            raise ValueError(f"available room {self.id} still carries booking details")
        return self

    @property
    def is_occupied(self) -> bool:
        return self.status is RoomStatus.OCCUPIED

    def occupy(self, booked_by: str, purpose: str, end_time: int, booking_code: str) -> None:
        self.status = RoomStatus.OCCUPIED
        self.booked_by = booked_by
        self.purpose = purpose
        self.end_time = end_time
        self.booking_code = booking_code

    def extend(self, extra_ms: int) -> None:
        # end_time only ever moves forward while occupied
        self.end_time = (self.end_time or 0) + extra_ms

    def vacate(self) -> None:
        self.status = RoomStatus.AVAILABLE
        for field in OCCUPANCY_FIELDS:
            setattr(self, field, None)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
