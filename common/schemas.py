"""Pydantic schemas for the booking API."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .models import Room, RoomStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PublicRoom(CamelModel):
    """Room state safe for the public listing; never carries the booking code."""

    id: int
    name: str
    status: RoomStatus
    booked_by: Optional[str] = None
    purpose: Optional[str] = None
    end_time: Optional[int] = None

    @classmethod
    def from_room(cls, room: Room) -> "PublicRoom":
        return cls(**room.model_dump(exclude={"booking_code"}))


class BookingCreate(CamelModel):
    room_id: int
    student_name: Optional[str] = None
    purpose: Optional[str] = None
    duration: Optional[int] = None


class BookingExtend(CamelModel):
    booking_code: Optional[str] = None
    extra_minutes: Optional[int] = None


class BookingRelease(CamelModel):
    booking_code: Optional[str] = None


class BookingConfirmation(CamelModel):
    message: str
    room: PublicRoom
    booking_code: str


class RoomActionResult(CamelModel):
    message: str
    room: PublicRoom
