import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CollectorRegistry
from prometheus_fastapi_instrumentator import Instrumentator

from common.config import get_settings
from common.dependencies import apply_booking_error_handler, get_booking_service
from common.lifecycle import BookingService
from common.logging_middleware import add_audit_middleware
from common.rate_limit import apply_rate_limiter, booking_limit
from common.schemas import (
    BookingConfirmation,
    BookingCreate,
    BookingExtend,
    BookingRelease,
    PublicRoom,
    RoomActionResult,
)
from common.store import RoomStore

settings = get_settings()
logger = logging.getLogger(__name__)
router = APIRouter()


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    service: BookingService = fastapi_app.state.booking_service
    service.reconcile()
    yield
    service.shutdown()


def create_app(service: Optional[BookingService] = None) -> FastAPI:
    fastapi_app = FastAPI(title="Room Booking Service", version="0.3.0", lifespan=lifespan)
    fastapi_app.state.booking_service = service or BookingService(RoomStore(Path(settings.rooms_file)))
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    apply_booking_error_handler(fastapi_app)
    add_audit_middleware(fastapi_app, "rooms")
    Instrumentator(registry=CollectorRegistry()).instrument(fastapi_app).expose(fastapi_app)
    fastapi_app.include_router(router)
    return fastapi_app


@router.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "rooms"}


@router.get("/api/rooms", response_model=List[PublicRoom], response_model_exclude_none=True)
def list_rooms(service: BookingService = Depends(get_booking_service)) -> List[PublicRoom]:
    return service.list_rooms()


@router.get("/api/room/{room_id}", response_model=PublicRoom, response_model_exclude_none=True)
def get_room(room_id: int, service: BookingService = Depends(get_booking_service)) -> PublicRoom:
    return service.get_room(room_id)


@router.post("/api/book", response_model=BookingConfirmation, response_model_exclude_none=True)
@booking_limit
def book_room(
    request: Request,
    booking_in: BookingCreate,
    service: BookingService = Depends(get_booking_service),
) -> BookingConfirmation:
    return service.book(booking_in.room_id, booking_in.student_name, booking_in.purpose, booking_in.duration)


@router.post("/api/room/{room_id}/extend", response_model=RoomActionResult, response_model_exclude_none=True)
@booking_limit
def extend_booking(
    request: Request,
    room_id: int,
    extend_in: BookingExtend,
    service: BookingService = Depends(get_booking_service),
) -> RoomActionResult:
    return service.extend(room_id, extend_in.booking_code, extend_in.extra_minutes)


@router.post("/api/room/{room_id}/release", response_model=RoomActionResult, response_model_exclude_none=True)
@booking_limit
def release_room(
    request: Request,
    room_id: int,
    release_in: Optional[BookingRelease] = None,
    service: BookingService = Depends(get_booking_service),
) -> RoomActionResult:
    booking_code = release_in.booking_code if release_in else None
    return service.release(room_id, booking_code)


app = create_app()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    logger.info("Serving rooms from %s", settings.rooms_file)
    uvicorn.run(app, host="0.0.0.0", port=settings.rooms_service_port)
