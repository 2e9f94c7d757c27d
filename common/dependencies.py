"""Reusable FastAPI dependencies and error rendering."""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .exceptions import BookingError
from .lifecycle import BookingService


def get_booking_service(request: Request) -> BookingService:
    return request.app.state.booking_service


def booking_error_handler(_: Request, exc: BookingError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def apply_booking_error_handler(app: FastAPI) -> None:
    """Render every BookingError as a JSON body with its own status code."""

    app.add_exception_handler(BookingError, booking_error_handler)
