"""Audit trail of booking API calls, one line per request."""
from __future__ import annotations

import logging
from pathlib import Path
from time import time
from typing import Optional

from fastapi import FastAPI, Request

from .config import get_settings

AUDIT_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def audit_log_path(service_name: str, log_dir: Optional[str] = None) -> Path:
    return Path(log_dir or get_settings().log_dir) / f"{service_name}.log"


def _audit_logger(service_name: str, log_dir: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger(f"audit.{service_name}")
    if logger.handlers:
        return logger

    path = audit_log_path(service_name, log_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(AUDIT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    return logger


def add_audit_middleware(app: FastAPI, service_name: str, log_dir: Optional[str] = None) -> None:
    """Record method, path, room, status and latency of every call.

    Rejected requests (4xx/5xx) are written at WARNING so failed bookings
    stand out. Request bodies are never logged; they carry booking codes.
    """
    audit = _audit_logger(service_name, log_dir)

    @app.middleware("http")
    async def audit_request(request: Request, call_next):  # type: ignore[override]
        started = time()
        response = await call_next(request)
        elapsed_ms = (time() - started) * 1000
        room_id = request.path_params.get("room_id", "-")
        client = request.client.host if request.client else "unknown"
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        audit.log(
            level,
            "%s %s | room=%s | status=%s | client=%s | duration=%.2fms",
            request.method,
            request.url.path,
            room_id,
            response.status_code,
            client,
            elapsed_ms,
        )
        return response
