"""Pieces every service API shares: logging setup, error mapping and the health endpoint."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

import config
from shared.domain.errors import ConflictDetected, InvalidBookingRequest, NotFound

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging():
    logging.basicConfig(
        level=getattr(logging, config.get_log_level(), logging.INFO),
        format=LOG_FORMAT,
    )


def create_app(service: str, title: str, description: str) -> FastAPI:
    app = FastAPI(title=title, description=description, version="1.0.0")

    @app.exception_handler(ConflictDetected)
    async def conflict_handler(request: Request, exc: ConflictDetected):
        logger.info(f"{request.method} {request.url.path} rejected: {exc}")
        body = {"detail": str(exc)}
        conflict = getattr(exc, "conflict", None)
        if conflict is not None:
            body["conflict"] = {"kind": conflict.kind, "appointment_id": conflict.appointment_id}
        return JSONResponse(status_code=409, content=body)

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(InvalidBookingRequest)
    async def invalid_request_handler(request: Request, exc: InvalidBookingRequest):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": service,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app
