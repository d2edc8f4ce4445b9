"""
Meter Reader API Server
=======================

Run:
    python main.py
    # or
    uvicorn meter_reader.api.app:create_app --factory

Endpoints:
    POST  /upload                  - Submit a meter image, get the recognised reading
    PATCH /confirm                 - Confirm or correct a reading once
    GET   /{customer_code}/list    - List a customer's measures
    GET   /images/{filename}       - Stored meter image
    GET   /health                  - Health check
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .routers import router
from .. import __version__
from ..config import ConfigManager
from ..measurements import InvalidData, MeasureError, MeasurementService

logger = logging.getLogger(__name__)


def error_response(error: MeasureError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def measure_error_handler(request: Request, exc: MeasureError) -> JSONResponse:
    return error_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"Malformed request body on {request.method} {request.url.path}: {exc.errors()}")
    return error_response(InvalidData("Request body is not a valid JSON object."))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(MeasureError())


def create_app(config_manager: Optional[ConfigManager] = None,
               service: Optional[MeasurementService] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config_manager: Configuration source; a default ConfigManager is created if omitted
        service: Pre-built service (tests inject one with a fake recognizer)
    """
    if service is None:
        service = MeasurementService.from_config(config_manager or ConfigManager())

    app = FastAPI(
        title="Meter Reader",
        description="Upload, recognise and confirm utility meter readings",
        version=__version__,
    )
    app.state.service = service

    app.add_exception_handler(MeasureError, measure_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(router)
    return app
