"""
Error taxonomy for the API and the handlers that turn it into JSON responses.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class RoopsnapError(Exception):
    """Base class for errors reported to API callers."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict:
        payload = {"success": False, "error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(RoopsnapError):
    """A required field is missing or malformed."""

    status_code = 400


class NotFoundError(RoopsnapError):
    """The record addressed by the request does not exist."""

    status_code = 404


class BackendError(RoopsnapError):
    """The last backing store available for a request failed."""

    status_code = 500


class ServerError(RoopsnapError):
    status_code = 500


async def _handle_roopsnap_error(request: Request, exc: RoopsnapError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def _handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    error = ValidationError("Invalid request", details=jsonable_encoder(exc.errors()))
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = ServerError("Internal Server Error")
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RoopsnapError, _handle_roopsnap_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(Exception, _handle_unexpected)
