"""Domain errors and their mapping to HTTP responses."""
from dataclasses import dataclass
from enum import Enum

from fastapi import Request
from fastapi.responses import JSONResponse


class TrackerError(Exception):
    """Base class for errors surfaced to API callers."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TrackerError):
    """Malformed client input (e.g. a symbol outside ^[A-Z]{1,5}$)."""


class NotFound(TrackerError):
    """Symbol unknown upstream, not tracked, or tracked without data yet."""


class Conflict(TrackerError):
    """Symbol is already under active tracking."""


class UpstreamErrorKind(str, Enum):
    AUTH = "auth"
    NOT_FOUND = "not_found"
    RATE_LIMIT = "rate_limit"
    NO_DATA = "no_data"
    INVALID_RESPONSE = "invalid_response"
    UNAVAILABLE = "unavailable"


class ExternalServiceError(TrackerError):
    """The price feed failed or returned something unusable."""

    def __init__(
        self,
        message: str,
        kind: UpstreamErrorKind = UpstreamErrorKind.UNAVAILABLE,
        service: str = "Finnhub",
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.service = service

    def __str__(self) -> str:
        return f"{self.service}: {self.message}"


@dataclass(frozen=True)
class ErrorMapper:
    """Maps domain exceptions to (status_code, detail) for HTTP responses."""

    def to_http(self, exc: TrackerError) -> tuple[int, str]:
        if isinstance(exc, ValidationError):
            return (400, exc.message)
        if isinstance(exc, NotFound):
            return (404, exc.message)
        if isinstance(exc, Conflict):
            return (409, exc.message)
        if isinstance(exc, ExternalServiceError):
            return (503, str(exc))
        return (500, "Internal server error")


_STATUS_NAMES = {
    400: "Bad Request",
    404: "Not Found",
    409: "Conflict",
    503: "Service Unavailable",
    500: "Internal Server Error",
}


async def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    """FastAPI exception handler rendering TrackerError as a JSON error body."""
    mapper: ErrorMapper = getattr(request.app.state, "error_mapper", None) or ErrorMapper()
    status_code, detail = mapper.to_http(exc)
    return JSONResponse(
        status_code=status_code,
        content={
            "statusCode": status_code,
            "error": _STATUS_NAMES.get(status_code, "Error"),
            "message": detail,
        },
    )
