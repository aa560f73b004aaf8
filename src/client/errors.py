from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from models import MAINTENANCE_MARKER, UNSUPPORTED_VERSION_MARKER


class ErrorCode(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    MAINTENANCE_MODE = "maintenance_mode"
    UNSUPPORTED_VERSION = "unsupported_version"
    FORBIDDEN = "forbidden"
    HTTP_ERROR = "http_error"


class ClassifiedError(Exception):
    """A failed API exchange, classified for UI-level recovery. Never retried."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        *,
        request_id: Optional[str] = None,
        status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.request_id = request_id
        self.status = status

    def __repr__(self) -> str:
        return (
            f"ClassifiedError(code={self.code.value!r}, status={self.status!r}, "
            f"request_id={self.request_id!r}, message={self.message!r})"
        )


_FORBIDDEN_MARKERS: Dict[str, ErrorCode] = {
    MAINTENANCE_MARKER: ErrorCode.MAINTENANCE_MODE,
    UNSUPPORTED_VERSION_MARKER: ErrorCode.UNSUPPORTED_VERSION,
}


def decode_error_code(status: int, payload: Dict[str, Any]) -> ErrorCode:
    """Map an HTTP status and decoded error body to an ErrorCode.

    Only 403 bodies are inspected; unknown markers fall back to FORBIDDEN.
    """
    if status != 403:
        return ErrorCode.HTTP_ERROR
    marker = payload.get("error")
    if isinstance(marker, str):
        return _FORBIDDEN_MARKERS.get(marker, ErrorCode.FORBIDDEN)
    return ErrorCode.FORBIDDEN
