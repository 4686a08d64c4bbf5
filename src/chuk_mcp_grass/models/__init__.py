"""Response models for chuk-mcp-grass."""

from .responses import (
    ErrorResponse,
    StatusResponse,
    VersionResponse,
    ViewshedResponse,
    format_response,
)

__all__ = [
    "ErrorResponse",
    "VersionResponse",
    "StatusResponse",
    "ViewshedResponse",
    "format_response",
]
