"""Unified API response wrapper.

All API endpoints return this format:
{
    "code": 0,           // 0=success, non-0=error code
    "message": "success",
    "data": { ... },     // null on error unless the error carries state
    "timestamp": "...",
    "request_id": "..."
}

request_id is the one RequestLogMiddleware stored on request.state, so the
envelope, the X-Request-ID header and the access log agree.
"""

import uuid
from typing import Any

from pydantic import BaseModel, Field
from starlette.requests import Request

from src.pm_common.datetime_utils import utc_now


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


def current_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: utc_now().isoformat())
    request_id: str = Field(default_factory=new_request_id)


def success_response(data: Any = None, request_id: str | None = None) -> ApiResponse:
    return ApiResponse(code=0, data=data, request_id=request_id or new_request_id())


def error_response(
    code: int, message: str, data: Any = None, request_id: str | None = None
) -> ApiResponse:
    return ApiResponse(
        code=code, message=message, data=data, request_id=request_id or new_request_id()
    )
