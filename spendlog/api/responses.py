"""
Response envelope.

Every response body has the shape
``{"success": bool, "data": ..., "message": str}``; list endpoints add
``count``, ``total`` and ``pagination``.
"""

from typing import Any, Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel


def _serialize(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    if isinstance(data, list):
        return [_serialize(item) for item in data]
    return data


def envelope(
    data: Any = None,
    message: Optional[str] = None,
    success: bool = True,
    **extra: Any,
) -> dict:
    body: dict[str, Any] = {"success": success}
    if message is not None:
        body["message"] = message
    body.update(extra)
    body["data"] = _serialize(data)
    return body


def success_response(
    data: Any = None,
    message: Optional[str] = None,
    status_code: int = 200,
    **extra: Any,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=envelope(data, message=message, **extra),
    )


def error_response(
    status_code: int,
    message: str,
    errors: Optional[list] = None,
    error: Optional[str] = None,
) -> JSONResponse:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors is not None:
        body["errors"] = errors
    if error is not None:
        body["error"] = error
    return JSONResponse(status_code=status_code, content=body)
