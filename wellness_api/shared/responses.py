"""Uniform response envelope: {success, message?, data?, errors?}"""

from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def envelope(data: Any = None, message: Optional[str] = None) -> dict:
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def error_response(
    status_code: int,
    message: str,
    errors: Optional[list] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = jsonable_encoder(errors)
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def pagination(page: int, limit: int, total: int) -> dict:
    return {
        "currentPage": page,
        "totalPages": (total + limit - 1) // limit if limit else 0,
        "totalItems": total,
        "itemsPerPage": limit,
    }
