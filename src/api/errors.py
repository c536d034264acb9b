"""
Component error lists and store failures mapped to HTTP responses.
"""

from collections.abc import Sequence
from typing import Any, Protocol

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from src.domain.errors import UpstreamStoreError

STATUS_BY_CODE = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "payload_too_large": status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
}


class _ComponentError(Protocol):
    code: str
    message: str
    field: str | None


def error_detail(err: _ComponentError) -> dict[str, Any]:
    return {"code": err.code, "message": err.message, "field": err.field}


def raise_for_errors(errors: Sequence[_ComponentError]) -> None:
    """Raise an HTTPException for the first error; validation errors are 400."""
    if not errors:
        return
    first = errors[0]
    raise HTTPException(
        status_code=STATUS_BY_CODE.get(first.code, status.HTTP_400_BAD_REQUEST),
        detail=error_detail(first),
    )


async def upstream_error_handler(request: Request, exc: UpstreamStoreError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": {"code": exc.code, "message": str(exc), "field": None}},
    )
