# FILE: pharmaledger/api/response.py
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from pharmaledger.services.errors import ErrorCode, LedgerFailure, LedgerResult

# ledger error code -> HTTP status
STATUS_BY_CODE: Dict[ErrorCode, int] = {
    ErrorCode.INVALID_INPUT: 422,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.INSUFFICIENT_STOCK: 409,
    ErrorCode.BUSY: 503,
    ErrorCode.STORAGE_FAILURE: 500,
}

RETRY_AFTER_SECONDS = 1


def _json(body: Dict[str, Any], status_code: int) -> JSONResponse:
    # Decimal -> float, date/datetime -> ISO, Enum -> value
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def ok(
    data: Any = None,
    *,
    meta: Optional[Mapping[str, Any]] = None,
    status_code: int = 200,
) -> JSONResponse:
    """{"ok": true, "data": ..., "meta": {...}}; meta only when given."""
    body: Dict[str, Any] = {"ok": True, "data": data}
    if meta is not None:
        body["meta"] = dict(meta)
    return _json(body, status_code)


def err(
    msg: str = "Request failed",
    *,
    status_code: int = 400,
    code: Optional[str] = None,
    details: Any = None,
) -> JSONResponse:
    """{"ok": false, "error": {"msg", "code", "details"}}"""
    return _json(
        {"ok": False, "error": {"msg": msg, "code": code, "details": details}},
        status_code,
    )


def failure_response(failure: LedgerFailure) -> JSONResponse:
    resp = err(
        msg=failure.message,
        status_code=STATUS_BY_CODE.get(failure.code, 500),
        code=failure.code.value,
        details=failure.details or None,
    )
    if failure.retryable:
        resp.headers["Retry-After"] = str(RETRY_AFTER_SECONDS)
    return resp


def from_result(result: LedgerResult, *, status_code: int = 200) -> JSONResponse:
    if result.ok:
        return ok(result.value, status_code=status_code)
    return failure_response(result.error)
