"""ShipDesk — API Response Helpers."""
from fastapi import Request
from fastapi.responses import JSONResponse

from shipdesk.core.errors import ShipDeskError


def error_response(code: str, message: str, field_errors: list[dict] | None = None, meta: dict | None = None) -> dict:
    return {
        "data": None,
        "error": {
            "code": code,
            "message": message,
            "field_errors": field_errors or []
        },
        "meta": meta
    }


async def shipdesk_error_handler(request: Request, exc: ShipDeskError) -> JSONResponse:
    """Render business errors as 4xx envelopes so clients can tell them from server faults."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.code, exc.message, meta=exc.context or None),
    )
