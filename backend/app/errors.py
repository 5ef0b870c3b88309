"""
Unified error envelope.

Every HTTP error leaves the service as a problem document:
{type, title, status, detail, instance, code, errors}.
"""

from http import HTTPStatus
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException

logger = logging.getLogger(__name__)


def problem_body(
    request: Request,
    status: int,
    detail: Optional[str] = None,
    code: Optional[str] = None,
    errors: Any = None,
) -> Dict[str, Any]:
    try:
        title = HTTPStatus(status).phrase
    except ValueError:
        title = "Error"
    body: Dict[str, Any] = {
        "type": "about:blank",
        "title": title,
        "status": status,
        "detail": detail or "",
        "instance": request.url.path,
    }
    if code:
        body["code"] = code
    if errors is not None:
        body["errors"] = jsonable_encoder(errors)
    return body


def _from_http_detail(request: Request, status: int, detail: Any) -> Dict[str, Any]:
    """HTTPException.detail is either plain text or the dict built by to_http_exception()."""
    if isinstance(detail, dict):
        code = detail.get("code")
        message = detail.get("message") or detail.get("detail")
        return problem_body(
            request,
            status,
            detail=message if isinstance(message, str) else None,
            code=code if isinstance(code, str) else None,
            errors=detail.get("details") or detail.get("errors"),
        )
    return problem_body(request, status, detail=None if detail is None else str(detail))


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def on_domain_error(request: Request, exc: DomainException) -> JSONResponse:
        http_exc = exc.to_http_exception()
        return JSONResponse(
            _from_http_detail(request, http_exc.status_code, http_exc.detail),
            status_code=http_exc.status_code,
        )

    # fastapi.HTTPException subclasses the starlette one, so this covers both
    @app.exception_handler(StarletteHTTPException)
    async def on_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            _from_http_detail(request, exc.status_code, exc.detail),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    @app.exception_handler(ValidationError)
    async def on_validation_error(request: Request, exc: Any) -> JSONResponse:
        return JSONResponse(
            problem_body(
                request,
                422,
                detail="Request validation failed",
                code="validation_error",
                errors=exc.errors(),
            ),
            status_code=422,
        )

    @app.exception_handler(Exception)
    async def on_unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            problem_body(request, 500, detail="Internal Server Error", code="internal_server_error"),
            status_code=500,
        )
