# backend/app/routes/v1/_errors.py
"""Helpers shared by the v1 routers."""

from typing import NoReturn

from fastapi import HTTPException, status

from ...core.exceptions import DomainException

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
