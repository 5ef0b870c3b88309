# backend/app/api/dependencies/auth.py
"""
Caller identity dependencies.

Authentication happens upstream: the gateway verifies the caller and forwards
its user id in the X-User-ID header. This service only reads that header and
never decides who may view or edit a calendar.
"""

import logging
from typing import Optional

from fastapi import Header, HTTPException, status

from ...core.constants import MAX_PARTICIPANT_ID_LENGTH

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-ID"


def get_current_user_id(x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER)) -> str:
    """Return the caller's user id or raise 401 when the header is missing."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        logger.debug("Rejected request without %s header", USER_ID_HEADER)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": f"Missing {USER_ID_HEADER} header", "code": "MISSING_USER_ID"},
        )
    if len(user_id) > MAX_PARTICIPANT_ID_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": f"{USER_ID_HEADER} is too long", "code": "INVALID_USER_ID"},
        )
    return user_id
