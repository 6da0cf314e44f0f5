from __future__ import annotations

from typing import Any

import structlog
from fastapi import HTTPException, Request

from talent_core.referrals.errors import (
    ERROR_CATEGORY_CONFLICT,
    ERROR_CATEGORY_NOT_FOUND,
    ERROR_CATEGORY_VALIDATION,
)
from talent_core.services.internal_auth import (
    extract_client_ip,
    is_client_ip_allowed,
    is_internal_request_authenticated,
)

logger = structlog.get_logger(__name__)

CATEGORY_STATUS_CODES = {
    ERROR_CATEGORY_VALIDATION: 422,
    ERROR_CATEGORY_NOT_FOUND: 404,
    ERROR_CATEGORY_CONFLICT: 409,
}
FATAL_STATUS_CODE = 503


def assert_internal_access(request: Request, *, settings: Any, area: str) -> None:
    client_ip = extract_client_ip(
        request,
        trusted_proxies=getattr(settings, "internal_api_trusted_proxies", ""),
    )

    if not is_client_ip_allowed(client_ip=client_ip, allowlist=settings.internal_api_allowlist):
        logger.warning(f"internal_{area}_auth_failed", reason="ip_not_allowed", client_ip=client_ip)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})

    if not is_internal_request_authenticated(
        request,
        expected_token=settings.internal_api_token,
    ):
        logger.warning(
            f"internal_{area}_auth_failed",
            reason="invalid_credentials",
            client_ip=client_ip,
        )
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})


def as_http_exception(exc: Exception) -> HTTPException:
    """Maps a domain error to its HTTP status through the error's category."""
    category = getattr(exc, "category", None)
    code = getattr(exc, "code", "E_INTERNAL")
    status_code = CATEGORY_STATUS_CODES.get(category, FATAL_STATUS_CODE)
    return HTTPException(status_code=status_code, detail={"code": code})
