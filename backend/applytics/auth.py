"""Shared-secret authentication for API requests."""
from __future__ import annotations

import hmac
import logging
import os
from typing import Optional

from fastapi import Header, HTTPException, status

logger = logging.getLogger(__name__)

APP_ID_HEADER = "X-App-ID"
API_KEY_HEADER = "X-API-Key"


def _get_env_setting(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise RuntimeError(f"{name} environment variable must be set to authenticate requests.")
    return value


def _get_expected_api_key() -> str:
    return _get_env_setting("APPLYTICS_API_KEY")


def _reject(reason: str) -> HTTPException:
    logger.info("Rejected request: %s", reason)
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"error": "Authentication failed", "details": reason},
    )


def verify_api_key(
    app_id: Optional[str] = Header(None, alias=APP_ID_HEADER),
    api_key: Optional[str] = Header(None, alias=API_KEY_HEADER),
) -> str:
    """Check the shared secret and return the caller's app id."""

    if not app_id:
        raise _reject("Missing app_id header")

    expected = _get_expected_api_key()
    if not api_key or not hmac.compare_digest(api_key.encode(), expected.encode()):
        raise _reject("Invalid API key")

    return app_id
