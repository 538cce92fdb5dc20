"""
Authentication utilities
"""
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from guestglow.config import get_settings
from guestglow.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False, description="Bearer credential")


async def verify_api_key(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Optional[str]:
    """
    Verify the bearer credential against ALLOWED_API_KEYS

    When no keys are configured the check is bypassed outside production,
    with a warning on every request.

    Returns:
        The presented credential (None when bypassed without one)

    Raises:
        HTTPException 401: missing or unknown credential
    """
    token = credentials.credentials if credentials else None
    allowed_keys = settings.allowed_api_key_list

    if not allowed_keys:
        if settings.fastapi_env == "production":
            logger.error("ALLOWED_API_KEYS not configured in production, rejecting request")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="API authentication is not configured"
            )
        logger.warning(
            "ALLOWED_API_KEYS not configured. "
            "API key validation is bypassed for development."
        )
        return token

    if not token:
        logger.warning("Missing bearer credential in request")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing credentials. Provide an Authorization: Bearer header.",
            headers={"WWW-Authenticate": "Bearer"}
        )

    if not any(secrets.compare_digest(token, key) for key in allowed_keys):
        logger.warning(f"Invalid API key attempt: {token[:8]}...")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "Bearer"}
        )

    logger.debug("API key verified")
    return token

