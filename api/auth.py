"""
Access-control gate for the FastAPI routes.

Dependencies resolve the bearer token into an Identity before any handler
body runs; role-gated routes add require_role() on top. Missing or invalid
credentials fail with 401, a valid credential with the wrong role with 403.
"""

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.config import CatalogConfig
from core.errors import AuthenticationError, AuthorizationError
from core.security import Identity, verify_token

logger = structlog.get_logger(__name__)

# Security scheme; missing headers are reported by get_current_identity
security = HTTPBearer(auto_error=False)


def get_config(request: Request) -> CatalogConfig:
    """FastAPI dependency for the application config."""
    return request.app.state.config


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    config: CatalogConfig = Depends(get_config),
) -> Identity:
    """
    Verify the bearer token from the request.

    Returns:
        Identity carried by the token

    Raises:
        AuthenticationError: If the token is missing, forged or expired
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")

    try:
        return verify_token(credentials.credentials, config.auth.secret)
    except AuthenticationError:
        logger.warning("Rejected bearer token", token_prefix=credentials.credentials[:8])
        raise


def require_role(role: str):
    """Build a dependency that admits only identities with ``role``."""

    async def dependency(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role != role:
            logger.warning(
                "Role check failed", user_id=identity.user_id, role=identity.role, required=role
            )
            raise AuthorizationError("Insufficient permissions")
        return identity

    return dependency


require_admin = require_role("admin")
