"""
Authentication dependency for protected endpoints.

Callers authenticate with either a Bearer access token or an ``X-API-Key``
header. A Bearer token wins when both are present.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
import structlog

from ..database import Caregiver
from ..dependencies import get_api_key_service, get_credential_service
from ..services import ApiKeyService, CredentialService, UnauthorizedError
from ..routes.errors import to_http_exception
from .logging import security_logger

# Configure structured logging
logger = structlog.get_logger(__name__)

# Security schemes; neither rejects on its own so the other can be tried
bearer_scheme = HTTPBearer(auto_error=False)
api_key_scheme = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_current_caregiver(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    api_key: Optional[str] = Depends(api_key_scheme),
    credential_service: CredentialService = Depends(get_credential_service),
    api_key_service: ApiKeyService = Depends(get_api_key_service),
) -> Caregiver:
    """
    Resolve the authenticated caregiver.

    Args:
        request: Incoming request, tagged with the caregiver for request logging
        credentials: Bearer token credentials, if sent
        api_key: API key header value, if sent

    Returns:
        Caregiver: The authenticated caregiver

    Raises:
        HTTPException: 401 if no valid credentials were presented
    """
    if credentials is not None:
        try:
            caregiver = credential_service.authenticate_access_token(
                credentials.credentials
            )
        except UnauthorizedError as e:
            security_logger.log_authentication_failure(
                request=request, failure_type=f"access_token_{e.details.get('reason', 'invalid')}"
            )
            raise to_http_exception(e)
        auth_method = "bearer"

    elif api_key:
        caregiver = api_key_service.validate(api_key)
        if caregiver is None:
            security_logger.log_authentication_failure(
                request=request, failure_type="invalid_api_key"
            )
            raise to_http_exception(UnauthorizedError("Invalid API key"))
        auth_method = "api_key"

    else:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "unauthorized", "message": "Not authenticated"},
            headers={"WWW-Authenticate": "Bearer"},
        )

    request.state.user = {"caregiver_id": str(caregiver.id), "auth_method": auth_method}

    return caregiver
