"""
Request logging middleware and audit/security loggers.
"""

import time
import uuid
from typing import Any, Dict, Optional

from fastapi import Request
import structlog

logger = structlog.get_logger(__name__)


async def logging_middleware(request: Request, call_next):
    """Request/response logging middleware."""

    # Reuse the caller's request ID when provided
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())

    # Add request ID to request state
    request.state.request_id = request_id

    # Start timing
    start_time = time.time()

    # Extract request information
    request_info = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "client_ip": request.client.host if request.client else "unknown",
        "user_agent": request.headers.get("user-agent", "unknown"),
    }

    logger.info("Request started", **request_info)

    try:
        response = await call_next(request)

        processing_time = time.time() - start_time

        response_info = {
            "status_code": response.status_code,
            "processing_time_ms": round(processing_time * 1000, 2),
        }

        # Set by get_current_caregiver on authenticated routes
        user_info = getattr(request.state, "user", None)
        if user_info:
            response_info["caregiver_id"] = user_info.get("caregiver_id")
            response_info["auth_method"] = user_info.get("auth_method")

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Processing-Time"] = f"{processing_time:.3f}s"

        if response.status_code >= 400:
            logger.warning(
                "Request completed with error", **{**request_info, **response_info}
            )
        else:
            logger.info(
                "Request completed successfully", **{**request_info, **response_info}
            )

        return response

    except Exception as e:
        processing_time = time.time() - start_time

        logger.error(
            "Request failed with exception",
            **{
                **request_info,
                "processing_time_ms": round(processing_time * 1000, 2),
                "error": str(e),
                "error_type": type(e).__name__,
            },
        )

        raise


def _client_context(request: Request) -> Dict[str, Any]:
    return {
        "request_id": getattr(request.state, "request_id", "unknown"),
        "ip_address": request.client.host if request.client else "unknown",
        "user_agent": request.headers.get("user-agent", "unknown"),
    }


class AuditLogger:
    """Audit logger for important operations."""

    def __init__(self):
        self.audit_logger = structlog.get_logger("audit")

    def log_user_action(
        self,
        request: Request,
        action: str,
        caregiver_id: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Log caregiver action for audit trail."""

        self.audit_logger.info(
            "User action",
            action=action,
            caregiver_id=caregiver_id,
            endpoint=request.url.path,
            method=request.method,
            details=details or {},
            **_client_context(request),
        )

    def log_authentication(
        self,
        request: Request,
        auth_type: str,
        caregiver_id: Optional[str] = None,
        email: Optional[str] = None,
        success: bool = True,
        failure_reason: Optional[str] = None,
    ):
        """Log authentication attempts."""

        auth_entry = {
            "auth_type": auth_type,
            "caregiver_id": caregiver_id,
            "email": email,
            "success": success,
            "failure_reason": failure_reason,
            **_client_context(request),
        }

        if success:
            self.audit_logger.info("Authentication successful", **auth_entry)
        else:
            self.audit_logger.warning("Authentication failed", **auth_entry)


# Global audit logger instance
audit_logger = AuditLogger()


class SecurityLogger:
    """Security-focused logging for suspicious activities."""

    def __init__(self):
        self.security_logger = structlog.get_logger("security")

    def log_suspicious_activity(
        self,
        request: Request,
        activity_type: str,
        severity: str = "medium",
        details: Optional[Dict[str, Any]] = None,
    ):
        """Log suspicious activity."""

        security_entry = {
            "activity_type": activity_type,
            "severity": severity,
            "endpoint": request.url.path,
            "method": request.method,
            "details": details or {},
            **_client_context(request),
        }

        if severity == "high":
            self.security_logger.error("High severity security event", **security_entry)
        elif severity == "medium":
            self.security_logger.warning(
                "Medium severity security event", **security_entry
            )
        else:
            self.security_logger.info("Low severity security event", **security_entry)

    def log_authentication_failure(
        self,
        request: Request,
        failure_type: str,
        attempted_user: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Log authentication failures."""

        self.log_suspicious_activity(
            request,
            activity_type="authentication_failure",
            severity="medium",
            details={
                "failure_type": failure_type,
                "attempted_user": attempted_user,
                **(details or {}),
            },
        )


# Global security logger instance
security_logger = SecurityLogger()
