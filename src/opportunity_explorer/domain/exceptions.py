"""
Domain exceptions for the Opportunity Explorer.

Security errors carry their HTTP status and wire error code so the guard can
turn them into JSON responses without a lookup table.
"""

from typing import Optional


class DomainException(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ===========================================
# SECURITY POLICY ERRORS
# ===========================================


class SecurityError(DomainException):
    """A request failed one of the guard's policy gates."""

    status_code: int = 403
    code: str = "SECURITY_ERROR"

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, details=details)

    def to_body(self) -> dict:
        return {"error": self.code, "message": self.message}


class HttpsRequiredError(SecurityError):
    """Raised when a plain-http request reaches an HTTPS-only operation."""

    status_code = 403
    code = "HTTPS_REQUIRED"

    def __init__(self, message: str = "HTTPS required"):
        super().__init__(message)


class CorsViolationError(SecurityError):
    """Raised when the request origin is not in the allow-list."""

    status_code = 403
    code = "CORS_VIOLATION"

    def __init__(self, message: str = "CORS policy violation", origin: Optional[str] = None):
        super().__init__(message, details={"origin": origin} if origin else {})
        self.origin = origin


class RateLimitExceededError(SecurityError):
    """Raised when an IP or user exceeds its request quota."""

    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"

    def __init__(self, message: str = "Rate limit exceeded", scope: Optional[str] = None):
        super().__init__(message, details={"scope": scope} if scope else {})
        self.scope = scope


class AuthenticationRequiredError(SecurityError):
    """Raised when an operation requires a signed-in principal."""

    status_code = 401
    code = "AUTH_REQUIRED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class InsufficientPermissionsError(SecurityError):
    """Raised when the principal lacks the admin flag, a role or a permission."""

    status_code = 403
    code = "INSUFFICIENT_PERMISSIONS"

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message)


# ===========================================
# OTHER DOMAIN ERRORS
# ===========================================


class InvalidSessionError(DomainException):
    """Raised by identity providers when a session is invalid or expired."""

    def __init__(self, message: str = "Invalid session", code: Optional[str] = None):
        super().__init__(message, details={"code": code} if code else {})
        self.code = code


class OpportunityNotFoundError(DomainException):
    """Raised when a business opportunity cannot be found."""

    def __init__(self, opportunity_id: int):
        super().__init__(
            f"Business opportunity not found: {opportunity_id}",
            details={"opportunity_id": opportunity_id},
        )
        self.opportunity_id = opportunity_id


class ConfigurationError(DomainException):
    """Raised when there's an error in configuration."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(
            message,
            details={"config_key": config_key} if config_key else {},
        )
        self.config_key = config_key
