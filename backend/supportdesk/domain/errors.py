"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# Configuration Errors (missing credentials - never retried, never fall back)
class ConfigurationError(DomainError):
    """Required provider credentials or settings are missing"""
    error_code = "CONFIGURATION_ERROR"
    http_status = 500


class EmailConfigurationError(ConfigurationError):
    """Email provider not configured"""
    error_code = "EMAIL_NOT_CONFIGURED"


class StorageConfigurationError(ConfigurationError):
    """Object storage backend not configured"""
    error_code = "STORAGE_NOT_CONFIGURED"


# Authentication Errors
class AuthenticationError(DomainError):
    """Provider rejected the credentials (HTTP 401 / SMTP auth failure)"""
    error_code = "AUTHENTICATION_ERROR"
    http_status = 401


# Transient Network Errors (eligible for manual retry)
class TransientNetworkError(DomainError):
    """Network level failure talking to an external service"""
    error_code = "TRANSIENT_NETWORK_ERROR"
    http_status = 503


class ConnectionFailureError(TransientNetworkError):
    """Host unreachable or connection refused"""
    error_code = "CONNECTION_FAILED"


class ConnectionTimeoutError(TransientNetworkError):
    """Connection or handshake timed out"""
    error_code = "CONNECTION_TIMEOUT"


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


class RuleValidationError(ValidationError):
    """Automation rule definition is malformed"""
    error_code = "RULE_VALIDATION_ERROR"


class InvalidObjectPathError(ValidationError):
    """Object path is empty, absolute or escapes the storage root"""
    error_code = "INVALID_OBJECT_PATH"


class ChannelStateError(ValidationError):
    """Channel status transition not allowed"""
    error_code = "INVALID_CHANNEL_TRANSITION"


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class ObjectNotFoundError(NotFoundError):
    """Storage object not found"""
    error_code = "OBJECT_NOT_FOUND"


class ChannelNotFoundError(NotFoundError):
    """Channel configuration not found"""
    error_code = "CHANNEL_NOT_FOUND"


class RuleNotFoundError(NotFoundError):
    """Automation rule not found"""
    error_code = "RULE_NOT_FOUND"


# External Service Errors
class ExternalServiceError(DomainError):
    """External service failure"""
    error_code = "EXTERNAL_SERVICE_ERROR"
    http_status = 502


class EmailSendError(ExternalServiceError):
    """Email sending failed"""
    error_code = "EMAIL_SEND_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details=details)
        self.status_code = status_code


class StorageError(ExternalServiceError):
    """Object storage backend failure"""
    error_code = "STORAGE_ERROR"
