"""
apps/api/onchain_agent/core/exceptions.py
Custom exceptions for the API service
"""

from typing import Optional


class AgentServiceException(Exception):
    """Base exception for all API service errors"""

    # Process exit status when this error ends a run
    exit_code: int = 1

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[dict] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert exception to dictionary for logging/response"""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }


# ============================================================================
# Configuration Exceptions
# ============================================================================

class ConfigurationError(AgentServiceException):
    """Required configuration is missing or invalid"""

    def __init__(self, key: str, reason: str):
        super().__init__(
            message=f"Invalid configuration '{key}': {reason}",
            error_code="INVALID_CONFIGURATION",
            details={"key": key, "reason": reason}
        )


# ============================================================================
# Storage Exceptions
# ============================================================================

class StorageConnectionError(AgentServiceException):
    """Could not connect to the document database"""

    def __init__(self, reason: str):
        super().__init__(
            message=f"MongoDB connection error: {reason}",
            error_code="STORAGE_CONNECTION_FAILED",
            details={"reason": reason}
        )


class StorageCloseError(AgentServiceException):
    """Closing the database connection failed"""

    def __init__(self, reason: str):
        super().__init__(
            message=f"Error closing MongoDB connection: {reason}",
            error_code="STORAGE_CLOSE_FAILED",
            details={"reason": reason}
        )


class StrictQueryError(AgentServiceException):
    """Query filter uses an operator rejected by strict query validation"""

    def __init__(self, operator: str):
        super().__init__(
            message=f"Unsupported query operator '{operator}'",
            error_code="STRICT_QUERY_VIOLATION",
            details={"operator": operator}
        )


# ============================================================================
# Listener Exceptions
# ============================================================================

class ListenerBindError(AgentServiceException):
    """HTTP listener could not bind or never started accepting connections"""

    def __init__(self, host: str, port: int, reason: str):
        super().__init__(
            message=f"Could not listen on {host}:{port}: {reason}",
            error_code="LISTENER_BIND_FAILED",
            details={"host": host, "port": port, "reason": reason}
        )


__all__ = [
    "AgentServiceException",
    "ConfigurationError",
    "StorageConnectionError",
    "StorageCloseError",
    "StrictQueryError",
    "ListenerBindError",
]
