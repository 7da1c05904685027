"""
Error codes returned in `libs.result.Error` values and rendered to clients.
"""

from enum import Enum


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    EXPIRED = "EXPIRED"
    REPLAY_DETECTED = "REPLAY_DETECTED"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    INVALID_SESSION = "INVALID_SESSION"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_CLIENT = "INVALID_CLIENT"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ConfigurationError(Exception):
    """Raised at startup for unusable configuration (missing or weak secrets, bad limits)."""
