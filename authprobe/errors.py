"""Structured error taxonomy for authprobe."""
#
# PURPOSE:
# Provides error codes and typed exceptions so every failure the prober can
# hit is searchable, serialisable, and handled at a predictable layer.
#
# ERROR CODE FORMAT:
# - CONFIG_XXX: Configuration / probe triple errors (fatal before network I/O)
# - ARN_XXX: Malformed resource identifiers supplied at startup
# - TRANSPORT_XXX: Per-request network failures (recovered per mutation)
# - CREDENTIALS_XXX: Credential loading / verification / role assumption
# - MUTATION_XXX: Mutation catalog invariant violations
# - SYSTEM_XXX: Everything else
#
# USAGE:
#   from authprobe.errors import ProbeError, ErrorCode
#
#   raise ProbeError(
#       ErrorCode.CONFIG_MISSING_REQUIRED,
#       "Request mutations mode requires a denied topic ARN",
#       details={"missing": "denied"}
#   )
#
import json
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    # Config Errors
    CONFIG_INVALID = "CONFIG_001"
    CONFIG_MISSING_REQUIRED = "CONFIG_002"
    CONFIG_INCOMPLETE_TRIPLE = "CONFIG_003"

    # ARN Errors
    ARN_EMPTY = "ARN_001"
    ARN_MALFORMED = "ARN_002"
    ARN_WRONG_SERVICE = "ARN_003"
    ARN_MISSING_COMPONENT = "ARN_004"

    # Transport Errors
    TRANSPORT_TIMEOUT = "TRANSPORT_001"
    TRANSPORT_CONNECTION_FAILED = "TRANSPORT_002"
    TRANSPORT_PROTOCOL_ERROR = "TRANSPORT_003"

    # Credential Errors
    CREDENTIALS_MISSING = "CREDENTIALS_001"
    CREDENTIALS_EXPIRED = "CREDENTIALS_002"
    CREDENTIALS_VERIFICATION_FAILED = "CREDENTIALS_003"
    CREDENTIALS_ASSUME_ROLE_FAILED = "CREDENTIALS_004"

    # Mutation Errors
    MUTATION_ALTERED_RESOURCE = "MUTATION_001"

    # System Errors
    SYSTEM_INTERNAL_ERROR = "SYSTEM_001"


class ProbeError(Exception):
    """
    Base exception class for authprobe with structured error information.

    Attributes:
        code: ErrorCode enum value (e.g., "CONFIG_002")
        message: Human-readable error message
        details: Optional dictionary with additional context
    """

    default_code: ErrorCode = ErrorCode.SYSTEM_INTERNAL_ERROR

    def __init__(
        self,
        code: Optional[ErrorCode] = None,
        message: str = "",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code or self.default_code
        self.message = message
        self.details = details or {}

        # Keep the code in the rendered message for easy grepping
        super().__init__(f"[{self.code.value}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary for JSON serialization.

        Returns:
            Dictionary with code, message and details
        """
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }

    def to_json(self) -> str:
        """Serialize error to JSON string."""
        return json.dumps(self.to_dict(), default=str)


class ConfigurationError(ProbeError):
    """Raised when the run cannot start: bad settings or an incomplete probe triple."""

    default_code = ErrorCode.CONFIG_INVALID


class ArnParseError(ProbeError):
    """Raised when a resource identifier supplied at startup is malformed."""

    default_code = ErrorCode.ARN_MALFORMED

    def __init__(self, message: str, code: Optional[ErrorCode] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(code, message, details)


class TransportError(ProbeError):
    """Raised by a Transport when a single request fails at the network level."""

    default_code = ErrorCode.TRANSPORT_CONNECTION_FAILED


class CredentialsError(ProbeError):
    """Raised when credentials are missing, expired, or rejected."""

    default_code = ErrorCode.CREDENTIALS_MISSING


class MutationInvariantError(ProbeError):
    """Raised when a mutation rewrites the resource-identifying parameter."""

    default_code = ErrorCode.MUTATION_ALTERED_RESOURCE


__all__ = [
    "ErrorCode",
    "ProbeError",
    "ConfigurationError",
    "ArnParseError",
    "TransportError",
    "CredentialsError",
    "MutationInvariantError",
]
