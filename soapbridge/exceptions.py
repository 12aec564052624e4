"""
Core exceptions for soapbridge.

This module defines the exception hierarchy surfaced by the bridge. Every
failure a caller can observe is a BridgeError subclass carrying a stable
error code, so the ingress layer can map it to a status without string
matching.
"""

from typing import Any


class BridgeError(Exception):
    """Base exception for all bridge errors."""

    default_code = "BRIDGE_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary representation."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class ServiceNotFoundError(BridgeError):
    """Raised when no contract is registered under the requested service name."""

    default_code = "SERVICE_NOT_FOUND"


class OperationNotFoundError(BridgeError):
    """Raised when the service has no operation with the requested name."""

    default_code = "OPERATION_NOT_FOUND"


class NoMatchingOverloadError(BridgeError):
    """Raised when the request document matches none of the operation's overloads."""

    default_code = "NO_MATCHING_OVERLOAD"


class ArgumentBindingError(BridgeError):
    """Raised when a supplied field cannot be converted to its parameter type."""

    default_code = "ARGUMENT_BINDING_ERROR"


class ConfigurationError(BridgeError):
    """Raised when configuration is invalid or missing."""

    default_code = "CONFIGURATION_ERROR"


class RemoteFaultError(BridgeError):
    """Raised when the remote service answered with a SOAP fault."""

    default_code = "REMOTE_FAULT"


class TransportError(BridgeError):
    """Raised when the remote call failed for network or transport reasons."""

    default_code = "TRANSPORT_ERROR"
