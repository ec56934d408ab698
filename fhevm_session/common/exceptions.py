"""
Custom exceptions for the fhEVM session client.
"""

from __future__ import annotations


class FhevmError(Exception):
    """Base exception for fhEVM operations."""


class InitializationError(FhevmError):
    """The crypto engine could not be loaded."""


class EncryptionError(FhevmError):
    """Validation or engine failure during encryption."""


class DecryptionError(FhevmError):
    """Decryption failure (bad handle, gateway error)."""


class SignatureError(FhevmError):
    """The signer rejected or failed to produce a typed-data signature."""


class AuthorizationError(FhevmError):
    """An operation requiring a signer was called without one."""


class ValidationError(FhevmError, ValueError):
    """Exception for validation failures."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


class RangeError(ValidationError):
    """Value is well-formed but outside the range of its data kind."""


class FormatError(ValidationError):
    """Value has the wrong shape for its data kind."""
