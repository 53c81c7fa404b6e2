from __future__ import annotations


class OpsHubError(Exception):
    """Base class for errors raised by the OpsHub core."""

    retryable = False


class ValidationError(OpsHubError):
    """Raised for malformed input, e.g. an empty required code."""


class NotFoundError(OpsHubError):
    """Raised when a referenced id or code does not exist."""

    def __init__(self, resource: str, key: object) -> None:
        self.resource = resource
        self.key = key
        super().__init__(f"{resource} not found: {key}")


class DataIntegrityError(OpsHubError):
    """Raised when stored data violates a core invariant.

    Covers a customer with more than one active allocation and a broken
    area -> zone -> circle -> cluster chain where a complete chain is required.
    These are never repaired automatically.
    """


class ConflictError(OpsHubError):
    """Raised when a concurrent writer changed the state an operation was based on."""

    retryable = True


class CryptoError(OpsHubError):
    """Raised when PII cannot be encrypted or decrypted.

    The message is always generic; the underlying cause is only chained.
    """


class AccessDeniedError(OpsHubError):
    """Raised when the acting user is outside the scope or rank a decision requires."""

    def __init__(self, resource: str, reason: str) -> None:
        self.resource = resource
        self.reason = reason
        super().__init__(f"Access denied to {resource}: {reason}")
