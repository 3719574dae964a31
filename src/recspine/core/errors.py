"""
Structured error types for rec-spine.

Every failure the identity, gate, classification and reconciliation layers
can raise is a typed ``RecSpineError``. Each error carries:

- **kind:** Stable error-kind name recorded in run summaries
  (``MalformedIdentifier``, ``LookupUnavailable``, ...)
- **category:** Which layer produced it, for log routing
- **retryable:** Whether the retry wrapper may try the call again
- **context:** Structured metadata (identifier, encoding, attempt counts)
- **cause:** The chained underlying exception

Manifesto:
    - **Never guessed:** Structurally invalid identifiers are surfaced,
      never coerced into something that looks valid
    - **Fail one, not all:** Codec and fingerprint errors fail only the
      recording that produced them
    - **Typed retry semantics:** The retry wrapper asks the error, not a
      string match, whether another attempt is allowed

Architecture:
    ::

        RecSpineError (kind, category, retryable, context, cause)
        ├── IdentityError
        │   ├── MalformedIdentifierError     kind=MalformedIdentifier
        │   └── UnknownEncodingError         kind=UnknownEncoding
        ├── InvalidFingerprintInputError     kind=InvalidFingerprintInput
        ├── LookupUnavailableError           kind=LookupUnavailable (retryable)
        ├── ClassificationIncompleteError    kind=ClassificationIncomplete
        └── ConfigError
            └── InvalidConfigError

Examples:
    >>> err = MalformedIdentifierError("decoded to 4 bytes").with_context(
    ...     identifier="abc123==", encoding="compact")
    >>> err.kind
    'MalformedIdentifier'
    >>> err.retryable
    False

Tags:
    error-handling, exception-hierarchy, retry-logic, error-context, rec-spine
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Layer that produced an error, used for routing and summaries."""

    IDENTITY = "IDENTITY"
    FINGERPRINT = "FINGERPRINT"
    LOOKUP = "LOOKUP"
    CLASSIFICATION = "CLASSIFICATION"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a RecSpineError.

    Attributes:
        identifier: Identifier text involved in the failure
        encoding: Declared or inferred identifier encoding
        fingerprint: Fingerprint involved in the failure
        operation: Logical operation (``lookup.find_by_identity``, ...)
        attempts: Number of attempts made before giving up
        metadata: Additional key-value pairs
    """

    identifier: str | None = None
    encoding: str | None = None
    fingerprint: str | None = None
    operation: str | None = None
    attempts: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["identifier", "encoding", "fingerprint", "operation", "attempts"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RecSpineError(Exception):
    """
    Base exception for all rec-spine errors.

    Subclasses set ``kind``, ``default_category`` and ``default_retryable``
    so callers rarely pass them explicitly.

    Examples:
        >>> error = RecSpineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["kind"]
        'RecSpineError'
    """

    kind: str = "RecSpineError"
    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RecSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise UnknownEncodingError("no match").with_context(identifier=text)
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logging and run summaries."""
        result = {
            "kind": self.kind,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context = self.context.to_dict()
        if context:
            result["context"] = context
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, kind={self.kind!r})"


# =============================================================================
# IDENTITY / FINGERPRINT
# =============================================================================


class IdentityError(RecSpineError):
    """Identifier text that cannot be turned into a canonical identity."""

    kind = "IdentityError"
    default_category = ErrorCategory.IDENTITY


class MalformedIdentifierError(IdentityError):
    """Identifier does not decode to exactly 16 bytes in its encoding."""

    kind = "MalformedIdentifier"


class UnknownEncodingError(IdentityError):
    """Identifier text matches none of the known encodings."""

    kind = "UnknownEncoding"


class InvalidFingerprintInputError(RecSpineError):
    """Meeting id or start timestamp unusable for fingerprinting."""

    kind = "InvalidFingerprintInput"
    default_category = ErrorCategory.FINGERPRINT


# =============================================================================
# LOOKUP
# =============================================================================


class LookupUnavailableError(RecSpineError):
    """
    The archive lookup could not be consulted.

    Raised by the retry wrapper once attempts are exhausted. Duplication is
    undetermined when this is raised; the gate must not treat it as a miss.
    """

    kind = "LookupUnavailable"
    default_category = ErrorCategory.LOOKUP
    default_retryable = True


# =============================================================================
# CLASSIFICATION
# =============================================================================


class ClassificationIncompleteError(RecSpineError):
    """
    A field the rule table consults is absent.

    The classifier degrades to the most conservative rule by default and
    raises this only when asked to classify strictly.
    """

    kind = "ClassificationIncomplete"
    default_category = ErrorCategory.CLASSIFICATION

    def __init__(self, missing_fields: list[str], message: str | None = None, **kwargs: Any):
        super().__init__(message or f"Missing fields: {', '.join(missing_fields)}", **kwargs)
        self.missing_fields = list(missing_fields)


# =============================================================================
# CONFIG
# =============================================================================


class ConfigError(RecSpineError):
    """Configuration error."""

    kind = "ConfigError"
    default_category = ErrorCategory.CONFIG


class InvalidConfigError(ConfigError):
    """Invalid configuration value."""

    kind = "InvalidConfig"

    def __init__(self, key: str, value: Any, message: str | None = None):
        super().__init__(message or f"Invalid configuration value for {key}: {value!r}")
        self.with_context(config_key=key, config_value=str(value))


# =============================================================================
# UTILITIES
# =============================================================================

# Builtin exceptions that indicate transient infrastructure trouble.
_TRANSIENT_BUILTINS: tuple[type[BaseException], ...] = (
    ConnectionError,
    TimeoutError,
)


def is_retryable(error: BaseException) -> bool:
    """Check if an error is retryable.

    RecSpineError answers for itself; builtin connection and timeout errors
    are retryable; everything else is fatal.
    """
    if isinstance(error, RecSpineError):
        return error.retryable
    return isinstance(error, _TRANSIENT_BUILTINS)


def error_kind(error: BaseException) -> str:
    """Stable kind name for run summaries."""
    if isinstance(error, RecSpineError):
        return error.kind
    return type(error).__name__


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RecSpineError",
    "IdentityError",
    "MalformedIdentifierError",
    "UnknownEncodingError",
    "InvalidFingerprintInputError",
    "LookupUnavailableError",
    "ClassificationIncompleteError",
    "ConfigError",
    "InvalidConfigError",
    "is_retryable",
    "error_kind",
]
