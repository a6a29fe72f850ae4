"""
Exception types and error classification for the document pipeline.

Provides:
- ErrorCategory enum for retry and routing decisions
- Typed exception hierarchy for pipeline errors
- Classification utilities for botocore and generic exceptions
"""

from enum import Enum
from typing import Optional

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures that should succeed on redelivery
                   (e.g., throttling, 5xx, network timeouts)
        AUTH: Credential or permission failures
              (e.g., expired token, AccessDenied)
        PERMANENT: Failures that won't succeed on retry
                   (e.g., missing object, unsupported document, bad config)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class PipelineError(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error description
        category: Error classification (class default, overridable per instance)
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        context: Optional[dict] = None,
        category: Optional[ErrorCategory] = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        if category is not None:
            self.category = category
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether redelivery could plausibly succeed."""
        return self.category in (
            ErrorCategory.TRANSIENT,
            ErrorCategory.AUTH,
            ErrorCategory.UNKNOWN,
        )

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Permanent Errors
# =============================================================================


class PermanentError(PipelineError):
    """Base class for permanent/non-retriable errors."""

    category = ErrorCategory.PERMANENT


class ValidationError(PermanentError):
    """Data validation failed."""

    pass


class ConfigurationError(PermanentError):
    """Invalid or missing configuration. Fatal at startup."""

    pass


# =============================================================================
# Domain Errors
# =============================================================================


class DocumentFetchError(PipelineError):
    """Referenced document could not be read from blob storage."""

    pass


class ExtractionError(PipelineError):
    """Text extraction failed or the document was rejected."""

    pass


class ScoringError(PipelineError):
    """Sentiment scoring failed or the text was rejected."""

    pass


class PersistenceError(PipelineError):
    """Result record could not be written."""

    pass


class SeedError(PipelineError):
    """Bootstrap seeding failed; the lifecycle transition must fail."""

    category = ErrorCategory.PERMANENT


class ComplianceError(PipelineError):
    """Resource graph violates a compliance rule; provisioning is blocked."""

    category = ErrorCategory.PERMANENT

    def __init__(self, violations: list, context: Optional[dict] = None):
        self.violations = list(violations)
        summary = "; ".join(self.violations)
        super().__init__(
            f"{len(self.violations)} compliance violation(s): {summary}",
            context=context,
        )


# =============================================================================
# Error Classification Utilities
# =============================================================================

THROTTLING_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "TooManyRequestsException",
        "RequestLimitExceeded",
        "ProvisionedThroughputExceededException",
        "ProvisionedThroughputExceeded",
        "RequestThrottled",
        "SlowDown",
    }
)

UNAVAILABLE_CODES = frozenset(
    {
        "InternalError",
        "InternalFailure",
        "InternalServerError",
        "InternalServerException",
        "ServiceUnavailable",
        "ServiceUnavailableException",
        "RequestTimeout",
        "RequestTimeoutException",
    }
)

AUTH_CODES = frozenset(
    {
        "AccessDenied",
        "AccessDeniedException",
        "ExpiredToken",
        "ExpiredTokenException",
        "InvalidClientTokenId",
        "UnrecognizedClientException",
        "InvalidSignatureException",
        "SignatureDoesNotMatch",
    }
)

PERMANENT_CODES = frozenset(
    {
        "NoSuchKey",
        "NoSuchBucket",
        "NotFound",
        "ResourceNotFoundException",
        "InvalidParameterException",
        "InvalidParameterValue",
        "ValidationException",
        "UnsupportedDocumentException",
        "BadDocumentException",
        "DocumentTooLargeException",
        "TextSizeLimitExceededException",
        "UnsupportedLanguageException",
        "AWS.SimpleQueueService.NonExistentQueue",
        "QueueDoesNotExist",
    }
)


def classify_client_error(exc: ClientError) -> ErrorCategory:
    """
    Classify a botocore ClientError by its AWS error code and HTTP status.

    Args:
        exc: ClientError raised by a boto3 client

    Returns:
        Appropriate ErrorCategory
    """
    error = exc.response.get("Error", {})
    code = error.get("Code", "")
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")

    if code in THROTTLING_CODES or code in UNAVAILABLE_CODES:
        return ErrorCategory.TRANSIENT
    if code in AUTH_CODES:
        return ErrorCategory.AUTH
    if code in PERMANENT_CODES:
        return ErrorCategory.PERMANENT

    if status is not None:
        if status == 429 or status >= 500:
            return ErrorCategory.TRANSIENT
        if status in (401, 403):
            return ErrorCategory.AUTH
        if 400 <= status < 500:
            return ErrorCategory.PERMANENT

    return ErrorCategory.UNKNOWN


def classify_exception(exc: Exception) -> ErrorCategory:
    """
    Classify an exception into error category.

    Args:
        exc: Exception to classify

    Returns:
        Appropriate ErrorCategory
    """
    # Already classified
    if isinstance(exc, PipelineError):
        return exc.category

    if isinstance(exc, ClientError):
        return classify_client_error(exc)

    if isinstance(
        exc, (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError)
    ):
        return ErrorCategory.TRANSIENT

    if isinstance(exc, BotoCoreError):
        if "credentials" in str(exc).lower():
            return ErrorCategory.AUTH
        return ErrorCategory.UNKNOWN

    exc_type = type(exc).__name__.lower()
    exc_str = str(exc).lower()

    connection_markers = (
        "connectionerror",
        "connection refused",
        "connection reset",
        "connection aborted",
        "network unreachable",
        "name resolution",
        "broken pipe",
    )
    if any(m in exc_type or m in exc_str for m in connection_markers):
        return ErrorCategory.TRANSIENT

    if "timeout" in exc_type or "timeout" in exc_str:
        return ErrorCategory.TRANSIENT

    if "throttl" in exc_str or "rate exceeded" in exc_str:
        return ErrorCategory.TRANSIENT

    if "access denied" in exc_str or "expired token" in exc_str:
        return ErrorCategory.AUTH

    return ErrorCategory.UNKNOWN


def wrap_exception(
    exc: Exception,
    default_class: type = PipelineError,
    message: Optional[str] = None,
    context: Optional[dict] = None,
) -> PipelineError:
    """
    Wrap a raw exception in a PipelineError subclass with its classified category.

    Already-typed PipelineErrors pass through with the extra context merged in.

    Args:
        exc: Exception to wrap
        default_class: Domain error class to wrap with (e.g. ExtractionError)
        message: Override message (default: str(exc))
        context: Additional context to include

    Returns:
        PipelineError instance
    """
    if isinstance(exc, PipelineError):
        if context:
            exc.context.update(context)
        return exc

    return default_class(
        message or str(exc),
        cause=exc,
        context=context,
        category=classify_exception(exc),
    )
