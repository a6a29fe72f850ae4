"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- PipelineError hierarchy for typed exceptions
- Classification utilities for error handling
"""

from core.errors.exceptions import (
    # Enums
    ErrorCategory,
    # Base classes
    PipelineError,
    PermanentError,
    # Permanent errors
    ValidationError,
    ConfigurationError,
    # Domain errors
    DocumentFetchError,
    ExtractionError,
    ScoringError,
    PersistenceError,
    SeedError,
    ComplianceError,
    # Classification utilities
    classify_client_error,
    classify_exception,
    wrap_exception,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "PipelineError",
    "PermanentError",
    # Permanent errors
    "ValidationError",
    "ConfigurationError",
    # Domain errors
    "DocumentFetchError",
    "ExtractionError",
    "ScoringError",
    "PersistenceError",
    "SeedError",
    "ComplianceError",
    # Classification utilities
    "classify_client_error",
    "classify_exception",
    "wrap_exception",
]
