"""
Shared infrastructure for the document pipeline.

Subpackages:
    errors  - ErrorCategory, PipelineError hierarchy, botocore classification
    logging - Structured logging with context propagation
"""
