# ============================================================================
# src/case_ingestion/utils/__init__.py
# ============================================================================
"""
Utility modules for the case ingestion engine.
"""

from .exceptions import (
    CaseIngestionError,
    MessageParseError,
    UnsupportedMessageError,
    StructuralError,
    MissingSegmentError,
    ShortSegmentError,
    GroupKeyError,
    FHIRConversionError,
    ConfigurationError,
)

from .logging import (
    setup_logging,
    get_logger,
    JsonFormatter,
    log_performance,
)

__all__ = [
    # Exceptions
    'CaseIngestionError',
    'MessageParseError',
    'UnsupportedMessageError',
    'StructuralError',
    'MissingSegmentError',
    'ShortSegmentError',
    'GroupKeyError',
    'FHIRConversionError',
    'ConfigurationError',
    # Logging
    'setup_logging',
    'get_logger',
    'JsonFormatter',
    'log_performance',
]
