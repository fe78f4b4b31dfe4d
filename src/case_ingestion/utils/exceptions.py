# ============================================================================
# src/case_ingestion/utils/exceptions.py
# ============================================================================
"""
Custom exceptions for the case notification ingestion engine.

Only structural problems are raised. Missing optional fields and lossy
decodes are reported as ConversionIssue records instead (see core/issues.py).
"""


class CaseIngestionError(Exception):
    """Base exception for all case ingestion errors."""
    pass


class MessageParseError(CaseIngestionError):
    """Raw text could not be parsed as an HL7 v2 message."""
    pass


class UnsupportedMessageError(CaseIngestionError):
    """Payload is not a single HL7 v2 message (batch file, FHIR JSON, ...)."""
    def __init__(self, message: str, content_format: str = "unknown"):
        super().__init__(message)
        self.content_format = content_format


class StructuralError(CaseIngestionError):
    """A segment required by the mapping is absent or truncated."""
    def __init__(self, message: str, segment: str):
        super().__init__(message)
        self.segment = segment


class MissingSegmentError(StructuralError):
    """Required segment not present in the message."""
    def __init__(self, segment: str):
        super().__init__(f"Message is missing required {segment} segment", segment)


class ShortSegmentError(StructuralError):
    """Segment has fewer fields than the mapping reads."""
    def __init__(self, segment: str, required: int, actual: int):
        super().__init__(
            f"{segment} segment requires at least {required} fields, found {actual}",
            segment,
        )
        self.required = required
        self.actual = actual


class GroupKeyError(CaseIngestionError):
    """OBX set id used as a group key is not an integer."""
    def __init__(self, code: str, key: str):
        super().__init__(f"Non-numeric group key {key!r} on OBX {code}")
        self.code = code
        self.key = key


class FHIRConversionError(CaseIngestionError):
    """Error converting to FHIR format."""
    pass


class ConfigurationError(CaseIngestionError):
    """Invalid configuration."""
    pass
