# src/case_ingestion/hl7v2/__init__.py

from .adapter import (
    Component,
    Field,
    Segment,
    ParsedMessage,
    parse_message,
    normalize_segment_terminators,
)

__all__ = [
    "Component",
    "Field",
    "Segment",
    "ParsedMessage",
    "parse_message",
    "normalize_segment_terminators",
]
