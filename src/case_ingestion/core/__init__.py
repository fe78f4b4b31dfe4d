# src/case_ingestion/core/__init__.py

from .extraction import CodedTriplet, TripletGroup, ObxExtractor, decode_triplet
from .datetime_normalizer import HL7Timestamp, parse_hl7_date, parse_hl7_datetime
from .identifiers import IdentifierSource, UuidIdentifierSource, SequentialIdentifierSource
from .code_systems import CodeSystemCanonicalizer
from .issues import ConversionIssue, IssueKind

__all__ = [
    "CodedTriplet",
    "TripletGroup",
    "ObxExtractor",
    "decode_triplet",
    "HL7Timestamp",
    "parse_hl7_date",
    "parse_hl7_datetime",
    "IdentifierSource",
    "UuidIdentifierSource",
    "SequentialIdentifierSource",
    "CodeSystemCanonicalizer",
    "ConversionIssue",
    "IssueKind",
]
