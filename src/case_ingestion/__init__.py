# ============================================================================
# src/case_ingestion/__init__.py
# ============================================================================
"""
HL7 v2 ORU_R01 case notification -> FHIR R4 conversion.
"""

from .converter import CaseConverter, CaseReport, EcrConverter, load_message
from .hl7v2 import parse_message

__version__ = "0.1.0"

__all__ = [
    "CaseConverter",
    "CaseReport",
    "EcrConverter",
    "load_message",
    "parse_message",
]
