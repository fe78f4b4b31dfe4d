# src/case_ingestion/fhir_utils/__init__.py

from .observation import (
    ObxDataType,
    ObservationValueDispatcher,
    DispatchResult,
    DispatchOutcome,
    QuantityValue,
    DecimalValue,
    DateTimeValue,
    CodedConceptValue,
    TextValue,
    ObservationAssembler,
    ObservationBundle,
)
from .performer import PerformerAssembler
from .patient import PatientAssembler, redact
from .case import Case, CaseAssembler
from .condition import ConditionAssembler
from .specimen import SpecimenAssembler
from .document import EcrDocument, EcrDocumentAssembler
from .validator import FHIRValidator

__all__ = [
    "ObxDataType",
    "ObservationValueDispatcher",
    "DispatchResult",
    "DispatchOutcome",
    "QuantityValue",
    "DecimalValue",
    "DateTimeValue",
    "CodedConceptValue",
    "TextValue",
    "ObservationAssembler",
    "ObservationBundle",
    "PerformerAssembler",
    "PatientAssembler",
    "redact",
    "Case",
    "CaseAssembler",
    "ConditionAssembler",
    "SpecimenAssembler",
    "EcrDocument",
    "EcrDocumentAssembler",
    "FHIRValidator",
]
