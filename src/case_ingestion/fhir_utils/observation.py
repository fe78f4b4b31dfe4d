# ============================================================================
# src/case_ingestion/fhir_utils/observation.py
# ============================================================================
"""
FHIR Observation resource builder for OBX segments.

Two parts:
- ObservationValueDispatcher: OBX-2 datatype tag -> typed ObservationValue
  (one handler per ObxDataType, plus an explicit UNHANDLED variant)
- ObservationAssembler: the rest of the OBX (code, status, body site,
  method, interpretation, reference range, effective time, performers)
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from fhir.resources.R4B.codeableconcept import CodeableConcept
from fhir.resources.R4B.coding import Coding
from fhir.resources.R4B.extension import Extension
from fhir.resources.R4B.identifier import Identifier
from fhir.resources.R4B.observation import Observation, ObservationReferenceRange
from fhir.resources.R4B.organization import Organization
from fhir.resources.R4B.practitioner import Practitioner
from fhir.resources.R4B.quantity import Quantity
from fhir.resources.R4B.reference import Reference

from ..constants.code_systems import HL7V2_CODING_SYSTEM_URL, HL7V2_ORIGINAL_TEXT_URL
from ..constants.status_codes import OBSERVATION_STATUS_MAP, ObservationStatus
from ..core.code_systems import CodeSystemCanonicalizer
from ..core.extraction import OBX_IDENTIFIER, OBX_VALUE, OBX_VALUE_TYPE
from ..core.identifiers import IdentifierSource, UuidIdentifierSource
from ..core.issues import ConversionIssue, IssueKind
from ..hl7v2.adapter import Field, Segment
from .datatypes import (
    coded_concept,
    concept_from_field,
    fhir_date,
    fhir_datetime,
    reference_to,
    text_or_none,
)
from .performer import PerformerAssembler

logger = logging.getLogger(__name__)

OBX_UNITS = 6
OBX_REFERENCE_RANGE = 7
OBX_INTERPRETATION = 8
OBX_RESULT_STATUS = 11
OBX_OBSERVATION_DATETIME = 14
OBX_METHOD = 17
OBX_BODY_SITE = 20


# ============================================================================
# Value variants
# ============================================================================

class ObxDataType(str, Enum):
    """OBX-2 datatype tags with a value handler."""
    NM = "NM"
    SN = "SN"
    DT = "DT"
    TS = "TS"
    CE = "CE"
    CWE = "CWE"
    EI = "EI"
    ST = "ST"
    TX = "TX"
    FT = "FT"
    UNHANDLED = "*"

    @classmethod
    def from_tag(cls, tag: str) -> "ObxDataType":
        try:
            data_type = cls(tag.strip().upper())
        except ValueError:
            return cls.UNHANDLED
        return data_type


@dataclass(frozen=True)
class QuantityValue:
    value: Decimal
    unit_code: str
    unit_text: str
    system: str

    def to_fhir(self) -> Optional[Dict[str, Any]]:
        return {"valueQuantity": Quantity(
            value=self.value,
            code=text_or_none(self.unit_code),
            unit=text_or_none(self.unit_text),
            system=text_or_none(self.system),
        )}


@dataclass(frozen=True)
class DecimalValue:
    value: Decimal

    def to_fhir(self) -> Optional[Dict[str, Any]]:
        # R4 has no valueDecimal; a unitless Quantity carries the number
        return {"valueQuantity": Quantity(value=self.value)}


@dataclass(frozen=True)
class DateTimeValue:
    """Raw DT/TS text; normalized only when emitted."""
    raw: str
    date_only: bool = False

    def to_fhir(self) -> Optional[Dict[str, Any]]:
        value = fhir_date(self.raw) if self.date_only else fhir_datetime(self.raw)
        if value is None:
            return None
        return {"valueDateTime": value}


@dataclass(frozen=True)
class CodedConceptValue:
    """
    CE/CWE answer. The coding system (component 3) rides along untranslated
    as an extension on the Coding, as does original text (component 9).
    """
    code: str
    display: str
    coding_system: str = ""
    original_text: str = ""

    def to_fhir(self) -> Optional[Dict[str, Any]]:
        extensions = []
        if text_or_none(self.coding_system):
            extensions.append(Extension(url=HL7V2_CODING_SYSTEM_URL, valueString=self.coding_system))
        if text_or_none(self.original_text):
            extensions.append(Extension(url=HL7V2_ORIGINAL_TEXT_URL, valueString=self.original_text))

        coding = Coding(
            code=text_or_none(self.code),
            display=text_or_none(self.display),
            extension=extensions or None,
        )
        return {"valueCodeableConcept": CodeableConcept(coding=[coding])}


@dataclass(frozen=True)
class TextValue:
    text: str
    lossy: bool = False  # numeric parse failed, raw text kept

    def to_fhir(self) -> Optional[Dict[str, Any]]:
        text = text_or_none(self.text)
        return {"valueString": text} if text else None


ObservationValue = Union[QuantityValue, DecimalValue, DateTimeValue, CodedConceptValue, TextValue]


class DispatchOutcome(str, Enum):
    DECODED = "decoded"
    FALLBACK = "fallback"                    # lossy TextValue
    UNHANDLED = "unhandled"                  # no handler for OBX-2
    UNSUPPORTED_SHAPE = "unsupported-shape"  # handler found, value shape not supported
    EMPTY = "empty"                          # OBX-5 blank


@dataclass
class DispatchResult:
    value: Optional[ObservationValue]
    outcome: DispatchOutcome
    issues: List[ConversionIssue] = field(default_factory=list)


# ============================================================================
# Dispatcher
# ============================================================================

def parse_decimal(text: str) -> Optional[Decimal]:
    """Finite decimal or None; never raises."""
    try:
        value = Decimal(text.strip())
    except (InvalidOperation, ValueError):
        return None
    return value if value.is_finite() else None


class ObservationValueDispatcher:
    """
    OBX-2 datatype tag -> ObservationValue.

    Args:
        canonicalizer: Rewrites unit systems (OBX-6.3) to FHIR URIs
    """

    def __init__(self, canonicalizer: Optional[Callable[[str], str]] = None):
        self.canonicalize = canonicalizer or CodeSystemCanonicalizer()
        self._handlers: Dict[ObxDataType, Callable[[Segment, Field], DispatchResult]] = {
            ObxDataType.NM: self._numeric,
            ObxDataType.SN: self._structured_numeric,
            ObxDataType.DT: self._date,
            ObxDataType.TS: self._timestamp,
            ObxDataType.CE: self._coded,
            ObxDataType.CWE: self._coded,
            ObxDataType.EI: self._text,
            ObxDataType.ST: self._text,
            ObxDataType.TX: self._text,
            ObxDataType.FT: self._text,
        }

    def dispatch(self, segment: Segment) -> DispatchResult:
        """
        Decode OBX-5 according to OBX-2.

        Args:
            segment: OBX segment

        Returns:
            DispatchResult; ``value`` is None for UNHANDLED, UNSUPPORTED_SHAPE
            and EMPTY outcomes
        """
        tag = segment.field(OBX_VALUE_TYPE).value
        data_type = ObxDataType.from_tag(tag)

        if data_type is ObxDataType.UNHANDLED:
            issue = self._issue(
                IssueKind.UNMAPPED_DATATYPE, segment,
                f"OBX-2 datatype {tag.strip()!r} has no value mapping; value dropped",
            )
            return DispatchResult(None, DispatchOutcome.UNHANDLED, [issue])

        value_field = segment.field(OBX_VALUE)
        if value_field.is_blank:
            return DispatchResult(None, DispatchOutcome.EMPTY)

        return self._handlers[data_type](segment, value_field)

    def units(self, segment: Segment) -> Optional[Tuple[str, str, str]]:
        """
        OBX-6 as (code, text, system) when well-formed: at least three
        components and a non-blank first component.
        """
        field_ = segment.field(OBX_UNITS)
        if field_.is_blank or len(field_.components()) < 3:
            return None
        code = field_.component(1).value.strip()
        if not code:
            return None
        return (
            code,
            field_.component(2).value.strip(),
            self.canonicalize(field_.component(3).value.strip()),
        )

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _numeric(self, segment: Segment, value_field: Field) -> DispatchResult:
        number = parse_decimal(value_field.value)
        if number is None:
            issue = self._issue(
                IssueKind.DECODE_FALLBACK, segment,
                f"NM value {value_field.value!r} is not a decimal; kept as text",
            )
            return DispatchResult(TextValue(value_field.value, lossy=True), DispatchOutcome.FALLBACK, [issue])
        return DispatchResult(self._number_value(segment, number), DispatchOutcome.DECODED)

    def _structured_numeric(self, segment: Segment, value_field: Field) -> DispatchResult:
        components = value_field.components()
        comparator = value_field.component(1).value
        number_text = value_field.component(2).value

        # Only "^<number>": no comparator, no separator/suffix, no range
        if len(components) != 2 or comparator or not number_text:
            issue = self._issue(
                IssueKind.UNSUPPORTED_VALUE_SHAPE, segment,
                f"SN value {value_field.value!r} is not a plain number; value dropped",
            )
            return DispatchResult(None, DispatchOutcome.UNSUPPORTED_SHAPE, [issue])

        number = parse_decimal(number_text)
        if number is None:
            issue = self._issue(
                IssueKind.DECODE_FALLBACK, segment,
                f"SN number {number_text!r} is not a decimal; kept as text",
            )
            return DispatchResult(TextValue(number_text, lossy=True), DispatchOutcome.FALLBACK, [issue])
        return DispatchResult(self._number_value(segment, number), DispatchOutcome.DECODED)

    def _date(self, segment: Segment, value_field: Field) -> DispatchResult:
        return DispatchResult(DateTimeValue(value_field.value, date_only=True), DispatchOutcome.DECODED)

    def _timestamp(self, segment: Segment, value_field: Field) -> DispatchResult:
        return DispatchResult(DateTimeValue(value_field.value), DispatchOutcome.DECODED)

    def _coded(self, segment: Segment, value_field: Field) -> DispatchResult:
        code = value_field.component(1).value
        display = value_field.component(2).value
        if not (code.strip() or display.strip()):
            issue = self._issue(
                IssueKind.UNSUPPORTED_VALUE_SHAPE, segment,
                f"Coded value {value_field.value!r} has neither code nor text; value dropped",
            )
            return DispatchResult(None, DispatchOutcome.UNSUPPORTED_SHAPE, [issue])

        value = CodedConceptValue(
            code=code,
            display=display,
            coding_system=value_field.component(3).value,
            original_text=value_field.component(9).value,
        )
        return DispatchResult(value, DispatchOutcome.DECODED)

    def _text(self, segment: Segment, value_field: Field) -> DispatchResult:
        return DispatchResult(TextValue(value_field.value), DispatchOutcome.DECODED)

    # ------------------------------------------------------------------

    def _number_value(self, segment: Segment, number: Decimal) -> ObservationValue:
        units = self.units(segment)
        if units is None:
            return DecimalValue(number)
        code, text, system = units
        return QuantityValue(number, code, text, system)

    @staticmethod
    def _issue(kind: IssueKind, segment: Segment, message: str) -> ConversionIssue:
        issue = ConversionIssue(
            kind=kind,
            message=message,
            segment=segment.name,
            segment_index=segment.index,
            code=segment.field(OBX_IDENTIFIER).component(1).value,
        )
        issue.log(logger)
        return issue


# ============================================================================
# Assembler
# ============================================================================

@dataclass
class ObservationBundle:
    """One OBX converted: the Observation plus the performers it references."""
    observation: Observation
    practitioner: Optional[Practitioner] = None
    organization: Optional[Organization] = None
    issues: List[ConversionIssue] = field(default_factory=list)

    @property
    def resources(self) -> List[Any]:
        return [r for r in (self.observation, self.practitioner, self.organization) if r is not None]


class ObservationAssembler:
    """
    OBX segment -> FHIR Observation.

    Args:
        identifier_source: Supplies Observation and performer ids
        canonicalizer: Code-system table for OBX-3 / OBX-6 / body site / method
        status_map: OBX-11 letter -> ObservationStatus; unknown letters map to UNKNOWN
    """

    def __init__(
        self,
        identifier_source: Optional[IdentifierSource] = None,
        canonicalizer: Optional[CodeSystemCanonicalizer] = None,
        status_map: Optional[Mapping[str, ObservationStatus]] = None
    ):
        self.identifier_source = identifier_source or UuidIdentifierSource()
        self.canonicalize = canonicalizer or CodeSystemCanonicalizer()
        self.status_map = OBSERVATION_STATUS_MAP if status_map is None else status_map
        self.dispatcher = ObservationValueDispatcher(self.canonicalize)
        self.performers = PerformerAssembler(self.identifier_source)

    def status(self, segment: Segment) -> ObservationStatus:
        letter = segment.field(OBX_RESULT_STATUS).value.strip()
        return self.status_map.get(letter, ObservationStatus.UNKNOWN)

    def assemble(self, segment: Segment, subject: Optional[Reference] = None) -> ObservationBundle:
        """
        Build one Observation (and its performers) from an OBX segment.

        Args:
            segment: OBX segment
            subject: Patient reference

        Returns:
            ObservationBundle with any non-fatal issues raised on the way
        """
        result = self.dispatcher.dispatch(segment)
        issues = list(result.issues)

        value_kwargs: Dict[str, Any] = {}
        if result.value is not None:
            value_kwargs = result.value.to_fhir() or {}
            if not value_kwargs and isinstance(result.value, DateTimeValue):
                issue = ConversionIssue(
                    kind=IssueKind.INVALID_TIMESTAMP,
                    message=f"{result.value.raw!r} is not a valid date/time; kept as text",
                    segment=segment.name,
                    segment_index=segment.index,
                    code=segment.field(OBX_IDENTIFIER).component(1).value,
                )
                issue.log(logger)
                issues.append(issue)
                value_kwargs = {"valueString": result.value.raw}

        practitioner = self.performers.practitioner(segment)
        organization = self.performers.organization(segment)
        performer = [
            reference_to(r.id) for r in (practitioner, organization) if r is not None
        ]

        code_field = segment.field(OBX_IDENTIFIER)
        code_value = text_or_none(code_field.component(1).value)

        observation = Observation(
            id=self.identifier_source.next_id(),
            identifier=[Identifier(value=code_value)] if code_value else None,
            status=self.status(segment).value,
            code=self._code(code_field) or CodeableConcept(text=code_field.value.strip() or "unknown"),
            subject=subject,
            bodySite=concept_from_field(segment.field(OBX_BODY_SITE), self.canonicalize, min_components=3),
            method=concept_from_field(segment.field(OBX_METHOD), self.canonicalize, min_components=3),
            interpretation=self._interpretation(segment.field(OBX_INTERPRETATION)),
            referenceRange=self._reference_range(segment.field(OBX_REFERENCE_RANGE)),
            effectiveDateTime=fhir_datetime(segment.field(OBX_OBSERVATION_DATETIME).value),
            performer=performer or None,
            **value_kwargs,
        )

        return ObservationBundle(observation, practitioner, organization, issues)

    # ------------------------------------------------------------------

    def _code(self, field_: Field) -> Optional[CodeableConcept]:
        system = field_.component(3).value if len(field_.components()) >= 3 else ""
        return coded_concept(
            code=field_.component(1).value,
            display=field_.component(2).value,
            system=self.canonicalize(system) if system else "",
        )

    def _interpretation(self, field_: Field) -> Optional[List[CodeableConcept]]:
        """Coded when OBX-8 has 3+ components, otherwise the raw text."""
        if field_.is_blank:
            return None
        if len(field_.components()) >= 3:
            concept = coded_concept(
                code=field_.component(1).value,
                display=field_.component(2).value,
                system=field_.component(3).value,
                text=field_.component(9).value,
            )
        else:
            concept = CodeableConcept(text=field_.value)
        return [concept] if concept else None

    @staticmethod
    def _reference_range(field_: Field) -> Optional[List[ObservationReferenceRange]]:
        if field_.is_blank:
            return None
        return [ObservationReferenceRange(text=field_.value)]
