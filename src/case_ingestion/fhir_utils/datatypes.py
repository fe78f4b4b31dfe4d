# ============================================================================
# src/case_ingestion/fhir_utils/datatypes.py
# ============================================================================
"""
Builders for the FHIR datatypes shared by every assembler.

FHIR forbids empty strings, so every HL7 value goes through
``text_or_none`` and a datatype whose parts are all blank is omitted
(None) instead of emitted as an empty object.
"""

from datetime import date, datetime, timezone
from typing import Callable, Iterable, List, Optional

from fhir.resources.R4B.address import Address
from fhir.resources.R4B.codeableconcept import CodeableConcept
from fhir.resources.R4B.coding import Coding
from fhir.resources.R4B.reference import Reference

from ..core.datetime_normalizer import parse_hl7_date, parse_hl7_datetime
from ..core.extraction import CodedTriplet
from ..hl7v2.adapter import Field

Canonicalize = Callable[[str], str]


def text_or_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value


def coded_concept(
    code: str = "",
    display: str = "",
    system: str = "",
    text: str = ""
) -> Optional[CodeableConcept]:
    """CodeableConcept with a single Coding; None when every part is blank."""
    code, display, system, text = (
        text_or_none(code), text_or_none(display), text_or_none(system), text_or_none(text)
    )
    if not any((code, display, system, text)):
        return None

    coding = None
    if code or display or system:
        coding = [Coding(code=code, display=display, system=system)]
    return CodeableConcept(coding=coding, text=text)


def concept_from_field(field: Field, canonicalize: Canonicalize, min_components: int = 1) -> Optional[CodeableConcept]:
    """
    CWE field -> CodeableConcept.

    Components 1/2/3 become code/display/system (system canonicalized) and
    component 9 (original text) becomes CodeableConcept.text.
    """
    if field.is_blank or len(field.components()) < min_components:
        return None
    return coded_concept(
        code=field.component(1).value,
        display=field.component(2).value,
        system=canonicalize(field.component(3).value),
        text=field.component(9).value,
    )


def concept_from_triplet(triplet: CodedTriplet, canonicalize: Canonicalize) -> Optional[CodeableConcept]:
    """Triplet -> CodeableConcept with the triplet text as CodeableConcept.text."""
    if triplet.is_empty:
        return None
    return coded_concept(
        code=triplet.code,
        system=canonicalize(triplet.system),
        text=triplet.text,
    )


def build_address(
    lines: Iterable[str] = (),
    city: str = "",
    district: str = "",
    state: str = "",
    postal_code: str = "",
    country: str = "",
    text: str = ""
) -> Optional[Address]:
    """Address from positional parts; None if all parts are blank."""
    line: List[str] = [l for l in lines if text_or_none(l)]
    parts = {
        "city": text_or_none(city),
        "district": text_or_none(district),
        "state": text_or_none(state),
        "postalCode": text_or_none(postal_code),
        "country": text_or_none(country),
        "text": text_or_none(text),
    }
    if not line and not any(parts.values()):
        return None
    return Address(line=line or None, **parts)


def fhir_date(value: str) -> Optional[date]:
    """HL7 DT -> date, None if short or not a real calendar date."""
    parsed = parse_hl7_date(value)
    return parsed.to_python() if parsed else None


def fhir_datetime(value: str) -> Optional[datetime]:
    """
    HL7 TS -> datetime with a fixed +00:00 offset, None if short or not a
    real calendar value.

    The clock value is not shifted; FHIR only accepts a dateTime with a
    time part when it carries an offset.
    """
    parsed = parse_hl7_datetime(value)
    moment = parsed.to_python() if parsed else None
    return moment.replace(tzinfo=timezone.utc) if moment else None


def reference_to(resource_id: str, display: Optional[str] = None) -> Reference:
    """Reference by synthetic id (``urn:uuid:<id>``), resolvable inside a Bundle."""
    return Reference(reference=f"urn:uuid:{resource_id}", display=display)


def full_url(resource_id: str) -> str:
    return f"urn:uuid:{resource_id}"
