# ============================================================================
# src/case_ingestion/fhir_utils/case.py
# ============================================================================
"""
Case notification record (OBR + case-level OBX answers).

FHIR R4 has no Case resource, so Case is a plain dataclass whose fields
are fhir.resources datatypes. ``to_dict`` renders it in FHIR JSON style
with ``resourceType: "Case"``.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from fhir.resources.R4B.address import Address
from fhir.resources.R4B.codeableconcept import CodeableConcept
from fhir.resources.R4B.identifier import Identifier
from fhir.resources.R4B.reference import Reference

from ..constants import observation_codes as codes
from ..core.code_systems import CodeSystemCanonicalizer
from ..core.extraction import ObxExtractor
from ..hl7v2.adapter import ParsedMessage
from .datatypes import build_address, concept_from_triplet, text_or_none

logger = logging.getLogger(__name__)

OBR = "OBR"
OBR_FILLER_ORDER_NUMBER = 3
OBR_RESULT_STATUS = 25


def _fhir_json(element: Any) -> Dict[str, Any]:
    return json.loads(element.model_dump_json(exclude_none=True))


@dataclass
class Case:
    """Case notification. List fields are always present (possibly empty)."""
    identifier: List[Identifier] = field(default_factory=list)
    active: bool = True
    subject: Optional[Reference] = None
    exposure_address: List[Address] = field(default_factory=list)
    transmission_mode: Optional[CodeableConcept] = None
    outbreak: Optional[str] = None
    result_status: Optional[str] = None
    imported_indicator: Optional[CodeableConcept] = None
    imported_address: List[Address] = field(default_factory=list)
    multinational_reporting_criteria: List[CodeableConcept] = field(default_factory=list)

    @property
    def official_identifier(self) -> Optional[str]:
        for identifier in self.identifier:
            if identifier.use == "official":
                return identifier.value
        return None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "resourceType": "Case",
            "identifier": [_fhir_json(i) for i in self.identifier],
            "active": self.active,
            "subject": _fhir_json(self.subject) if self.subject else None,
            "exposureAddress": [_fhir_json(a) for a in self.exposure_address],
            "transmissionMode": _fhir_json(self.transmission_mode) if self.transmission_mode else None,
            "outbreak": self.outbreak,
            "resultStatus": self.result_status,
            "importedIndicator": _fhir_json(self.imported_indicator) if self.imported_indicator else None,
            "importedAddress": [_fhir_json(a) for a in self.imported_address],
            "multinationalReportingCriteria": [
                _fhir_json(c) for c in self.multinational_reporting_criteria
            ],
        }
        return {k: v for k, v in d.items() if v is not None and v != []}


class CaseAssembler:
    """
    OBR + OBX answers -> Case.

    Args:
        extractor: Shared OBX lookup
        canonicalizer: Code-system table for coded answers
    """

    def __init__(
        self,
        extractor: Optional[ObxExtractor] = None,
        canonicalizer: Optional[CodeSystemCanonicalizer] = None
    ):
        self.extractor = extractor or ObxExtractor()
        self.canonicalize = canonicalizer or CodeSystemCanonicalizer()

    def assemble(self, message: ParsedMessage, patient_reference: Optional[Reference] = None) -> Case:
        """
        Build the Case.

        Args:
            message: Parsed message
            patient_reference: Reference to the (redacted) Patient

        Returns:
            Case

        Raises:
            MissingSegmentError: If there is no OBR segment
            ShortSegmentError: If OBR stops before OBR-3
            GroupKeyError: If an exposure OBX has a non-numeric OBX-4
        """
        obr = message.require(OBR).require_fields(OBR_FILLER_ORDER_NUMBER)

        case = Case(subject=patient_reference)
        case.identifier.extend(self._identifiers(message, obr.field(OBR_FILLER_ORDER_NUMBER).component(1).value))
        case.exposure_address.extend(self._exposure_addresses(message))

        case.transmission_mode = self._concept(message, codes.TRANSMISSION_MODE)
        case.outbreak = text_or_none(self.extractor.find(message, codes.OUTBREAK_NAME).code)
        case.result_status = text_or_none(obr.field(OBR_RESULT_STATUS).value)
        case.imported_indicator = self._concept(message, codes.IMPORTED_INDICATOR)

        imported = build_address(
            country=self.extractor.find(message, codes.IMPORTED_COUNTRY).code,
            state=self.extractor.find(message, codes.IMPORTED_STATE).code,
            city=self.extractor.find(message, codes.IMPORTED_CITY).code,
            district=self.extractor.find(message, codes.IMPORTED_COUNTY).code,
        )
        if imported:
            case.imported_address.append(imported)

        binational = self._concept(message, codes.BINATIONAL_CRITERIA)
        if binational:
            case.multinational_reporting_criteria.append(binational)

        logger.debug(
            f"Assembled Case {case.official_identifier}: "
            f"{len(case.exposure_address)} exposure address(es)"
        )
        return case

    def _identifiers(self, message: ParsedMessage, case_id: str) -> List[Identifier]:
        identifiers = []
        if text_or_none(case_id):
            identifiers.append(Identifier(use="official", value=case_id))

        legacy = self.extractor.find(message, codes.LEGACY_CASE_ID)
        if text_or_none(legacy.code):
            identifiers.append(Identifier(use="old", value=legacy.code))
        return identifiers

    def _exposure_addresses(self, message: ParsedMessage) -> List[Address]:
        addresses = []
        for key, group in self.extractor.find_groups(message, codes.EXPOSURE_ADDRESS_CODES).items():
            address = build_address(
                state=group[codes.EXPOSURE_STATE].code,
                country=group[codes.EXPOSURE_COUNTRY].code,
                city=group[codes.EXPOSURE_CITY].code,
                district=group[codes.EXPOSURE_COUNTY].code,
            )
            if address:
                addresses.append(address)
        return addresses

    def _concept(self, message: ParsedMessage, code: str) -> Optional[CodeableConcept]:
        return concept_from_triplet(self.extractor.find(message, code), self.canonicalize)
