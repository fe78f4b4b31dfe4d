# ============================================================================
# src/case_ingestion/fhir_utils/condition.py
# ============================================================================
"""
FHIR Condition resource builder (OBR-31 reason for study).
"""

import logging
from typing import Optional

from fhir.resources.R4B.codeableconcept import CodeableConcept
from fhir.resources.R4B.condition import Condition
from fhir.resources.R4B.period import Period

from ..constants import observation_codes as codes
from ..constants.code_systems import CONDITION_CATEGORY_SYSTEM
from ..core.code_systems import CodeSystemCanonicalizer
from ..core.extraction import OBX_VALUE, ObxExtractor
from ..core.identifiers import IdentifierSource, UuidIdentifierSource
from ..hl7v2.adapter import ParsedMessage
from .datatypes import coded_concept, fhir_datetime, reference_to

logger = logging.getLogger(__name__)

OBR = "OBR"
OBR_REASON_FOR_STUDY = 31
ONSET_VALUE_TYPES = ("TS", "DT")


def health_concern_category() -> CodeableConcept:
    return coded_concept(
        code="health-concern",
        display="Health Concern",
        system=CONDITION_CATEGORY_SYSTEM,
        text="Health Concern",
    )


class ConditionAssembler:
    """
    OBR-31 + illness onset/end OBX answers -> Condition.

    Args:
        identifier_source: Supplies the Condition id
        extractor: Shared OBX lookup
        canonicalizer: Code-system table for OBR-31.3
    """

    def __init__(
        self,
        identifier_source: Optional[IdentifierSource] = None,
        extractor: Optional[ObxExtractor] = None,
        canonicalizer: Optional[CodeSystemCanonicalizer] = None
    ):
        self.identifier_source = identifier_source or UuidIdentifierSource()
        self.extractor = extractor or ObxExtractor()
        self.canonicalize = canonicalizer or CodeSystemCanonicalizer()

    def assemble(self, message: ParsedMessage, patient_id: str) -> Condition:
        """
        Build the Condition for the notifiable disease.

        Args:
            message: Parsed message
            patient_id: Synthetic id of the Patient the condition belongs to

        Returns:
            Condition

        Raises:
            MissingSegmentError: If there is no OBR segment
            ShortSegmentError: If OBR has fewer than 31 fields
        """
        obr = message.require(OBR).require_fields(OBR_REASON_FOR_STUDY)
        reason = obr.field(OBR_REASON_FOR_STUDY)

        code = coded_concept(
            code=reason.component(1).value,
            display=reason.component(2).value,
            system=self.canonicalize(reason.component(3).value),
            text=reason.component(2).value,
        )

        return Condition(
            id=self.identifier_source.next_id(),
            code=code,
            category=[health_concern_category()],
            subject=reference_to(patient_id),
            onsetPeriod=self._onset_period(message),
        )

    def _onset_period(self, message: ParsedMessage) -> Optional[Period]:
        """Start and end are looked up independently; either may be missing."""
        onset = self.extractor.find_segment(message, codes.ILLNESS_ONSET_DATE, ONSET_VALUE_TYPES)
        end = self.extractor.find_segment(message, codes.ILLNESS_END_DATE, ONSET_VALUE_TYPES)

        start = fhir_datetime(onset.field(OBX_VALUE).value) if onset else None
        stop = fhir_datetime(end.field(OBX_VALUE).value) if end else None
        if start is None and stop is None:
            return None
        return Period(start=start, end=stop)
