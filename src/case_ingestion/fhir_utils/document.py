# ============================================================================
# src/case_ingestion/fhir_utils/document.py
# ============================================================================
"""
eICR document Bundle builder.

Bundle (type=document):
- Composition (first entry): status final, LOINC 55751-2, one section
  referencing every Observation
- Patient, with the patient-birthPlace extension
- Condition, when OBR carries OBR-31
- Observation per OBX (birth place codes excluded) + its performers
- Specimen per SPM
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from fhir.resources.R4B.bundle import Bundle, BundleEntry
from fhir.resources.R4B.composition import Composition, CompositionSection
from fhir.resources.R4B.identifier import Identifier
from fhir.resources.R4B.reference import Reference

from ..config.conversion_config import conversion_settings
from ..config.fhir_config import fhir_settings
from ..constants import observation_codes as codes
from ..constants.code_systems import LOINC
from ..core.code_systems import CodeSystemCanonicalizer
from ..core.extraction import OBX, OBX_IDENTIFIER, ObxExtractor
from ..core.identifiers import IdentifierSource, UuidIdentifierSource
from ..core.issues import ConversionIssue
from ..hl7v2.adapter import ParsedMessage
from .condition import OBR_REASON_FOR_STUDY, ConditionAssembler
from .datatypes import coded_concept, full_url, reference_to, text_or_none
from .observation import ObservationAssembler
from .patient import PatientAssembler
from .specimen import SpecimenAssembler

logger = logging.getLogger(__name__)

MSH = "MSH"
MSH_SENDING_FACILITY = 4
SPM = "SPM"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class EcrDocument:
    bundle: Bundle
    issues: List[ConversionIssue] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return json.loads(self.bundle.model_dump_json(exclude_none=True))


class EcrDocumentAssembler:
    """
    Parsed message -> eICR document Bundle.

    Args:
        identifier_source: Supplies every resource id
        canonicalizer: Code-system table shared by all resource builders
        excluded_codes: OBX-3.1 codes that are not emitted as Observations
        clock: Returns the aware datetime stamped on Bundle and Composition
        title: Composition title
        default_author: Author display when MSH-4 is blank
    """

    def __init__(
        self,
        identifier_source: Optional[IdentifierSource] = None,
        canonicalizer: Optional[CodeSystemCanonicalizer] = None,
        excluded_codes: Optional[Iterable[str]] = None,
        clock: Callable[[], datetime] = utc_now,
        title: Optional[str] = None,
        default_author: Optional[str] = None
    ):
        self.identifier_source = identifier_source or UuidIdentifierSource()
        self.canonicalize = canonicalizer or CodeSystemCanonicalizer(
            overrides=conversion_settings.CODE_SYSTEM_OVERRIDES
        )
        self.excluded_codes = frozenset(
            conversion_settings.EXCLUDED_OBSERVATION_CODES if excluded_codes is None else excluded_codes
        )
        self.clock = clock
        self.title = title or fhir_settings.DOCUMENT_TITLE
        self.default_author = default_author or fhir_settings.DEFAULT_AUTHOR_DISPLAY

        extractor = ObxExtractor()
        self.patients = PatientAssembler(self.identifier_source, extractor=extractor)
        self.observations = ObservationAssembler(self.identifier_source, self.canonicalize)
        self.specimens = SpecimenAssembler(self.identifier_source, self.canonicalize)
        self.conditions = ConditionAssembler(self.identifier_source, extractor, self.canonicalize)

    def assemble(self, message: ParsedMessage, document_id: Optional[str] = None) -> EcrDocument:
        """
        Build the document Bundle.

        Args:
            message: Parsed message
            document_id: Bundle id and Composition identifier; a fresh id if omitted

        Returns:
            EcrDocument with the Bundle and all non-fatal issues

        Raises:
            MissingSegmentError: If PID or OBR is missing
        """
        document_id = document_id or self.identifier_source.next_id()
        obr = message.require("OBR")
        now = self.clock()

        patient = self.patients.assemble(message, birth_place=True)
        subject = reference_to(patient.id)

        issues: List[ConversionIssue] = []
        observation_entries: List[BundleEntry] = []
        observation_refs: List[Reference] = []

        for segment in message.segments_by_name(OBX):
            code = segment.field(OBX_IDENTIFIER).component(1).value.strip()
            if code in self.excluded_codes:
                continue

            converted = self.observations.assemble(segment, subject=subject)
            issues.extend(converted.issues)
            observation_refs.append(reference_to(converted.observation.id))
            observation_entries.extend(
                BundleEntry(fullUrl=full_url(r.id), resource=r) for r in converted.resources
            )

        specimen_entries = [
            BundleEntry(fullUrl=full_url(s.id), resource=s)
            for s in (self.specimens.assemble(seg, subject=subject) for seg in message.segments_by_name(SPM))
        ]

        entries = [
            BundleEntry(fullUrl=full_url(document_id), resource=self._composition(
                message, document_id, subject, observation_refs, now
            )),
            BundleEntry(fullUrl=full_url(patient.id), resource=patient),
        ]

        if obr.field_count >= OBR_REASON_FOR_STUDY:
            condition = self.conditions.assemble(message, patient.id)
            entries.append(BundleEntry(fullUrl=full_url(condition.id), resource=condition))
        else:
            logger.info(f"OBR has {obr.field_count} fields; no Condition in document {document_id}")

        entries.extend(observation_entries)
        entries.extend(specimen_entries)

        bundle = Bundle(
            id=document_id,
            identifier=Identifier(value=document_id),
            type="document",
            timestamp=now,
            entry=entries,
        )

        logger.info(
            f"Built eICR document {document_id}: {len(entries)} entries "
            f"({len(observation_refs)} observations, {len(specimen_entries)} specimens, "
            f"{len(issues)} issues)"
        )
        return EcrDocument(bundle, issues)

    def _composition(
        self,
        message: ParsedMessage,
        document_id: str,
        subject: Reference,
        observation_refs: List[Reference],
        now: datetime
    ) -> Composition:
        msh = message.first(MSH)
        sender = text_or_none(msh.field(MSH_SENDING_FACILITY).component(1).value) if msh else None

        section = CompositionSection(
            title="Observations",
            entry=observation_refs or None,
            emptyReason=None if observation_refs else coded_concept(
                code="unavailable",
                display="Unavailable",
                system="http://terminology.hl7.org/CodeSystem/list-empty-reason",
            ),
        )

        return Composition(
            id=document_id,
            identifier=Identifier(use="official", value=document_id),
            status="final",
            type=coded_concept(
                code=codes.PUBLIC_HEALTH_CASE_REPORT,
                display="Public health Case report",
                system=LOINC,
            ),
            subject=subject,
            date=now,
            author=[Reference(display=sender or self.default_author)],
            title=self.title,
            section=[section],
        )
