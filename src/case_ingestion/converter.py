# ============================================================================
# src/case_ingestion/converter.py
# ============================================================================
"""
Conversion entry points.

- CaseConverter: ORU_R01 -> Case + redacted Patient
- EcrConverter:  ORU_R01 -> eICR document Bundle

Both accept raw text, a ReceivedMessage or an already parsed message.
Structural problems abort the whole conversion; everything else ends up
in the result's ``issues``.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from fhir.resources.R4B.patient import Patient
from pydantic import ValidationError

from .config.conversion_config import conversion_settings
from .config.fhir_config import fhir_settings
from .core.code_systems import CodeSystemCanonicalizer
from .core.extraction import ObxExtractor
from .core.identifiers import IdentifierSource, UuidIdentifierSource
from .core.issues import ConversionIssue
from .fhir_utils.case import OBR, Case, CaseAssembler
from .fhir_utils.datatypes import reference_to
from .fhir_utils.document import EcrDocument, EcrDocumentAssembler, utc_now
from .fhir_utils.patient import PID, PatientAssembler
from .fhir_utils.validator import FHIRValidator
from .hl7v2.adapter import ParsedMessage, parse_message
from .intake import ReceivedMessage
from .utils.exceptions import FHIRConversionError
from .utils.logging import log_performance

logger = logging.getLogger(__name__)

MessageSource = Union[str, ReceivedMessage, ParsedMessage]


def load_message(source: MessageSource) -> ParsedMessage:
    """
    Normalize any accepted input to a ParsedMessage.

    Raises:
        UnsupportedMessageError: If raw text is not a single HL7 v2 message
        MessageParseError: If the HL7 v2 text cannot be parsed
    """
    if isinstance(source, ParsedMessage):
        return source
    if isinstance(source, str):
        source = ReceivedMessage(source)
    return parse_message(source.require_hl7v2())


@dataclass
class CaseReport:
    case: Case
    patient: Patient
    issues: List[ConversionIssue] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        d = self.case.to_dict()
        d["patient"] = json.loads(self.patient.model_dump_json(exclude_none=True))
        return d


class CaseConverter:
    """
    Case notification converter.

    Args:
        identifier_source: Supplies the synthetic Patient id
        canonicalizer: Code-system table (defaults to built-ins + settings overrides)
        validate: Run FHIRValidator on the Patient (defaults to FHIR_VALIDATE)
    """

    def __init__(
        self,
        identifier_source: Optional[IdentifierSource] = None,
        canonicalizer: Optional[CodeSystemCanonicalizer] = None,
        validate: Optional[bool] = None
    ):
        self.identifier_source = identifier_source or UuidIdentifierSource()
        self.canonicalize = canonicalizer or CodeSystemCanonicalizer(
            overrides=conversion_settings.CODE_SYSTEM_OVERRIDES
        )
        self.validate = fhir_settings.FHIR_VALIDATE if validate is None else validate
        self.validator = FHIRValidator()

        extractor = ObxExtractor()
        self.patients = PatientAssembler(self.identifier_source, extractor=extractor)
        self.cases = CaseAssembler(extractor, self.canonicalize)

    @log_performance(logger, "Case conversion")
    def convert(self, source: MessageSource) -> CaseReport:
        """
        Convert one message to a Case and its Patient.

        Args:
            source: Raw HL7 v2 text, ReceivedMessage or ParsedMessage

        Returns:
            CaseReport

        Raises:
            StructuralError: If OBR or PID is missing or too short
            FHIRConversionError: If a resource model rejects the mapped content
        """
        message = load_message(source)
        message.require(OBR)
        message.require(PID)

        try:
            patient = self.patients.assemble(message)
            case = self.cases.assemble(message, reference_to(patient.id))
        except ValidationError as e:
            raise FHIRConversionError(
                f"Case conversion of message {message.message_control_id!r} failed: {e}"
            ) from e

        if self.validate:
            self.validator.validate_resource(patient)

        logger.info(
            f"Converted case {case.official_identifier} from message {message.message_control_id}",
            extra={"message_control_id": message.message_control_id},
        )
        return CaseReport(case, patient)


class EcrConverter:
    """
    eICR document converter.

    Args:
        identifier_source: Supplies every resource id
        canonicalizer: Code-system table (defaults to built-ins + settings overrides)
        clock: Timestamp source for Bundle.timestamp / Composition.date
        validate: Run FHIRValidator on the Bundle (defaults to FHIR_VALIDATE)
    """

    def __init__(
        self,
        identifier_source: Optional[IdentifierSource] = None,
        canonicalizer: Optional[CodeSystemCanonicalizer] = None,
        clock: Callable[[], datetime] = utc_now,
        validate: Optional[bool] = None
    ):
        self.validate = fhir_settings.FHIR_VALIDATE if validate is None else validate
        self.validator = FHIRValidator()
        self.documents = EcrDocumentAssembler(
            identifier_source=identifier_source,
            canonicalizer=canonicalizer,
            clock=clock,
        )

    @log_performance(logger, "eICR conversion")
    def convert(self, source: MessageSource, document_id: Optional[str] = None) -> EcrDocument:
        """
        Convert one message to an eICR document Bundle.

        Args:
            source: Raw HL7 v2 text, ReceivedMessage or ParsedMessage
            document_id: Bundle id (e.g. the workflow process id)

        Returns:
            EcrDocument

        Raises:
            StructuralError: If OBR or PID is missing
            FHIRConversionError: If a resource model rejects the mapped content
        """
        message = load_message(source)

        try:
            document = self.documents.assemble(message, document_id)
        except ValidationError as e:
            raise FHIRConversionError(
                f"eICR conversion of message {message.message_control_id!r} failed: {e}"
            ) from e

        if self.validate:
            self.validator.validate_bundle(document.bundle)

        logger.info(
            f"Converted message {message.message_control_id} to eICR {document.bundle.id}",
            extra={"message_control_id": message.message_control_id},
        )
        return document
