# ============================================================================
# src/case_ingestion/fhir_utils/patient.py
# ============================================================================
"""
FHIR Patient resource builder (PID segment).

Case notifications are de-identified: name, telecom, contact and photo
are always cleared by ``redact`` before a Patient leaves this module.
The Patient id is synthetic and never derived from PID-3.
"""

import logging
from typing import List, Mapping, Optional

from fhir.resources.R4B.coding import Coding
from fhir.resources.R4B.extension import Extension
from fhir.resources.R4B.identifier import Identifier
from fhir.resources.R4B.patient import Patient

from ..constants import observation_codes
from ..constants.code_systems import (
    BIRTH_PLACE_URL,
    OMB_CATEGORY_URL,
    OMB_CODING_SYSTEM,
    US_CORE_ETHNICITY_URL,
    US_CORE_RACE_URL,
)
from ..constants.status_codes import ADMINISTRATIVE_SEX_MAP, AdministrativeGender
from ..core.extraction import ObxExtractor
from ..core.identifiers import IdentifierSource, UuidIdentifierSource
from ..hl7v2.adapter import Field, ParsedMessage
from .datatypes import build_address, fhir_date, fhir_datetime, text_or_none

logger = logging.getLogger(__name__)

PID = "PID"
PID_BIRTH_DATE = 7
PID_SEX = 8
PID_RACE = 10
PID_ADDRESS = 11
PID_ETHNIC_GROUP = 22
PID_DEATH_DATETIME = 29

REDACTED_FIELDS = ("name", "telecom", "contact", "photo")


def redact(patient: Patient) -> Patient:
    """Clear direct identifiers in place. Safe to call repeatedly."""
    for name in REDACTED_FIELDS:
        setattr(patient, name, None)
    return patient


def omb_category_extension(url: str, field: Field) -> Optional[Extension]:
    """
    One ``ombCategory`` sub-extension per repetition of a CWE field.

    Args:
        url: us-core-race or us-core-ethnicity
        field: PID-10 or PID-22

    Returns:
        Extension, or None when every repetition is blank
    """
    categories: List[Extension] = []
    for repetition in field.repetitions():
        code = text_or_none(repetition.component(1).value)
        display = text_or_none(repetition.component(2).value)
        if not (code or display):
            continue
        categories.append(Extension(
            url=OMB_CATEGORY_URL,
            valueCoding=Coding(system=OMB_CODING_SYSTEM, code=code, display=display),
        ))

    if not categories:
        return None
    return Extension(url=url, extension=categories)


class PatientAssembler:
    """
    PID -> redacted FHIR Patient.

    Args:
        identifier_source: Supplies the synthetic Patient id
        sex_map: PID-8 letter -> AdministrativeGender; other letters leave gender unset
        extractor: OBX lookup used for the birthplace extension
    """

    def __init__(
        self,
        identifier_source: Optional[IdentifierSource] = None,
        sex_map: Optional[Mapping[str, AdministrativeGender]] = None,
        extractor: Optional[ObxExtractor] = None
    ):
        self.identifier_source = identifier_source or UuidIdentifierSource()
        self.sex_map = ADMINISTRATIVE_SEX_MAP if sex_map is None else sex_map
        self.extractor = extractor or ObxExtractor()

    def gender(self, code: str) -> Optional[AdministrativeGender]:
        return self.sex_map.get(code.strip())

    def assemble(
        self,
        message: ParsedMessage,
        patient_id: Optional[str] = None,
        birth_place: bool = False
    ) -> Patient:
        """
        Build the Patient from the first PID segment.

        Args:
            message: Parsed message
            patient_id: Use this id instead of drawing a fresh one
            birth_place: Add the patient-birthPlace extension from the
                birth-country OBX answers (eICR documents)

        Returns:
            Redacted Patient

        Raises:
            MissingSegmentError: If the message has no PID segment
        """
        pid = message.require(PID)
        patient_id = patient_id or self.identifier_source.next_id()

        address_field = pid.field(PID_ADDRESS)
        address = build_address(
            state=address_field.component(4).value,
            city=address_field.component(3).value,
            postal_code=address_field.component(5).value,
            country=address_field.component(6).value,
            district=address_field.component(9).value,
        )

        extensions = [
            omb_category_extension(US_CORE_RACE_URL, pid.field(PID_RACE)),
            omb_category_extension(US_CORE_ETHNICITY_URL, pid.field(PID_ETHNIC_GROUP)),
        ]
        if birth_place:
            extensions.append(self._birth_place(message))
        extensions = [e for e in extensions if e is not None]

        gender = self.gender(pid.field(PID_SEX).value)

        patient = Patient(
            id=patient_id,
            active=True,
            identifier=[Identifier(value=patient_id)],
            address=[address] if address else None,
            gender=gender.value if gender else None,
            birthDate=fhir_date(pid.field(PID_BIRTH_DATE).value),
            deceasedDateTime=fhir_datetime(pid.field(PID_DEATH_DATETIME).value),
            extension=extensions or None,
        )

        logger.debug(f"Assembled Patient {patient_id} from PID segment {pid.index}")
        return redact(patient)

    def _birth_place(self, message: ParsedMessage) -> Optional[Extension]:
        country = self.extractor.find(message, observation_codes.BIRTH_COUNTRY)
        other = self.extractor.find(message, observation_codes.BIRTH_COUNTRY_OTHER)
        address = build_address(country=country.text, text=other.text)
        if address is None:
            return None
        return Extension(url=BIRTH_PLACE_URL, valueAddress=address)
