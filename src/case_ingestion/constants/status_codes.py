# ============================================================================
# src/case_ingestion/constants/status_codes.py
# ============================================================================
"""
Single-letter HL7 v2 codes and their FHIR equivalents
- OBX-11 observation result status (HL7 table 0085)
- PID-8 administrative sex (HL7 table 0001)
"""

from enum import Enum
from types import MappingProxyType


class ObservationStatus(str, Enum):
    AMENDED = "amended"
    CORRECTED = "corrected"
    FINAL = "final"
    PRELIMINARY = "preliminary"
    ENTERED_IN_ERROR = "entered-in-error"
    UNKNOWN = "unknown"


class AdministrativeGender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    UNKNOWN = "unknown"
    OTHER = "other"


# Anything else maps to ObservationStatus.UNKNOWN
OBSERVATION_STATUS_MAP = MappingProxyType({
    "A": ObservationStatus.AMENDED,
    "C": ObservationStatus.CORRECTED,
    "F": ObservationStatus.FINAL,
    "P": ObservationStatus.PRELIMINARY,
    "W": ObservationStatus.ENTERED_IN_ERROR,
})

# Anything else leaves Patient.gender unset
ADMINISTRATIVE_SEX_MAP = MappingProxyType({
    "M": AdministrativeGender.MALE,
    "F": AdministrativeGender.FEMALE,
    "U": AdministrativeGender.UNKNOWN,
    "O": AdministrativeGender.OTHER,
})
