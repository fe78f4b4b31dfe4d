# ============================================================================
# src/case_ingestion/constants/__init__.py
# ============================================================================
"""
Convenient imports for all constants
"""

from .code_systems import CODE_SYSTEM_URIS, OMB_CODING_SYSTEM
from .status_codes import (
    ObservationStatus,
    AdministrativeGender,
    OBSERVATION_STATUS_MAP,
    ADMINISTRATIVE_SEX_MAP,
)
from . import observation_codes
