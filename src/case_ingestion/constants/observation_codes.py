# ============================================================================
# src/case_ingestion/constants/observation_codes.py
# ============================================================================
"""
OBX-3 Identifiers read by the case assemblers
- LOINC codes from the CDC case notification message mapping guides
- PHIN question identifiers (INVxxx) where no LOINC code exists
"""

# Case identifiers
LEGACY_CASE_ID = "77997-5"

# Exposure location (repeating group keyed on OBX-4)
EXPOSURE_COUNTRY = "77984-3"
EXPOSURE_STATE = "77985-0"
EXPOSURE_CITY = "77986-8"
EXPOSURE_COUNTY = "77987-6"
EXPOSURE_ADDRESS_CODES = (
    EXPOSURE_STATE,
    EXPOSURE_COUNTRY,
    EXPOSURE_CITY,
    EXPOSURE_COUNTY,
)

# Case classification details
TRANSMISSION_MODE = "77989-2"
OUTBREAK_NAME = "77981-9"
IMPORTED_INDICATOR = "77982-7"
BINATIONAL_CRITERIA = "77988-4"

# Imported from
IMPORTED_COUNTRY = "INV153"
IMPORTED_STATE = "INV154"
IMPORTED_CITY = "INV155"
IMPORTED_COUNTY = "INV156"

# Condition onset period
ILLNESS_ONSET_DATE = "11368-8"
ILLNESS_END_DATE = "77976-9"

# Birth place (patient extension, not emitted as Observations)
BIRTH_COUNTRY = "78746-5"
BIRTH_COUNTRY_OTHER = "21842-0"

# eICR Composition type
PUBLIC_HEALTH_CASE_REPORT = "55751-2"
