# ============================================================================
# src/case_ingestion/constants/code_systems.py
# ============================================================================
"""
Code System URIs and Extension URLs
- HL7 v2 coding-system abbreviations (CWE.3) rewritten to FHIR system URIs
- US Core / OMB extensions used on Patient
"""

from types import MappingProxyType

SNOMED_CT = "http://snomed.info/sct"
LOINC = "http://loinc.org"
UCUM = "http://unitsofmeasure.org"

# Abbreviations not listed here pass through unchanged
CODE_SYSTEM_URIS = MappingProxyType({
    "SCT": SNOMED_CT,
    "LN": LOINC,
    "UCUM": UCUM,
})

# OMB race & ethnicity categories
OMB_CODING_SYSTEM = "urn:oid:2.16.840.1.113883.6.238"

US_CORE_RACE_URL = "http://hl7.org/fhir/us/core/StructureDefinition/us-core-race"
US_CORE_ETHNICITY_URL = "http://hl7.org/fhir/us/core/StructureDefinition/us-core-ethnicity"
OMB_CATEGORY_URL = "ombCategory"
BIRTH_PLACE_URL = "http://hl7.org/fhir/StructureDefinition/patient-birthPlace"

CONDITION_CATEGORY_SYSTEM = "http://hl7.org/fhir/us/core/CodeSystem/condition-category"

# Raw HL7 v2 metadata carried on a Coding instead of being translated
HL7V2_CODING_SYSTEM_URL = "http://case-ingestion.local/hl7v2-coding-system"
HL7V2_ORIGINAL_TEXT_URL = "http://case-ingestion.local/hl7v2-original-text"
