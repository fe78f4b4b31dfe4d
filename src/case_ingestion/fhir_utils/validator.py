# ============================================================================
# src/case_ingestion/fhir_utils/validator.py
# ============================================================================
"""
FHIR Validator

Structural checks on converted resources before they are handed on:
1. Serialization (fhir.resources model round trip)
2. Required fields per resource type
3. De-identification of Patient (no name/telecom/contact/photo)
4. Document Bundle shape (Composition first)

Profile conformance is out of scope; this only catches converter bugs.
"""

from typing import Any, List, Tuple
import logging

from fhir.resources.R4B.bundle import Bundle
from fhir.resources.R4B.composition import Composition
from fhir.resources.R4B.condition import Condition
from fhir.resources.R4B.observation import Observation
from fhir.resources.R4B.patient import Patient
from fhir.resources.R4B.specimen import Specimen

from .patient import REDACTED_FIELDS

logger = logging.getLogger(__name__)

OBSERVATION_STATUSES = (
    "registered", "preliminary", "final", "amended",
    "corrected", "cancelled", "entered-in-error", "unknown",
)

VALUE_FIELDS = (
    "valueQuantity", "valueCodeableConcept", "valueString", "valueBoolean",
    "valueInteger", "valueRange", "valueRatio", "valueSampledData",
    "valueTime", "valueDateTime", "valuePeriod",
)


class FHIRValidator:
    """
    FHIR resource validator.

    Args:
        strict: If True, an Observation without value[x] or
            dataAbsentReason is an error (an unmapped OBX datatype or a
            blank OBX-5 produces one).
    """

    def __init__(self, strict: bool = False):
        self.strict = strict

    def validate_bundle(self, bundle: Bundle) -> Tuple[bool, List[str]]:
        """
        Validate a document Bundle.

        Args:
            bundle: FHIR Bundle to validate

        Returns:
            (is_valid, errors)
        """
        errors = []

        try:
            bundle.model_dump_json()

            if bundle.type != "document":
                errors.append(f"Invalid bundle type: {bundle.type}")

            if not bundle.id:
                errors.append("Bundle missing required 'id' field")

            if not bundle.timestamp:
                errors.append("Bundle missing 'timestamp'")

            entries = bundle.entry or []
            if not entries or not isinstance(entries[0].resource, Composition):
                errors.append("Document bundle must start with a Composition")

            for idx, entry in enumerate(entries):
                errors.extend(self._validate_entry(entry, idx))

        except Exception as e:
            errors.append(f"Bundle validation error: {str(e)}")

        is_valid = len(errors) == 0

        if errors:
            logger.warning(f"Bundle validation found {len(errors)} errors")
            for error in errors:
                logger.warning(f"  - {error}")

        return is_valid, errors

    def validate_resource(self, resource: Any) -> Tuple[bool, List[str]]:
        """
        Validate any converted FHIR resource.

        Args:
            resource: FHIR resource to validate

        Returns:
            (is_valid, errors)
        """
        errors = []

        try:
            resource.model_dump_json()
            errors.extend(self._validate_by_type(resource, "Resource"))
        except Exception as e:
            errors.append(f"Resource validation error: {str(e)}")

        is_valid = len(errors) == 0

        if errors:
            logger.warning(f"Resource validation found {len(errors)} errors")
            for error in errors:
                logger.warning(f"  - {error}")

        return is_valid, errors

    # ------------------------------------------------------------------

    def _validate_entry(self, entry: Any, index: int) -> List[str]:
        if not entry.resource:
            return [f"Entry {index}: missing resource"]
        if not entry.fullUrl:
            return [f"Entry {index}: missing fullUrl"]
        return self._validate_by_type(entry.resource, f"Entry {index}")

    def _validate_by_type(self, resource: Any, label: str) -> List[str]:
        if isinstance(resource, Observation):
            return self._validate_observation(resource, f"{label} (Observation)")
        if isinstance(resource, Patient):
            return self._validate_patient(resource, f"{label} (Patient)")
        if isinstance(resource, Condition):
            return self._validate_condition(resource, f"{label} (Condition)")
        if isinstance(resource, Specimen):
            return self._validate_specimen(resource, f"{label} (Specimen)")
        return []

    def _validate_observation(self, obs: Observation, prefix: str) -> List[str]:
        """
        Required fields:
        - status
        - code
        - value[x] or dataAbsentReason (strict mode only)
        """
        errors = []

        if obs.status is None:
            errors.append(f"{prefix}: missing required 'status'")
        elif obs.status not in OBSERVATION_STATUSES:
            errors.append(f"{prefix}: invalid status '{obs.status}'")

        if obs.code is None:
            errors.append(f"{prefix}: missing required 'code'")
        elif not obs.code.coding and not obs.code.text:
            errors.append(f"{prefix}: code has neither 'coding' nor 'text'")

        has_value = any(getattr(obs, name, None) is not None for name in VALUE_FIELDS)
        if self.strict and not has_value and not obs.dataAbsentReason:
            errors.append(f"{prefix}: must have either value[x] or dataAbsentReason")

        for rr_idx, ref_range in enumerate(obs.referenceRange or []):
            if not ref_range.low and not ref_range.high and not ref_range.text:
                errors.append(f"{prefix}: referenceRange[{rr_idx}] must have low, high, or text")

        return errors

    def _validate_patient(self, patient: Patient, prefix: str) -> List[str]:
        return [
            f"{prefix}: direct identifier '{name}' must be redacted"
            for name in REDACTED_FIELDS
            if getattr(patient, name, None)
        ]

    def _validate_condition(self, condition: Condition, prefix: str) -> List[str]:
        errors = []
        if condition.code is None:
            errors.append(f"{prefix}: missing 'code'")
        if condition.subject is None:
            errors.append(f"{prefix}: missing required 'subject'")
        return errors

    def _validate_specimen(self, specimen: Specimen, prefix: str) -> List[str]:
        if not specimen.identifier and specimen.type is None:
            return [f"{prefix}: has neither identifier nor type"]
        return []
