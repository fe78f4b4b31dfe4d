# ============================================================================
# FILE: tests/unit/test_fhir_validator.py
# ============================================================================
"""
Unit tests for FHIR validator
"""

import pytest
from datetime import datetime, timezone
from fhir.resources.R4B.bundle import Bundle, BundleEntry
from fhir.resources.R4B.codeableconcept import CodeableConcept
from fhir.resources.R4B.composition import Composition
from fhir.resources.R4B.condition import Condition
from fhir.resources.R4B.humanname import HumanName
from fhir.resources.R4B.observation import Observation, ObservationReferenceRange
from fhir.resources.R4B.patient import Patient
from fhir.resources.R4B.reference import Reference
from fhir.resources.R4B.specimen import Specimen
from case_ingestion.fhir_utils.validator import FHIRValidator


NOW = datetime(2023, 6, 15, 18, 0, 0, tzinfo=timezone.utc)


def _composition():
    return Composition(
        id="doc-1",
        status="final",
        type=CodeableConcept(text="Case report"),
        date=NOW,
        author=[Reference(display="STATE_DOH")],
        title="Public Health Case Report",
    )


def _bundle(*resources):
    return Bundle(
        id="doc-1",
        type="document",
        timestamp=NOW,
        entry=[BundleEntry(fullUrl=f"urn:uuid:{r.id}", resource=r) for r in resources],
    )


def test_fhir_validator_init():
    """Test FHIR validator initialization"""
    assert FHIRValidator().strict is False
    assert FHIRValidator(strict=True).strict is True


def test_validate_valid_document():
    validator = FHIRValidator()
    patient = Patient(id="p-1")

    is_valid, errors = validator.validate_bundle(_bundle(_composition(), patient))

    assert is_valid is True
    assert errors == []


def test_validate_bundle_missing_id():
    bundle = _bundle(_composition())
    bundle.id = None

    is_valid, errors = FHIRValidator().validate_bundle(bundle)

    assert is_valid is False
    assert any("missing required 'id'" in e for e in errors)


def test_validate_bundle_wrong_type():
    bundle = _bundle(_composition())
    bundle.type = "collection"

    is_valid, errors = FHIRValidator().validate_bundle(bundle)

    assert is_valid is False
    assert any("Invalid bundle type" in e for e in errors)


def test_validate_bundle_composition_not_first():
    is_valid, errors = FHIRValidator().validate_bundle(_bundle(Patient(id="p-1"), _composition()))

    assert is_valid is False
    assert any("start with a Composition" in e for e in errors)


def test_validate_entry_missing_full_url():
    bundle = _bundle(_composition(), Patient(id="p-1"))
    bundle.entry[1].fullUrl = None

    is_valid, errors = FHIRValidator().validate_bundle(bundle)

    assert is_valid is False
    assert any("Entry 1: missing fullUrl" in e for e in errors)


def test_validate_observation_valid():
    observation = Observation(
        id="obs-1",
        status="final",
        code=CodeableConcept(text="Glucose"),
        valueString="42.5",
    )

    is_valid, errors = FHIRValidator(strict=True).validate_resource(observation)

    assert is_valid is True


def test_validate_observation_unknown_status_is_allowed():
    observation = Observation(id="obs-1", status="unknown", code=CodeableConcept(text="Glucose"))
    is_valid, errors = FHIRValidator().validate_resource(observation)
    assert is_valid is True


def test_validate_observation_without_value():
    """Only strict mode requires value[x]"""
    observation = Observation(id="obs-1", status="final", code=CodeableConcept(text="Mystery"))

    assert FHIRValidator().validate_resource(observation)[0] is True

    is_valid, errors = FHIRValidator(strict=True).validate_resource(observation)
    assert is_valid is False
    assert any("value[x] or dataAbsentReason" in e for e in errors)


def test_validate_observation_empty_reference_range():
    observation = Observation(
        id="obs-1",
        status="final",
        code=CodeableConcept(text="Glucose"),
        referenceRange=[ObservationReferenceRange(text="70-99")],
    )
    observation.referenceRange[0].text = None

    is_valid, errors = FHIRValidator().validate_resource(observation)

    assert is_valid is False
    assert any("referenceRange[0]" in e for e in errors)


def test_validate_patient_not_redacted():
    patient = Patient(id="p-1", name=[HumanName(family="Doe")])

    is_valid, errors = FHIRValidator().validate_resource(patient)

    assert is_valid is False
    assert any("'name' must be redacted" in e for e in errors)


def test_validate_condition_missing_code():
    condition = Condition(id="c-1", subject=Reference(reference="urn:uuid:p-1"))

    is_valid, errors = FHIRValidator().validate_resource(condition)

    assert is_valid is False
    assert any("missing 'code'" in e for e in errors)


@pytest.mark.parametrize("specimen, expected", [
    (Specimen(id="s-1"), False),
    (Specimen(id="s-1", type=CodeableConcept(text="Blood")), True),
])
def test_validate_specimen(specimen, expected):
    assert FHIRValidator().validate_resource(specimen)[0] is expected
