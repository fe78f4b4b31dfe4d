# ============================================================================
# FILE: tests/unit/test_patient.py
# ============================================================================
"""
Unit tests for the redacted Patient builder
"""

import pytest

from case_ingestion.constants.code_systems import (
    BIRTH_PLACE_URL,
    OMB_CATEGORY_URL,
    OMB_CODING_SYSTEM,
    US_CORE_ETHNICITY_URL,
    US_CORE_RACE_URL,
)
from case_ingestion.core.identifiers import SequentialIdentifierSource
from case_ingestion.fhir_utils.patient import PatientAssembler, redact
from case_ingestion.hl7v2 import parse_message
from case_ingestion.utils.exceptions import MissingSegmentError

from hl7_samples import MINIMAL_OBR, build_message, build_segment


@pytest.fixture
def assembler(sequential_ids):
    return PatientAssembler(sequential_ids)


def _pid_message(**fields):
    numbered = {int(k[1:]): v for k, v in fields.items()}
    return parse_message(build_message(MINIMAL_OBR, build_segment("PID", {1: "1", **numbered})))


def _extensions(patient, url):
    return [e for e in (patient.extension or []) if e.url == url]


def test_minimal_patient(assembler, minimal_message):
    patient = assembler.assemble(minimal_message)

    assert patient.id == "test-0001"
    assert patient.active is True
    assert patient.identifier[0].value == patient.id
    assert patient.gender == "male"
    assert str(patient.birthDate) == "1990-01-01"

    address = patient.address[0]
    assert address.city == "Atlanta"
    assert address.state == "GA"
    assert address.postalCode == "30333"
    assert address.country == "USA"
    assert address.district == "13121"


def test_direct_identifiers_are_cleared(assembler, minimal_message):
    """PID-5 and PID-13 are populated in the message but never emitted"""
    patient = assembler.assemble(minimal_message)
    assert patient.name is None
    assert patient.telecom is None
    assert patient.contact is None
    assert patient.photo is None


def test_patient_id_not_taken_from_pid3(assembler, minimal_message):
    patient = assembler.assemble(minimal_message)
    assert "LOCAL-123" not in patient.model_dump_json()


def test_explicit_patient_id(assembler, minimal_message):
    assert assembler.assemble(minimal_message, patient_id="p-1").id == "p-1"


def test_redaction_is_idempotent(minimal_message):
    """Two independent runs give the same output; redacting twice changes nothing"""
    first = PatientAssembler(SequentialIdentifierSource(prefix="run")).assemble(minimal_message)
    second = PatientAssembler(SequentialIdentifierSource(prefix="run")).assemble(minimal_message)
    assert first.model_dump() == second.model_dump()

    again = redact(second)
    assert again.model_dump() == first.model_dump()


@pytest.mark.parametrize("code, gender", [
    ("M", "male"),
    ("F", "female"),
    ("U", "unknown"),
    ("O", "other"),
    ("X", None),
    ("", None),
])
def test_gender_mapping(assembler, code, gender):
    patient = assembler.assemble(_pid_message(f8=code))
    assert patient.gender == gender


def test_short_birth_date_is_unset(assembler):
    assert assembler.assemble(_pid_message(f7="1990")).birthDate is None


def test_invalid_birth_date_is_unset(assembler):
    assert assembler.assemble(_pid_message(f7="19901345")).birthDate is None


def test_blank_address_is_omitted(assembler):
    assert assembler.assemble(_pid_message(f8="F")).address is None


def test_race_repetitions(assembler, case_message):
    patient = assembler.assemble(case_message)

    race = _extensions(patient, US_CORE_RACE_URL)[0]
    categories = [e for e in race.extension if e.url == OMB_CATEGORY_URL]
    assert [c.valueCoding.code for c in categories] == ["2106-3", "2054-5"]
    assert categories[1].valueCoding.display == "Black or African American"
    assert categories[0].valueCoding.system == OMB_CODING_SYSTEM

    ethnicity = _extensions(patient, US_CORE_ETHNICITY_URL)[0]
    assert ethnicity.extension[0].valueCoding.code == "2186-5"


def test_no_race_no_extension(assembler, minimal_message):
    patient = assembler.assemble(minimal_message)
    assert patient.extension is None


def test_deceased_datetime(assembler, case_message):
    patient = assembler.assemble(case_message)
    assert patient.deceasedDateTime.isoformat() == "2023-06-20T00:00:00+00:00"


def test_birth_place_only_when_requested(assembler, case_message):
    assert _extensions(assembler.assemble(case_message), BIRTH_PLACE_URL) == []

    patient = assembler.assemble(case_message, birth_place=True)
    birth_place = _extensions(patient, BIRTH_PLACE_URL)[0]
    assert birth_place.valueAddress.country == "United States"
    assert birth_place.valueAddress.text == "Born at sea"


def test_birth_place_absent_without_answers(assembler, minimal_message):
    patient = assembler.assemble(minimal_message, birth_place=True)
    assert _extensions(patient, BIRTH_PLACE_URL) == []


def test_missing_pid(assembler):
    message = parse_message(build_message(MINIMAL_OBR))
    with pytest.raises(MissingSegmentError) as exc_info:
        assembler.assemble(message)
    assert exc_info.value.segment == "PID"
