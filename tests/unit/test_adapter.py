# ============================================================================
# FILE: tests/unit/test_adapter.py
# ============================================================================
"""
Unit tests for the HL7 v2 field addressing adapter
"""

import pytest

from case_ingestion.hl7v2 import normalize_segment_terminators, parse_message
from case_ingestion.utils.exceptions import MessageParseError, MissingSegmentError, ShortSegmentError


def test_segments_by_name(case_message):
    """Segments are found by name in message order"""
    assert len(case_message.segments_by_name("PID")) == 1
    assert len(case_message.segments_by_name("OBX")) == 19
    assert case_message.segments_by_name("NTE") == []


def test_msh_numbering(case_message):
    """MSH-n is field(n) even though MSH-1 is the field separator itself"""
    assert case_message.message_control_id == "MSG00001"
    assert case_message.message_type == "ORU^R01^ORU_R01"
    msh = case_message.first("MSH")
    assert msh.field(4).component(1).value == "STATE_DOH"


def test_field_component_subcomponent(case_message):
    """1-based field/component/subcomponent access"""
    pid = case_message.require("PID")
    assert pid.field(7).value == "19850312"
    assert pid.field(11).component(3).value == "Savannah"
    assert pid.field(11).component(9).value == "13051"
    assert pid.field(3).component(4).subcomponents() == ["STATE", "2.16.840.1.114222", "ISO"]
    assert pid.field(3).component(4).subcomponent(2) == "2.16.840.1.114222"


def test_absent_positions_are_empty(case_message):
    """Past-the-end positions yield empty values, never IndexError"""
    pid = case_message.require("PID")
    assert pid.field(250).value == ""
    assert pid.field(250).is_blank
    assert pid.field(7).component(5).value == ""
    assert pid.field(7).component(1).subcomponent(3) == ""
    assert pid.field(0).value == ""


def test_single_component_field(case_message):
    """A plain value is its own first component"""
    pid = case_message.require("PID")
    components = pid.field(8).components()
    assert len(components) == 1
    assert components[0].value == "F"


def test_repetitions(case_message):
    """Repeating fields expose every repetition; components read the first"""
    race = case_message.require("PID").field(10)
    assert race.has_repetitions
    reps = race.repetitions()
    assert [r.component(1).value for r in reps] == ["2106-3", "2054-5"]
    assert race.component(2).value == "White"


def test_single_instance_is_one_repetition(case_message):
    """A non-repeating field is one repetition of itself"""
    ethnicity = case_message.require("PID").field(22)
    assert not ethnicity.has_repetitions
    assert len(ethnicity.repetitions()) == 1
    assert ethnicity.repetitions()[0].component(1).value == "2186-5"


def test_require_missing_segment(minimal_message):
    """Missing required segment raises MissingSegmentError"""
    with pytest.raises(MissingSegmentError) as exc_info:
        minimal_message.require("SPM")
    assert exc_info.value.segment == "SPM"


def test_require_fields(minimal_message):
    """Short segment raises ShortSegmentError with counts"""
    obr = minimal_message.require("OBR")
    assert obr.require_fields(3) is obr

    with pytest.raises(ShortSegmentError) as exc_info:
        obr.require_fields(31)
    assert exc_info.value.required == 31
    assert exc_info.value.actual == obr.field_count


def test_parse_accepts_newlines(minimal_message_text):
    """LF and CRLF line endings are accepted"""
    message = parse_message(minimal_message_text.replace("\r", "\r\n"))
    assert [s.name for s in message.segments] == ["MSH", "OBR", "PID"]


def test_normalize_segment_terminators():
    assert normalize_segment_terminators("A\r\nB\nC") == "A\rB\rC"


@pytest.mark.parametrize("text", ["", "   ", "PID|1||123", "{\"resourceType\": \"Bundle\"}"])
def test_parse_rejects_non_hl7(text):
    """Empty text and text not starting with MSH are rejected"""
    with pytest.raises(MessageParseError):
        parse_message(text)
