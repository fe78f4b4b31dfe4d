# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.
"""

from datetime import datetime, timezone

import pytest

from case_ingestion.core.identifiers import SequentialIdentifierSource
from case_ingestion.hl7v2 import parse_message

from hl7_samples import FULL_OBR, FULL_OBX, FULL_PID, FULL_SPM, MINIMAL_OBR, MINIMAL_PID, build_message


@pytest.fixture
def minimal_message_text():
    """MSH + OBR (case 12345^Disease^LN) + PID, nothing else."""
    return build_message(MINIMAL_OBR, MINIMAL_PID)


@pytest.fixture
def minimal_message(minimal_message_text):
    return parse_message(minimal_message_text)


@pytest.fixture
def case_message_text():
    """Full case notification: OBR with OBR-31, PID, case OBXs, a lab OBX and an SPM."""
    return build_message(FULL_PID, FULL_OBR, *FULL_OBX, FULL_SPM)


@pytest.fixture
def case_message(case_message_text):
    return parse_message(case_message_text)


@pytest.fixture
def obx_segment():
    """Factory: parse one OBX line and return its Segment."""
    def _make(line: str):
        return parse_message(build_message(line)).segments_by_name("OBX")[0]
    return _make


@pytest.fixture
def sequential_ids():
    return SequentialIdentifierSource(prefix="test")


@pytest.fixture
def fixed_clock():
    moment = datetime(2023, 6, 15, 18, 0, 0, tzinfo=timezone.utc)
    return lambda: moment
