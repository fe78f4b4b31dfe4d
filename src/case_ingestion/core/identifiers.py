# ============================================================================
# src/case_ingestion/core/identifiers.py
# ============================================================================
"""
Synthetic identifier sources

Patient, Practitioner, Organization, Observation, Specimen and Condition
ids are never derived from message content. Assemblers take a source so
that tests and replays can supply deterministic ids.
"""

import itertools
import threading
from typing import Protocol
from uuid import uuid4


class IdentifierSource(Protocol):
    def next_id(self) -> str:
        ...


class UuidIdentifierSource:
    """Fresh random UUID4 per call (default)."""

    def next_id(self) -> str:
        return str(uuid4())


class SequentialIdentifierSource:
    """Deterministic ids: ``<prefix>-0001``, ``<prefix>-0002``, ..."""

    def __init__(self, prefix: str = "id", start: int = 1):
        self.prefix = prefix
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            n = next(self._counter)
        return f"{self.prefix}-{n:04d}"
