# ============================================================================
# src/case_ingestion/core/code_systems.py
# ============================================================================
"""
Code-system canonicalization (CWE.3 abbreviation -> FHIR system URI).
"""

from types import MappingProxyType
from typing import Mapping, Optional

from ..constants.code_systems import CODE_SYSTEM_URIS


class CodeSystemCanonicalizer:
    """
    Immutable lookup; unknown abbreviations pass through unchanged.

    Args:
        table: Base table, defaults to CODE_SYSTEM_URIS
        overrides: Extra or replacement entries (e.g. from settings)
    """

    def __init__(
        self,
        table: Optional[Mapping[str, str]] = None,
        overrides: Optional[Mapping[str, str]] = None
    ):
        merged = dict(CODE_SYSTEM_URIS if table is None else table)
        merged.update(overrides or {})
        self.table = MappingProxyType(merged)

    def canonicalize(self, system: str) -> str:
        return self.table.get(system, system)

    def __call__(self, system: str) -> str:
        return self.canonicalize(system)
