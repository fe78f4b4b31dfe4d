# ============================================================================
# src/case_ingestion/core/issues.py
# ============================================================================
"""
Non-fatal conversion issues

A ConversionIssue is attached to the result (and logged at WARNING)
whenever a value was decoded lossily or dropped, so callers can tell a
clean conversion from a degraded one.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class IssueKind(str, Enum):
    DECODE_FALLBACK = "decode-fallback"            # numeric value kept as text
    UNMAPPED_DATATYPE = "unmapped-datatype"        # OBX-2 tag with no handler
    UNSUPPORTED_VALUE_SHAPE = "unsupported-shape"  # e.g. SN with a comparator
    INVALID_TIMESTAMP = "invalid-timestamp"        # DT/TS that is not a real date


@dataclass(frozen=True)
class ConversionIssue:
    kind: IssueKind
    message: str
    segment: str = ""
    segment_index: Optional[int] = None
    code: str = ""

    def log(self, logger: logging.Logger) -> None:
        logger.warning(
            f"{self.kind.value}: {self.message}",
            extra={
                "issue_kind": self.kind.value,
                "segment": self.segment,
                "segment_index": self.segment_index,
            },
        )
