# ============================================================================
# src/case_ingestion/core/extraction.py
# ============================================================================
"""
OBX coded-value extraction

Case reports carry most of their data as question/answer OBX segments:
OBX-3.1 holds the question code, OBX-2 the datatype tag, OBX-5 the answer
and OBX-4 the set id that ties several OBX segments into one repeating
structure (e.g. one exposure address made of country/state/city OBXs).

ObxExtractor is the single implementation used by every assembler.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Optional

from ..hl7v2.adapter import ParsedMessage, Segment
from ..utils.exceptions import GroupKeyError

logger = logging.getLogger(__name__)

OBX = "OBX"
OBX_VALUE_TYPE = 2
OBX_IDENTIFIER = 3
OBX_SUB_ID = 4
OBX_VALUE = 5


@dataclass(frozen=True)
class CodedTriplet:
    """Normalized (code, text, system) answer to one OBX question."""

    source_key: str
    code: str = ""
    text: str = ""
    system: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.code or self.text or self.system)

    def __bool__(self) -> bool:
        return not self.is_empty


def decode_triplet(segment: Segment, source_key: str, first_component_only: bool = False) -> CodedTriplet:
    """
    Decode OBX-5 according to OBX-2.

    CE/CWE keep components 1-3. SN copies component 2 (the number) into
    all three slots. Anything else copies the raw OBX-5 value, or only its
    first component when ``first_component_only`` is set (repeating groups).
    """
    value_type = segment.field(OBX_VALUE_TYPE).value.strip()
    value = segment.field(OBX_VALUE)

    if value_type in ("CE", "CWE"):
        return CodedTriplet(
            source_key=source_key,
            code=value.component(1).value,
            text=value.component(2).value,
            system=value.component(3).value,
        )
    if value_type == "SN":
        number = value.component(2).value
        return CodedTriplet(source_key, number, number, number)

    raw = value.component(1).value if first_component_only else value.value
    return CodedTriplet(source_key, raw, raw, raw)


class TripletGroup(Mapping[str, CodedTriplet]):
    """
    Triplets sharing one OBX-4 group key, indexed by OBX-3.1 code.

    Indexing with a code that has no OBX in this group returns the empty
    default triplet instead of raising KeyError.
    """

    def __init__(self, key: int):
        self.key = key
        self._triplets: Dict[str, CodedTriplet] = {}

    def add(self, triplet: CodedTriplet) -> None:
        self._triplets.setdefault(triplet.source_key, triplet)

    def __getitem__(self, code: str) -> CodedTriplet:
        return self._triplets.get(code) or CodedTriplet(source_key=code)

    def __contains__(self, code: object) -> bool:
        return code in self._triplets

    def __iter__(self) -> Iterator[str]:
        return iter(self._triplets)

    def __len__(self) -> int:
        return len(self._triplets)

    def __repr__(self) -> str:
        return f"TripletGroup({self.key}, {list(self._triplets.values())})"


class ObxExtractor:
    """Locate OBX answers by question code."""

    def matching_segments(self, message: ParsedMessage, code: str) -> List[Segment]:
        """OBX segments whose OBX-3.1 equals ``code`` and whose OBX-5 is not blank."""
        return [
            s for s in message.segments_by_name(OBX)
            if s.field(OBX_IDENTIFIER).component(1).value == code
            and not s.field(OBX_VALUE).is_blank
        ]

    def find_segment(
        self,
        message: ParsedMessage,
        code: str,
        value_types: Optional[Iterable[str]] = None
    ) -> Optional[Segment]:
        """First matching OBX, optionally restricted to OBX-2 datatypes."""
        allowed = set(value_types) if value_types else None
        for segment in self.matching_segments(message, code):
            if allowed is None or segment.field(OBX_VALUE_TYPE).value.strip() in allowed:
                return segment
        return None

    def find(self, message: ParsedMessage, code: str) -> CodedTriplet:
        """
        Resolve a single coded answer.

        Args:
            message: Parsed message
            code: OBX-3.1 question code (LOINC or PHIN identifier)

        Returns:
            Decoded triplet, or the empty triplet carrying only ``code``
            when no OBX answers the question
        """
        segment = self.find_segment(message, code)
        if segment is None:
            logger.debug(f"No OBX answers {code}")
            return CodedTriplet(source_key=code)
        return decode_triplet(segment, code)

    def find_groups(self, message: ParsedMessage, codes: Iterable[str]) -> Dict[int, TripletGroup]:
        """
        Resolve several related codes grouped by OBX-4.

        Args:
            message: Parsed message
            codes: OBX-3.1 codes that together form one repeating structure

        Returns:
            Group key -> TripletGroup, ordered by key. The first OBX per
            (key, code) wins.

        Raises:
            GroupKeyError: If a matching OBX carries a non-integer OBX-4
        """
        groups: Dict[int, TripletGroup] = {}

        for code in codes:
            for segment in self.matching_segments(message, code):
                raw_key = segment.field(OBX_SUB_ID).value.strip()
                try:
                    key = int(raw_key)
                except ValueError as e:
                    raise GroupKeyError(code, raw_key) from e

                group = groups.setdefault(key, TripletGroup(key))
                group.add(decode_triplet(segment, code, first_component_only=True))

        return dict(sorted(groups.items()))
