# ============================================================================
# src/case_ingestion/hl7v2/adapter.py
# ============================================================================
"""
HL7 v2 Field Addressing Adapter

Read-only, 1-based view over a message parsed by the ``hl7`` library.

python-hl7 only nests a container when the text holds a lower-level
separator, so the same position can come back as a ``str`` or as a
Field/Repetition/Component list. Everything here goes through
``_children`` so callers never see that difference.

Absent positions (past the end of a segment, field or component) yield
empty values, never an IndexError.
"""

import logging
from typing import Any, List, Optional

import hl7

from ..utils.exceptions import MessageParseError, MissingSegmentError, ShortSegmentError

logger = logging.getLogger(__name__)

SEGMENT_TERMINATOR = "\r"


def _children(node: Any) -> List[Any]:
    """Child nodes of a parse-tree node; a leaf string is its own only child."""
    if node is None:
        return [""]
    if isinstance(node, str):
        return [node]
    return list(node)


def _text(node: Any) -> str:
    return "" if node is None else str(node)


class Component:
    """One component (``^``) of a field repetition."""

    def __init__(self, node: Any = None):
        self._node = node

    @property
    def value(self) -> str:
        return _text(self._node)

    def subcomponents(self) -> List[str]:
        return [_text(s) for s in _children(self._node)]

    def subcomponent(self, index: int) -> str:
        subs = self.subcomponents()
        if index < 1 or index > len(subs):
            return ""
        return subs[index - 1]

    def __repr__(self) -> str:
        return f"Component({self.value!r})"


class Field:
    """
    One field position of a segment.

    ``components()`` reads the first repetition; use ``repetitions()``
    to walk the others.
    """

    def __init__(self, node: Any = None, repetition_nodes: Optional[List[Any]] = None):
        self._node = node
        if repetition_nodes is None:
            repetition_nodes = _children(node)
        self._repetitions = repetition_nodes or [""]

    @property
    def value(self) -> str:
        return _text(self._node)

    @property
    def is_blank(self) -> bool:
        return not self.value.strip()

    @property
    def has_repetitions(self) -> bool:
        return len(self._repetitions) > 1

    def repetitions(self) -> List["Field"]:
        return [Field(rep, [rep]) for rep in self._repetitions]

    def components(self) -> List[Component]:
        return [Component(c) for c in _children(self._repetitions[0])]

    def component(self, index: int) -> Component:
        components = self.components()
        if index < 1 or index > len(components):
            return Component("")
        return components[index - 1]

    def __repr__(self) -> str:
        return f"Field({self.value!r})"


class Segment:
    """A named segment; ``field(n)`` is HL7 numbering (MSH-3 is ``field(3)``)."""

    def __init__(self, node: Any, index: int = 0):
        self._node = node
        self._items = _children(node)
        self.index = index

    @property
    def name(self) -> str:
        return _text(self._items[0])[:3]

    @property
    def field_count(self) -> int:
        return len(self._items) - 1

    def field(self, index: int) -> Field:
        if index < 1 or index > self.field_count:
            return Field("")
        return Field(self._items[index])

    def require_fields(self, count: int) -> "Segment":
        """Raise ShortSegmentError unless at least ``count`` fields are present."""
        if self.field_count < count:
            raise ShortSegmentError(self.name, count, self.field_count)
        return self

    def __str__(self) -> str:
        return _text(self._node)

    def __repr__(self) -> str:
        return f"Segment({self.name}, fields={self.field_count})"


class ParsedMessage:
    """Ordered segments of one parsed HL7 v2 message."""

    def __init__(self, segments: List[Segment], raw: str = ""):
        self.segments = segments
        self.raw = raw

    @classmethod
    def from_hl7(cls, message: Any, raw: str = "") -> "ParsedMessage":
        """Wrap an ``hl7.Message`` (or any list of segment nodes)."""
        return cls([Segment(node, i) for i, node in enumerate(message)], raw=raw)

    def segments_by_name(self, name: str) -> List[Segment]:
        return [s for s in self.segments if s.name == name]

    def first(self, name: str) -> Optional[Segment]:
        for segment in self.segments:
            if segment.name == name:
                return segment
        return None

    def require(self, name: str) -> Segment:
        """First segment called ``name``; raises MissingSegmentError if there is none."""
        segment = self.first(name)
        if segment is None:
            raise MissingSegmentError(name)
        return segment

    @property
    def message_control_id(self) -> str:
        msh = self.first("MSH")
        return msh.field(10).value if msh else ""

    @property
    def message_type(self) -> str:
        msh = self.first("MSH")
        return msh.field(9).value if msh else ""

    def __len__(self) -> int:
        return len(self.segments)


def normalize_segment_terminators(text: str) -> str:
    """Convert LF / CRLF line endings to the HL7 segment terminator."""
    return text.replace("\r\n", SEGMENT_TERMINATOR).replace("\n", SEGMENT_TERMINATOR)


def parse_message(text: str) -> ParsedMessage:
    """
    Parse raw HL7 v2 text into a ParsedMessage.

    Args:
        text: One pipe/caret-delimited message starting with MSH

    Returns:
        ParsedMessage view over the hl7 library parse tree

    Raises:
        MessageParseError: If the text is empty, does not start with MSH,
            or the hl7 library rejects it
    """
    if not text or not text.strip():
        raise MessageParseError("HL7 message cannot be empty")

    normalized = normalize_segment_terminators(text.strip())
    if not normalized.startswith("MSH"):
        raise MessageParseError("HL7 message must start with an MSH segment")

    try:
        parsed = hl7.parse(normalized)
    except Exception as e:
        raise MessageParseError(f"Unable to parse HL7 message: {e}") from e

    message = ParsedMessage.from_hl7(parsed, raw=text)
    logger.debug(f"Parsed HL7 message with {len(message)} segments")
    return message
