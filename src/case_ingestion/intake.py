# ============================================================================
# src/case_ingestion/intake.py
# ============================================================================
"""
Raw payload intake: format sniffing and fingerprinting.

Only a single HL7 v2 message (starts with MSH) goes on to conversion.
Batch files (BHS) and FHIR JSON are recognized so they can be rejected
with a clear error.
"""

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from .utils.exceptions import UnsupportedMessageError

logger = logging.getLogger(__name__)


class ContentFormat(str, Enum):
    HL7V2 = "hl7v2"
    HL7V2_BATCH = "hl7v2-batch"
    FHIR_JSON = "fhir"
    XML = "xml"
    UNKNOWN = "unknown"

    @property
    def content_type(self) -> str:
        if self is ContentFormat.FHIR_JSON:
            return "application/json"
        if self is ContentFormat.XML:
            return "application/xml"
        return "text/plain"

    @property
    def file_extension(self) -> str:
        return {
            ContentFormat.HL7V2: ".hl7",
            ContentFormat.HL7V2_BATCH: ".hl7",
            ContentFormat.FHIR_JSON: ".json",
            ContentFormat.XML: ".xml",
        }.get(self, ".txt")


def detect_content_format(text: str) -> ContentFormat:
    """Classify a payload by its first non-blank characters."""
    head = (text or "").lstrip()
    if head.startswith("MSH"):
        return ContentFormat.HL7V2
    if head.startswith(("BHS", "FHS")):
        return ContentFormat.HL7V2_BATCH
    if head.startswith("{"):
        return ContentFormat.FHIR_JSON
    if head.startswith("<"):
        return ContentFormat.XML
    return ContentFormat.UNKNOWN


def compute_sha256(text: str) -> str:
    """Lower-case hex SHA-256 of the UTF-8 payload."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass
class ReceivedMessage:
    """Envelope for one received payload."""
    content: str
    sender: str = "Unknown"
    id: str = field(default_factory=lambda: str(uuid4()))
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    content_format: Optional[ContentFormat] = None
    sha256: str = ""

    def __post_init__(self):
        if self.content_format is None:
            self.content_format = detect_content_format(self.content)
        self.sha256 = compute_sha256(self.content)

    @property
    def preferred_file_extension(self) -> str:
        return self.content_format.file_extension

    @property
    def storage_name(self) -> str:
        return f"{self.id}{self.preferred_file_extension}"

    def require_hl7v2(self) -> str:
        """
        Content of a single HL7 v2 message.

        Raises:
            UnsupportedMessageError: For batch, FHIR, XML or unrecognized payloads
        """
        if self.content_format is not ContentFormat.HL7V2:
            raise UnsupportedMessageError(
                f"Payload {self.id} is {self.content_format.value}, expected a single HL7 v2 message",
                content_format=self.content_format.value,
            )
        return self.content
