# ============================================================================
# src/case_ingestion/fhir_utils/specimen.py
# ============================================================================
"""
FHIR Specimen resource builder (SPM segment).

SPM-2 identifier, SPM-4 type, SPM-7 collection method, SPM-8 body site,
SPM-12 grouped specimen count/quantity, SPM-17 collection time,
SPM-18 received time.
"""

import logging
from typing import Optional

from fhir.resources.R4B.identifier import Identifier
from fhir.resources.R4B.quantity import Quantity
from fhir.resources.R4B.reference import Reference
from fhir.resources.R4B.specimen import Specimen, SpecimenCollection

from ..core.code_systems import CodeSystemCanonicalizer
from ..core.identifiers import IdentifierSource, UuidIdentifierSource
from ..hl7v2.adapter import Field, Segment
from .datatypes import concept_from_field, fhir_datetime, text_or_none
from .observation import parse_decimal

logger = logging.getLogger(__name__)

SPM_SPECIMEN_ID = 2
SPM_SPECIMEN_TYPE = 4
SPM_COLLECTION_METHOD = 7
SPM_SOURCE_SITE = 8
SPM_QUANTITY = 12
SPM_COLLECTION_DATETIME = 17
SPM_RECEIVED_DATETIME = 18

QUANTITY_UNIT_TOKENS = 3


class SpecimenAssembler:
    """
    SPM segment -> Specimen.

    Args:
        identifier_source: Supplies the Specimen id
        canonicalizer: Code-system table for type / method / body site / unit system
    """

    def __init__(
        self,
        identifier_source: Optional[IdentifierSource] = None,
        canonicalizer: Optional[CodeSystemCanonicalizer] = None
    ):
        self.identifier_source = identifier_source or UuidIdentifierSource()
        self.canonicalize = canonicalizer or CodeSystemCanonicalizer()

    def assemble(self, segment: Segment, subject: Optional[Reference] = None) -> Specimen:
        specimen_id = text_or_none(segment.field(SPM_SPECIMEN_ID).component(1).value)

        collection = SpecimenCollection(
            method=concept_from_field(segment.field(SPM_COLLECTION_METHOD), self.canonicalize),
            bodySite=concept_from_field(segment.field(SPM_SOURCE_SITE), self.canonicalize),
            collectedDateTime=fhir_datetime(segment.field(SPM_COLLECTION_DATETIME).value),
            quantity=self.quantity(segment.field(SPM_QUANTITY)),
        )
        has_collection = any(
            getattr(collection, name) is not None
            for name in ("method", "bodySite", "collectedDateTime", "quantity")
        )

        return Specimen(
            id=self.identifier_source.next_id(),
            identifier=[Identifier(value=specimen_id)] if specimen_id else None,
            type=concept_from_field(segment.field(SPM_SPECIMEN_TYPE), self.canonicalize),
            subject=subject,
            receivedTime=fhir_datetime(segment.field(SPM_RECEIVED_DATETIME).value),
            collection=collection if has_collection else None,
        )

    def quantity(self, field: Field) -> Optional[Quantity]:
        """
        SPM-12 as ``<value>^<code>&<unit>&<system>``.

        Returns:
            Quantity, or None unless the value is a decimal and the unit
            component splits into at least three ``&`` tokens
        """
        if len(field.components()) < 2:
            return None

        value = parse_decimal(field.component(1).value)
        tokens = field.component(2).subcomponents()
        if value is None or len(tokens) < QUANTITY_UNIT_TOKENS:
            logger.debug(f"SPM-12 {field.value!r} has no usable quantity")
            return None

        code, unit, system = tokens[:QUANTITY_UNIT_TOKENS]
        return Quantity(
            value=value,
            code=text_or_none(code),
            unit=text_or_none(unit),
            system=text_or_none(self.canonicalize(system)),
        )
