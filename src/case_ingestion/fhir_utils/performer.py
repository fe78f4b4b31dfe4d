# ============================================================================
# src/case_ingestion/fhir_utils/performer.py
# ============================================================================
"""
FHIR Practitioner / Organization builders for OBX performers.

- OBX-25 (XCN): responsible observer / medical director -> Practitioner
- OBX-23 (XON) + OBX-24 (XAD): performing organization -> Organization

Both return None when the backing field is blank so the Observation
carries no performer reference for it.
"""

from typing import List, Optional

from fhir.resources.R4B.humanname import HumanName
from fhir.resources.R4B.identifier import Identifier
from fhir.resources.R4B.organization import Organization
from fhir.resources.R4B.practitioner import Practitioner

from ..core.identifiers import IdentifierSource, UuidIdentifierSource
from ..hl7v2.adapter import Segment
from .datatypes import build_address, text_or_none

OBX_PERFORMING_ORGANIZATION = 23
OBX_PERFORMING_ORGANIZATION_ADDRESS = 24
OBX_RESPONSIBLE_OBSERVER = 25


class PerformerAssembler:
    """
    Builds performer resources from one OBX segment.

    Args:
        identifier_source: Supplies Practitioner / Organization ids
    """

    def __init__(self, identifier_source: Optional[IdentifierSource] = None):
        self.identifier_source = identifier_source or UuidIdentifierSource()

    def practitioner(self, segment: Segment) -> Optional[Practitioner]:
        """
        OBX-25 -> Practitioner.

        XCN components: 1 id, 2 family, 3 given, 5 suffix, 6 prefix,
        9 assigning authority (subcomponent 2 is the identifier system).
        """
        field = segment.field(OBX_RESPONSIBLE_OBSERVER)
        if field.is_blank:
            return None

        id_value = text_or_none(field.component(1).value)
        identifier = None
        if id_value:
            identifier = [Identifier(
                value=id_value,
                system=text_or_none(field.component(9).subcomponent(2)),
            )]

        return Practitioner(
            id=self.identifier_source.next_id(),
            identifier=identifier,
            name=self._name(
                prefix=field.component(6).value,
                given=field.component(3).value,
                family=field.component(2).value,
                suffix=field.component(5).value,
            ),
        )

    def organization(self, segment: Segment) -> Optional[Organization]:
        """OBX-23.1 name, OBX-24 address (lines from the subcomponents of 24.1)."""
        field = segment.field(OBX_PERFORMING_ORGANIZATION)
        if field.is_blank:
            return None

        address_field = segment.field(OBX_PERFORMING_ORGANIZATION_ADDRESS)
        address = build_address(
            lines=address_field.component(1).subcomponents(),
            city=address_field.component(3).value,
            district=address_field.component(4).value,
            postal_code=address_field.component(5).value,
        )

        return Organization(
            id=self.identifier_source.next_id(),
            name=text_or_none(field.component(1).value),
            address=[address] if address else None,
        )

    @staticmethod
    def _name(prefix: str, given: str, family: str, suffix: str) -> Optional[List[HumanName]]:
        parts = [p.strip() for p in (prefix, given, family, suffix) if text_or_none(p)]
        if not parts:
            return None

        return [HumanName(
            text=" ".join(parts),
            family=text_or_none(family),
            given=[given] if text_or_none(given) else None,
            prefix=[prefix] if text_or_none(prefix) else None,
            suffix=[suffix] if text_or_none(suffix) else None,
        )]
