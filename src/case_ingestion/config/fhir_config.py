# ============================================================================
# src/case_ingestion/config/fhir_config.py
# ============================================================================
"""
FHIR Output Settings
- Validation
- Document metadata
"""

from pydantic import Field
from pydantic_settings import BaseSettings

class FHIRSettings(BaseSettings):
    FHIR_VALIDATE: bool = Field(
        default=True,
        description="Run structural validation on converted resources and log failures"
    )
    DOCUMENT_TITLE: str = Field(
        default="Public Health Case Report",
        description="Title of the eICR Composition"
    )
    DEFAULT_AUTHOR_DISPLAY: str = Field(
        default="Unknown sending facility",
        description="Composition author when MSH-4 is blank"
    )

fhir_settings = FHIRSettings()
