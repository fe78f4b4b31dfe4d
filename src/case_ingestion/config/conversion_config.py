# ============================================================================
# src/case_ingestion/config/conversion_config.py
# ============================================================================
"""
Conversion Settings
- OBX codes that never become Observation resources
- Extra code-system abbreviations
"""

from typing import Dict, List

from pydantic import Field
from pydantic_settings import BaseSettings

class ConversionSettings(BaseSettings):
    EXCLUDED_OBSERVATION_CODES: List[str] = Field(
        default_factory=lambda: ["78746-5", "21842-0"],
        description="OBX-3.1 codes consumed elsewhere (birth place) and not emitted as Observations"
    )
    CODE_SYSTEM_OVERRIDES: Dict[str, str] = Field(
        default_factory=dict,
        description="Abbreviation -> URI pairs merged over the built-in code-system table"
    )

conversion_settings = ConversionSettings()
