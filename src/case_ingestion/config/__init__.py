# ============================================================================
# src/case_ingestion/config/__init__.py
# ============================================================================
"""
Convenient imports for all settings
"""

from .fhir_config import fhir_settings, FHIRSettings
from .conversion_config import conversion_settings, ConversionSettings
from .logging_config import logging_settings, LoggingSettings
