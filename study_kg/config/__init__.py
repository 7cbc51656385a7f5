"""
Configuration System

Manages configuration for StudyKG with a layered approach.

Configuration Priority (highest to lowest):
    1. Programmatic (passed to KGConfig()) or config file (KGConfig.from_file)
    2. Environment variables (STUDYKG_* prefix)
    3. Built-in defaults

Modules:
    settings: KGConfig class
    profiles: Adaptive processing tiers
    pricing: Model pricing for cost telemetry
"""

from study_kg.config.profiles import TIER_PROFILES, TierProfile
from study_kg.config.settings import KGConfig

__all__ = ["KGConfig", "TierProfile", "TIER_PROFILES"]
