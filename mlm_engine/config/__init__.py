"""Configuration: runtime settings, career levels and commission structures."""

from mlm_engine.config.career_levels import (
    CAREER_LEVELS,
    CareerLevelConfig,
    CareerLevelType,
    get_career_level,
    get_level_by_number,
    get_passive_income_rate,
)
from mlm_engine.config.commission_structures import (
    ClassicCommissionStructure,
    CommissionSettings,
    LegScoreWeights,
    MembershipRequirements,
    MonolineCommissionStructure,
    PlacementScoring,
    get_default_commission_settings,
    load_commission_settings,
)
from mlm_engine.config.settings import Settings, settings

__all__ = [
    "CAREER_LEVELS",
    "CareerLevelConfig",
    "CareerLevelType",
    "ClassicCommissionStructure",
    "CommissionSettings",
    "LegScoreWeights",
    "MembershipRequirements",
    "MonolineCommissionStructure",
    "PlacementScoring",
    "Settings",
    "get_career_level",
    "get_default_commission_settings",
    "get_level_by_number",
    "get_passive_income_rate",
    "load_commission_settings",
    "settings",
]
