"""
Single source of truth for career levels.

Career levels drive the commission rate shown to members, the passive
income rate used by the classic passive-income ladder and the career bonus
applied during exhaustive placement scoring.
"""

from decimal import Decimal
from enum import Enum
from typing import NamedTuple


class CareerLevelType(str, Enum):
    """Career level identifiers."""

    LEVEL_1 = "level_1"
    LEVEL_2 = "level_2"
    LEVEL_3 = "level_3"
    LEVEL_4 = "level_4"
    LEVEL_5 = "level_5"
    LEVEL_6 = "level_6"
    LEVEL_7 = "level_7"


class CareerLevelConfig(NamedTuple):
    """Career level row."""

    level_type: CareerLevelType
    level_number: int
    display_name: str
    min_investment: Decimal  # Lifetime investment required
    min_direct_referrals: int
    commission_rate: Decimal  # Percent
    passive_income_rate: Decimal  # Percent, feeds the classic passive ladder
    bonus: Decimal  # One-off rank bonus


CAREER_LEVELS: dict[CareerLevelType, CareerLevelConfig] = {
    CareerLevelType.LEVEL_1: CareerLevelConfig(
        level_type=CareerLevelType.LEVEL_1,
        level_number=1,
        display_name="Nefs-i Emmare",
        min_investment=Decimal("0"),
        min_direct_referrals=0,
        commission_rate=Decimal("2"),
        passive_income_rate=Decimal("0"),
        bonus=Decimal("0"),
    ),
    CareerLevelType.LEVEL_2: CareerLevelConfig(
        level_type=CareerLevelType.LEVEL_2,
        level_number=2,
        display_name="Nefs-i Levvame",
        min_investment=Decimal("500"),
        min_direct_referrals=2,
        commission_rate=Decimal("3"),
        passive_income_rate=Decimal("0.5"),
        bonus=Decimal("50"),
    ),
    CareerLevelType.LEVEL_3: CareerLevelConfig(
        level_type=CareerLevelType.LEVEL_3,
        level_number=3,
        display_name="Nefs-i Mülhime",
        min_investment=Decimal("1500"),
        min_direct_referrals=4,
        commission_rate=Decimal("4"),
        passive_income_rate=Decimal("1"),
        bonus=Decimal("150"),
    ),
    CareerLevelType.LEVEL_4: CareerLevelConfig(
        level_type=CareerLevelType.LEVEL_4,
        level_number=4,
        display_name="Nefs-i Mutmainne",
        min_investment=Decimal("3000"),
        min_direct_referrals=10,
        commission_rate=Decimal("5"),
        passive_income_rate=Decimal("1.5"),
        bonus=Decimal("300"),
    ),
    CareerLevelType.LEVEL_5: CareerLevelConfig(
        level_type=CareerLevelType.LEVEL_5,
        level_number=5,
        display_name="Nefs-i Râziye",
        min_investment=Decimal("5000"),
        min_direct_referrals=2,
        commission_rate=Decimal("6"),
        passive_income_rate=Decimal("2"),
        bonus=Decimal("500"),
    ),
    CareerLevelType.LEVEL_6: CareerLevelConfig(
        level_type=CareerLevelType.LEVEL_6,
        level_number=6,
        display_name="Nefs-i Mardiyye",
        min_investment=Decimal("10000"),
        min_direct_referrals=50,
        commission_rate=Decimal("8"),
        passive_income_rate=Decimal("3"),
        bonus=Decimal("1000"),
    ),
    CareerLevelType.LEVEL_7: CareerLevelConfig(
        level_type=CareerLevelType.LEVEL_7,
        level_number=7,
        display_name="Nefs-i Kâmile",
        min_investment=Decimal("25000"),
        min_direct_referrals=3,
        commission_rate=Decimal("12"),
        passive_income_rate=Decimal("4"),
        bonus=Decimal("2500"),
    ),
}

# Ordered view used by lookups
CAREER_LEVEL_ORDER: list[CareerLevelType] = [
    CareerLevelType.LEVEL_1,
    CareerLevelType.LEVEL_2,
    CareerLevelType.LEVEL_3,
    CareerLevelType.LEVEL_4,
    CareerLevelType.LEVEL_5,
    CareerLevelType.LEVEL_6,
    CareerLevelType.LEVEL_7,
]

MAX_CAREER_LEVEL = len(CAREER_LEVEL_ORDER)


def get_level_by_number(level_number: int) -> CareerLevelConfig | None:
    """
    Get career level by its number (1-7).

    Args:
        level_number: Level number

    Returns:
        Level config or None if out of range
    """
    if 1 <= level_number <= MAX_CAREER_LEVEL:
        return CAREER_LEVELS[CAREER_LEVEL_ORDER[level_number - 1]]
    return None


def get_career_level(
    investment: Decimal, direct_referrals: int
) -> CareerLevelConfig:
    """
    Highest career level whose thresholds are both met.

    Levels are scanned in order and the last one satisfied wins, so a
    level with a lower referral requirement than its predecessor can still
    be reached.

    Args:
        investment: Lifetime investment
        direct_referrals: Number of directly sponsored members

    Returns:
        Matching career level (level 1 at minimum)
    """
    current = CAREER_LEVELS[CAREER_LEVEL_ORDER[0]]
    for level_type in CAREER_LEVEL_ORDER:
        level = CAREER_LEVELS[level_type]
        if (
            investment >= level.min_investment
            and direct_referrals >= level.min_direct_referrals
        ):
            current = level
    return current


def get_passive_income_rate(level_number: int) -> Decimal:
    """Passive income rate (percent) for a level number, 0 when unknown."""
    level = get_level_by_number(level_number)
    if level is None:
        return Decimal("0")
    return level.passive_income_rate
