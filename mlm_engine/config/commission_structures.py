"""
Commission structure configuration.

Immutable pydantic value types that parameterize the calculators. Defaults
come from ``get_default_commission_settings()``; raw configuration is
validated once by ``load_commission_settings()``. Calculators receive these
objects already validated and never re-check them.
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from mlm_engine.utils.exceptions import InvalidConfigurationError
from mlm_engine.utils.money import quantize_money

DEPTH_LEVEL_COUNT = 7

_FROZEN = ConfigDict(frozen=True, extra="forbid")


class ClassicCommissionStructure(BaseModel):
    """Percentage split of an investment (rates are fractions of 1)."""

    model_config = _FROZEN

    sponsor_rate: Decimal = Field(default=Decimal("0.10"), ge=0, le=1)
    depth_pool_rate: Decimal = Field(default=Decimal("0.25"), ge=0, le=1)
    depth_level_rates: tuple[Decimal, ...] = Field(
        default=(
            Decimal("0.08"),
            Decimal("0.06"),
            Decimal("0.05"),
            Decimal("0.03"),
            Decimal("0.02"),
            Decimal("0.015"),
            Decimal("0.005"),
        ),
        description="Per-level rates applied to the depth pool",
    )
    passive_pool_rate: Decimal = Field(default=Decimal("0.05"), ge=0, le=1)
    passive_levels: int = Field(default=DEPTH_LEVEL_COUNT, ge=1)
    system_fund_rate: Decimal = Field(default=Decimal("0.60"), ge=0, le=1)

    @model_validator(mode="after")
    def _check_allocation(self) -> "ClassicCommissionStructure":
        if len(self.depth_level_rates) != DEPTH_LEVEL_COUNT:
            raise ValueError(
                f"depth_level_rates must have {DEPTH_LEVEL_COUNT} levels, "
                f"got {len(self.depth_level_rates)}"
            )
        if any(rate < 0 for rate in self.depth_level_rates):
            raise ValueError("depth_level_rates must not be negative")
        total = (
            self.sponsor_rate
            + self.depth_pool_rate
            + self.passive_pool_rate
            + self.system_fund_rate
        )
        if total != Decimal("1"):
            raise ValueError(f"Classic allocation must sum to 100%, got {total * 100}%")
        return self


class MonolineCommissionStructure(BaseModel):
    """
    Fixed per-unit split of the product price.

    The configured components may total less than the price; the
    difference (``remainder_amount``) belongs to the company fund.
    """

    model_config = _FROZEN

    product_price: Decimal = Field(default=Decimal("20.00"), gt=0)
    direct_sponsor_amount: Decimal = Field(default=Decimal("3.00"), ge=0)
    depth_amounts: tuple[Decimal, ...] = Field(
        default=(
            Decimal("2.50"),
            Decimal("1.50"),
            Decimal("1.00"),
            Decimal("0.70"),
            Decimal("0.50"),
            Decimal("0.40"),
            Decimal("0.30"),
        ),
    )
    passive_pool_amount: Decimal = Field(default=Decimal("0.10"), ge=0)
    company_fund_amount: Decimal = Field(default=Decimal("9.00"), ge=0)

    @model_validator(mode="after")
    def _check_allocation(self) -> "MonolineCommissionStructure":
        if len(self.depth_amounts) != DEPTH_LEVEL_COUNT:
            raise ValueError(
                f"depth_amounts must have {DEPTH_LEVEL_COUNT} levels, "
                f"got {len(self.depth_amounts)}"
            )
        if any(amount < 0 for amount in self.depth_amounts):
            raise ValueError("depth_amounts must not be negative")
        if self.allocated_total > self.product_price:
            raise ValueError(
                f"Monoline amounts sum to {self.allocated_total}, "
                f"more than the product price {self.product_price}"
            )
        return self

    @property
    def total_depth_amount(self) -> Decimal:
        return sum(self.depth_amounts, Decimal("0"))

    @property
    def allocated_total(self) -> Decimal:
        return (
            self.direct_sponsor_amount
            + self.total_depth_amount
            + self.passive_pool_amount
            + self.company_fund_amount
        )

    @property
    def remainder_amount(self) -> Decimal:
        """Part of the price no component claims."""
        return self.product_price - self.allocated_total

    def percentage_of_price(self, amount: Decimal) -> Decimal:
        """Share of the product price, in percent."""
        return amount / self.product_price * Decimal("100")

    def scaled_to(
        self, unit_price: Decimal, decimals: int = 2
    ) -> "MonolineCommissionStructure":
        """
        Same split for a different unit price.

        Each component is scaled and rounded once. If rounding pushes the
        total over the new price, the company fund gives up the excess.

        Args:
            unit_price: New product price
            decimals: Currency precision

        Returns:
            New structure for ``unit_price``
        """
        if unit_price == self.product_price:
            return self
        if unit_price <= 0:
            raise InvalidConfigurationError(f"Unit price must be positive, got {unit_price}")

        factor = unit_price / self.product_price
        sponsor = quantize_money(self.direct_sponsor_amount * factor, decimals)
        depth = tuple(
            quantize_money(amount * factor, decimals) for amount in self.depth_amounts
        )
        passive = quantize_money(self.passive_pool_amount * factor, decimals)
        company = quantize_money(self.company_fund_amount * factor, decimals)

        excess = sponsor + sum(depth, Decimal("0")) + passive + company - unit_price
        if excess > 0:
            company -= excess
        try:
            return MonolineCommissionStructure(
                product_price=unit_price,
                direct_sponsor_amount=sponsor,
                depth_amounts=depth,
                passive_pool_amount=passive,
                company_fund_amount=company,
            )
        except ValidationError as e:
            raise InvalidConfigurationError(
                f"Commission structure cannot be scaled to {unit_price}"
            ) from e


class MembershipRequirements(BaseModel):
    """Activity thresholds, expressed as currency amounts."""

    model_config = _FROZEN

    unit_price: Decimal = Field(default=Decimal("20.00"), gt=0)
    initial_purchase_minimum: Decimal = Field(default=Decimal("100.00"), ge=0)
    monthly_minimum: Decimal = Field(default=Decimal("20.00"), ge=0)
    annual_minimum: Decimal = Field(default=Decimal("200.00"), ge=0)

    @property
    def initial_units(self) -> Decimal:
        return self.initial_purchase_minimum / self.unit_price

    @property
    def monthly_units(self) -> Decimal:
        return self.monthly_minimum / self.unit_price

    @property
    def annual_units(self) -> Decimal:
        return self.annual_minimum / self.unit_price


class LegScoreWeights(BaseModel):
    """Weights and normalization divisors of the leg score composite."""

    model_config = _FROZEN

    size_weight: Decimal = Decimal("0.4")
    volume_weight: Decimal = Decimal("0.3")
    active_weight: Decimal = Decimal("0.2")
    depth_weight: Decimal = Decimal("0.1")
    size_divisor: Decimal = Field(default=Decimal("100"), gt=0)
    volume_divisor: Decimal = Field(default=Decimal("10000"), gt=0)
    active_divisor: Decimal = Field(default=Decimal("100"), gt=0)
    depth_divisor: Decimal = Field(default=Decimal("10"), gt=0)


class PlacementScoring(BaseModel):
    """Candidate scoring used by exhaustive placement search."""

    model_config = _FROZEN

    depth_penalty: Decimal = Field(default=Decimal("10"), ge=0)
    volume_divisor: Decimal = Field(default=Decimal("1000"), gt=0)
    depth_multiplier: Decimal = Field(default=Decimal("5"), ge=0)
    balance_size_weight: Decimal = Decimal("0.5")
    balance_volume_weight: Decimal = Decimal("0.3")
    balance_depth_weight: Decimal = Decimal("0.2")
    overload_threshold: int = Field(default=10, ge=0)
    overload_multiplier: Decimal = Field(default=Decimal("2"), ge=0)
    career_bonus_multiplier: Decimal = Field(default=Decimal("2"), ge=0)


class CommissionSettings(BaseModel):
    """Bundle of every structure the engines need."""

    model_config = _FROZEN

    classic: ClassicCommissionStructure = Field(default_factory=ClassicCommissionStructure)
    monoline: MonolineCommissionStructure = Field(default_factory=MonolineCommissionStructure)
    membership: MembershipRequirements = Field(default_factory=MembershipRequirements)
    leg_score: LegScoreWeights = Field(default_factory=LegScoreWeights)
    placement_scoring: PlacementScoring = Field(default_factory=PlacementScoring)
    binary_bonus_rate: Decimal = Field(default=Decimal("0.10"), ge=0, le=1)


def get_default_commission_settings() -> CommissionSettings:
    """Default commission settings."""
    return CommissionSettings()


def load_commission_settings(data: Mapping[str, Any]) -> CommissionSettings:
    """
    Validate raw configuration into ``CommissionSettings``.

    Missing sections fall back to defaults.

    Args:
        data: Raw mapping, e.g. parsed from JSON or YAML

    Returns:
        Validated settings

    Raises:
        InvalidConfigurationError: If any structure is invalid
    """
    try:
        commission_settings = CommissionSettings.model_validate(dict(data))
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'settings'}: {error['msg']}"
            for error in e.errors()
        )
        logger.error(f"Invalid commission settings: {errors}")
        raise InvalidConfigurationError(f"Invalid commission settings: {errors}") from e

    logger.info(
        "Commission settings loaded",
        extra={
            "unit_price": str(commission_settings.monoline.product_price),
            "binary_bonus_rate": str(commission_settings.binary_bonus_rate),
        },
    )
    return commission_settings
