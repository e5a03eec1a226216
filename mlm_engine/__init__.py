"""
MLM Commission Engine.

Binary-tree placement, classic and monoline commission calculators,
activity eligibility and wallet application over a member directory.

Example:
    >>> from decimal import Decimal
    >>> from mlm_engine import MemberDirectory, MemberSnapshot, calculate_monoline_commissions
    >>>
    >>> directory = MemberDirectory(
    ...     [MemberSnapshot(id="root"), MemberSnapshot(id="buyer", sponsor_id="root")],
    ...     root_member_id="root",
    ... )
    >>> result = calculate_monoline_commissions("buyer", directory)
    >>> result.total_allocated
    Decimal('20.00')
"""

from mlm_engine.config.commission_structures import (
    CommissionSettings,
    get_default_commission_settings,
    load_commission_settings,
)
from mlm_engine.services.activity.eligibility import (
    evaluate_activity,
    validate_initial_membership,
)
from mlm_engine.services.commission.classic_engine import calculate_classic_commissions
from mlm_engine.services.commission.monoline_engine import calculate_monoline_commissions
from mlm_engine.services.commission.passive_pool import distribute_passive_income_pool
from mlm_engine.services.commission_engine import CommissionEngineService
from mlm_engine.services.directory.directory import MemberDirectory
from mlm_engine.services.directory.snapshot import MemberSnapshot, Wallet
from mlm_engine.services.ledger.wallet_applier import WalletApplier
from mlm_engine.services.placement.binary_placement import BinaryPlacementEngine
from mlm_engine.services.placement.models import PlacementPreferences
from mlm_engine.services.tree.statistics import TreeStatisticsEngine

__version__ = "1.0.0"

__all__ = [
    "BinaryPlacementEngine",
    "CommissionEngineService",
    "CommissionSettings",
    "MemberDirectory",
    "MemberSnapshot",
    "PlacementPreferences",
    "TreeStatisticsEngine",
    "Wallet",
    "WalletApplier",
    "calculate_classic_commissions",
    "calculate_monoline_commissions",
    "distribute_passive_income_pool",
    "evaluate_activity",
    "get_default_commission_settings",
    "load_commission_settings",
    "validate_initial_membership",
]
