"""Commission calculators, passive pool and network queries."""

from mlm_engine.services.commission.classic_engine import calculate_classic_commissions
from mlm_engine.services.commission.models import (
    ClassicCommissionResult,
    CommissionTransaction,
    ForfeitedLevel,
    MonolineSaleResult,
    PassiveIncomeDistribution,
    PassiveIncomeRecipient,
)
from mlm_engine.services.commission.monoline_engine import calculate_monoline_commissions
from mlm_engine.services.commission.network_stats import (
    BinaryNetworkStats,
    MonolineNetworkStats,
    SaleSimulation,
    TopPerformer,
    get_binary_network_stats,
    get_monoline_network_stats,
    simulate_sales_transaction,
)
from mlm_engine.services.commission.passive_pool import distribute_passive_income_pool

__all__ = [
    "BinaryNetworkStats",
    "ClassicCommissionResult",
    "CommissionTransaction",
    "ForfeitedLevel",
    "MonolineNetworkStats",
    "MonolineSaleResult",
    "PassiveIncomeDistribution",
    "PassiveIncomeRecipient",
    "SaleSimulation",
    "TopPerformer",
    "calculate_classic_commissions",
    "calculate_monoline_commissions",
    "distribute_passive_income_pool",
    "get_binary_network_stats",
    "get_monoline_network_stats",
    "simulate_sales_transaction",
]
