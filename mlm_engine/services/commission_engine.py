"""
Commission engine service.

Facade used by the service layer. Each call loads a member directory from
the persistence collaborator, runs one engine over it, applies the
resulting transactions and writes back what changed. Engine errors and
failures of the persistence collaborators are returned as structured
results, never raised, so one failing sale or registration does not break
a batch.
"""

from collections.abc import Awaitable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TypeVar

from loguru import logger

from mlm_engine.config.career_levels import get_career_level
from mlm_engine.config.commission_structures import (
    CommissionSettings,
    MonolineCommissionStructure,
    get_default_commission_settings,
)
from mlm_engine.config.settings import Settings, settings as default_settings
from mlm_engine.models.enums import PlacementSide
from mlm_engine.services.commission.classic_engine import calculate_classic_commissions
from mlm_engine.services.commission.models import (
    ClassicCommissionResult,
    CommissionTransaction,
    MonolineSaleResult,
    PassiveIncomeDistribution,
)
from mlm_engine.services.commission.monoline_engine import calculate_monoline_commissions
from mlm_engine.services.commission.network_stats import (
    BinaryNetworkStats,
    MonolineNetworkStats,
    SaleSimulation,
    get_binary_network_stats,
    get_monoline_network_stats,
    simulate_sales_transaction,
)
from mlm_engine.services.commission.passive_pool import distribute_passive_income_pool
from mlm_engine.services.directory.directory import MemberDirectory
from mlm_engine.services.directory.sources import (
    MemberSource,
    PurchaseLedger,
    TransactionSink,
)
from mlm_engine.services.ledger.risk import RiskScorer
from mlm_engine.services.ledger.wallet_applier import LedgerApplication, WalletApplier
from mlm_engine.services.placement.binary_placement import BinaryPlacementEngine
from mlm_engine.services.placement.models import (
    PlacementPreferences,
    PlacementResult,
    PlacementStats,
)
from mlm_engine.services.placement.tree_operations import (
    TreeOperationResult,
    TreeOperations,
)
from mlm_engine.services.tree.cache import StatsCache, TTLStatsCache
from mlm_engine.services.tree.statistics import TreeStatisticsEngine
from mlm_engine.utils.exceptions import (
    CommissionEngineError,
    DuplicateDistributionError,
    MemberNotFoundError,
    PersistenceError,
)
from mlm_engine.utils.ids import next_member_code

T = TypeVar("T")

CLASSIC_MODEL = "classic"
MONOLINE_MODEL = "monoline"


@dataclass
class ServiceFailure:
    """Failure of a read-only query."""

    error_code: str
    message: str
    success: bool = False


@dataclass
class CareerStatus:
    """Career level a member qualifies for from investment and direct referrals."""

    member_id: str
    current_level: int
    qualified_level: int
    qualified_level_name: str
    total_investment: Decimal
    direct_referral_ids: list[str] = field(default_factory=list)
    success: bool = True

    @property
    def promotion_due(self) -> bool:
        return self.qualified_level > self.current_level


@dataclass
class PurchaseProcessResult:
    """Result of distributing commissions for one purchase."""

    success: bool
    purchase_id: str
    commission_model: str = MONOLINE_MODEL
    transactions: list[CommissionTransaction] = field(default_factory=list)
    total_distributed: Decimal = Decimal("0")
    passive_pool_amount: Decimal = Decimal("0")
    company_fund_amount: Decimal = Decimal("0")
    error_code: str | None = None
    message: str = ""


class CommissionEngineService:
    """
    Entry point for placements, commission passes and network queries.

    Args:
        member_source: Member lookup, tree write-back and wallet credits
        transaction_sink: Persistence for commission transactions
        purchase_ledger: Purchases and their commission-distributed flag
        commission_settings: Validated commission structures
        engine_settings: Runtime settings (root member, precision, cache TTL)
        size_cache: Team size cache shared across calls
        volume_cache: Subtree volume cache shared across calls
    """

    def __init__(
        self,
        member_source: MemberSource,
        transaction_sink: TransactionSink | None = None,
        purchase_ledger: PurchaseLedger | None = None,
        commission_settings: CommissionSettings | None = None,
        engine_settings: Settings | None = None,
        size_cache: StatsCache | None = None,
        volume_cache: StatsCache | None = None,
    ) -> None:
        self.member_source = member_source
        self.transaction_sink = transaction_sink
        self.purchase_ledger = purchase_ledger
        self.commission_settings = commission_settings or get_default_commission_settings()
        self.settings = engine_settings or default_settings
        ttl = self.settings.stats_cache_ttl_seconds
        self.size_cache = size_cache if size_cache is not None else TTLStatsCache(ttl)
        self.volume_cache = volume_cache if volume_cache is not None else TTLStatsCache(ttl)
        self.wallet_applier = WalletApplier(
            risk_scorer=RiskScorer(self.settings.risk_approval_threshold),
            wallet_sink=member_source,
        )

    @property
    def decimals(self) -> int:
        return self.settings.currency_decimals

    async def load_directory(self) -> MemberDirectory:
        """
        Snapshot of every member, indexed for this pass.

        Raises:
            PersistenceError: If the member source cannot be read
        """
        members = await self._call("Loading members", self.member_source.list_members())
        return MemberDirectory(members, root_member_id=self.settings.root_member_id)

    async def next_member_code(self) -> str:
        """
        Code for the next registered member.

        Raises:
            PersistenceError: If the last code cannot be read
        """
        last_code = await self._call(
            "Reading the last member code", self.member_source.get_last_member_code()
        )
        return next_member_code(
            last_code,
            prefix=self.settings.member_code_prefix,
            width=self.settings.member_code_width,
        )

    # Placement

    async def place_binary_user(
        self,
        new_member_id: str,
        sponsor_id: str | None = None,
        preferences: PlacementPreferences | None = None,
    ) -> PlacementResult:
        """
        Place a newly registered member; no sponsor falls back to the root.

        Args:
            new_member_id: Registered, not yet placed member
            sponsor_id: Sponsor member id
            preferences: Placement options

        Returns:
            PlacementResult
        """
        try:
            directory = await self.load_directory()
            result = self._placement_engine(directory).place(
                new_member_id, sponsor_id, preferences
            )
            if result.success:
                await self._save_pointers(directory, result.changed_member_ids)
        except CommissionEngineError as e:
            logger.error(f"Placement of {new_member_id} failed: {e.message}")
            return PlacementResult(success=False, message=e.message, error_code=e.code)
        return result

    async def get_placement_stats(self, parent_id: str) -> PlacementStats | ServiceFailure:
        try:
            directory = await self.load_directory()
        except CommissionEngineError as e:
            return ServiceFailure(error_code=e.code, message=e.message)
        return self._placement_engine(directory).get_placement_stats(parent_id)

    async def place_manually(
        self, member_id: str, parent_id: str, side: PlacementSide
    ) -> TreeOperationResult:
        try:
            directory = await self.load_directory()
            result = self._tree_operations(directory).place_manually(member_id, parent_id, side)
            if result.success:
                await self._save_pointers(directory, result.changed_member_ids)
        except CommissionEngineError as e:
            return self._operation_failure(member_id, e)
        return result

    async def move_member(
        self,
        member_id: str,
        new_parent_id: str,
        side: PlacementSide | None = None,
    ) -> TreeOperationResult:
        try:
            directory = await self.load_directory()
            result = self._tree_operations(directory).move_member(
                member_id, new_parent_id, side
            )
            if result.success:
                await self._save_pointers(directory, result.changed_member_ids)
        except CommissionEngineError as e:
            return self._operation_failure(member_id, e)
        return result

    async def delete_member(
        self, member_id: str, transfer_children_to: str | None = None
    ) -> TreeOperationResult:
        try:
            directory = await self.load_directory()
            result = self._tree_operations(directory).delete_member(
                member_id, transfer_children_to
            )
            if result.success:
                await self._save_pointers(directory, result.changed_member_ids)
                await self._call(
                    f"Deleting member {member_id}", self.member_source.delete_member(member_id)
                )
        except CommissionEngineError as e:
            return self._operation_failure(member_id, e)
        return result

    # Commissions

    async def calculate_classic_commissions(
        self,
        investment_amount: Decimal,
        member_id: str,
        apply: bool = True,
        sale_id: str | None = None,
    ) -> ClassicCommissionResult:
        """
        Classic percentage split of an investment.

        Args:
            investment_amount: Triggering amount
            member_id: Acting member
            apply: Credit wallets and persist transactions
            sale_id: Sale identifier (generated when omitted)

        Returns:
            ClassicCommissionResult; failures carry ``error_code``. A ledger
            failure keeps the transactions with their individual statuses.
        """
        try:
            directory = await self.load_directory()
            result = calculate_classic_commissions(
                investment_amount,
                member_id,
                directory,
                structure=self.commission_settings.classic,
                decimals=self.decimals,
                sale_id=sale_id,
            )
        except CommissionEngineError as e:
            logger.warning(f"Classic commissions not calculated for {member_id}: {e.message}")
            return ClassicCommissionResult(
                success=False,
                investment_amount=investment_amount,
                error_code=e.code,
                message=e.message,
            )

        if apply:
            try:
                await self._apply_and_persist(result.transactions, directory)
            except PersistenceError as e:
                result.success = False
                result.error_code = e.code
                result.message = e.message
        return result

    async def calculate_monoline_commissions(
        self,
        buyer_id: str,
        unit_price: Decimal | None = None,
        commission_structure: MonolineCommissionStructure | None = None,
        apply: bool = True,
        sale_id: str | None = None,
    ) -> MonolineSaleResult:
        """
        Monoline fixed-amount split of one unit sale.

        Args:
            buyer_id: Buyer member id
            unit_price: Sale price (structure price when omitted)
            commission_structure: Overrides the configured structure
            apply: Credit wallets and persist transactions
            sale_id: Sale identifier (generated when omitted)

        Returns:
            MonolineSaleResult; failures carry ``error_code``
        """
        try:
            directory = await self.load_directory()
        except PersistenceError as e:
            return MonolineSaleResult(
                success=False, buyer_id=buyer_id, error_code=e.code, message=e.message
            )

        result = self._monoline(directory, buyer_id, unit_price, commission_structure, sale_id)
        if result.success and apply:
            try:
                await self._apply_and_persist(result.transactions, directory)
            except PersistenceError as e:
                result.success = False
                result.error_code = e.code
                result.message = e.message
        return result

    async def process_purchase(self, purchase_id: str) -> PurchaseProcessResult:
        """
        Distribute commissions for a recorded purchase exactly once.

        The purchase's commission-distributed flag is claimed before any
        wallet is touched; a purchase that was already claimed is reported
        as ``already_distributed``. A purchase whose buyer is unknown is
        rejected before the claim and stays unclaimed. A ledger failure
        after the claim keeps the flag set and is reported as
        ``persistence_failed``; whatever was credited before it is persisted
        and listed in the result.
        """
        if self.purchase_ledger is None:
            raise RuntimeError("process_purchase requires a purchase ledger")

        try:
            purchase = await self._call(
                f"Reading purchase {purchase_id}",
                self.purchase_ledger.get_purchase(purchase_id),
            )
            if purchase is None:
                raise MemberNotFoundError(purchase_id, "Purchase")
            if purchase.commission_distributed:
                raise DuplicateDistributionError(purchase_id)
            buyer = await self._call(
                f"Reading buyer {purchase.buyer_id}",
                self.member_source.get_member(purchase.buyer_id),
            )
            if buyer is None:
                raise MemberNotFoundError(purchase.buyer_id, "Buyer")
            claimed = await self._call(
                f"Claiming purchase {purchase_id}",
                self.purchase_ledger.mark_commission_distributed(purchase_id),
            )
            if not claimed:
                raise DuplicateDistributionError(purchase_id)
        except CommissionEngineError as e:
            logger.warning(f"Purchase {purchase_id} not processed: {e.message}")
            return PurchaseProcessResult(
                success=False,
                purchase_id=purchase_id,
                error_code=e.code,
                message=e.message,
            )

        if purchase.commission_model == CLASSIC_MODEL:
            classic = await self.calculate_classic_commissions(
                purchase.amount, purchase.buyer_id, sale_id=purchase.id
            )
            return PurchaseProcessResult(
                success=classic.success,
                purchase_id=purchase_id,
                commission_model=CLASSIC_MODEL,
                transactions=classic.transactions,
                total_distributed=classic.total_distributed,
                error_code=classic.error_code,
                message=classic.message,
            )

        result = PurchaseProcessResult(success=True, purchase_id=purchase_id)
        try:
            directory = await self.load_directory()
            for unit in range(1, purchase.units + 1):
                sale = self._monoline(
                    directory,
                    purchase.buyer_id,
                    purchase.unit_price,
                    None,
                    f"{purchase.id}_{unit}",
                )
                if not sale.success:
                    result.success = False
                    result.error_code = sale.error_code
                    result.message = sale.message
                    break
                result.transactions.extend(sale.transactions)
                await self._apply_and_persist(sale.transactions, directory)
                result.total_distributed += sale.total_distributed
                result.passive_pool_amount += sale.passive_pool_amount
                result.company_fund_amount += sale.company_fund_amount
        except PersistenceError as e:
            result.success = False
            result.error_code = e.code
            result.message = e.message

        if result.success:
            result.message = (
                f"{len(result.transactions)} commissions distributed for "
                f"{purchase.units} unit(s)"
            )
        logger.info(
            "Purchase processed",
            extra={
                "purchase_id": purchase_id,
                "success": result.success,
                "distributed": str(result.total_distributed),
            },
        )
        return result

    async def distribute_passive_income_pool(
        self, total_pool_amount: Decimal, apply: bool = True
    ) -> PassiveIncomeDistribution:
        """Split the passive pool across fully active members."""
        try:
            directory = await self.load_directory()
        except PersistenceError as e:
            return PassiveIncomeDistribution(
                distribution_id="",
                total_pool_amount=total_pool_amount,
                active_member_count=0,
                amount_per_member=Decimal("0"),
                success=False,
                error_code=e.code,
                message=e.message,
            )

        distribution = distribute_passive_income_pool(
            total_pool_amount,
            directory,
            requirements=self.commission_settings.membership,
            decimals=self.decimals,
        )
        if apply and distribution.has_recipients:
            application = await self.wallet_applier.apply_distribution(distribution, directory)
            try:
                await self._persist(application)
            except PersistenceError as e:
                distribution.success = False
                distribution.error_code = e.code
                distribution.message = e.message
        return distribution

    # Queries

    async def get_binary_network_stats(
        self, member_id: str
    ) -> BinaryNetworkStats | ServiceFailure:
        try:
            directory = await self.load_directory()
        except PersistenceError as e:
            return ServiceFailure(error_code=e.code, message=e.message)
        return get_binary_network_stats(
            member_id,
            self._statistics(directory),
            binary_bonus_rate=self.commission_settings.binary_bonus_rate,
            decimals=self.decimals,
        )

    async def get_monoline_network_stats(self) -> MonolineNetworkStats | ServiceFailure:
        try:
            directory = await self.load_directory()
        except PersistenceError as e:
            return ServiceFailure(error_code=e.code, message=e.message)
        return get_monoline_network_stats(
            directory,
            structure=self.commission_settings.monoline,
            requirements=self.commission_settings.membership,
            decimals=self.decimals,
        )

    async def get_career_status(self, member_id: str) -> CareerStatus | ServiceFailure:
        """
        Career level a member currently qualifies for.

        Reads the member and its direct referrals from the member source
        instead of loading the whole directory.

        Args:
            member_id: Member to evaluate

        Returns:
            CareerStatus, or ServiceFailure if the member is unknown or the
            source cannot be read
        """
        try:
            member = await self._call(
                f"Reading member {member_id}", self.member_source.get_member(member_id)
            )
            if member is None:
                raise MemberNotFoundError(member_id)
            referrals = await self._call(
                f"Reading direct referrals of {member_id}",
                self.member_source.get_members_by_sponsor(member_id),
            )
        except CommissionEngineError as e:
            return ServiceFailure(error_code=e.code, message=e.message)

        level = get_career_level(member.total_investment, len(referrals))
        return CareerStatus(
            member_id=member.id,
            current_level=member.career_level,
            qualified_level=level.level_number,
            qualified_level_name=level.display_name,
            total_investment=member.total_investment,
            direct_referral_ids=[referral.id for referral in referrals],
        )

    async def simulate_sales_transaction(
        self, buyer_id: str, units: int = 1
    ) -> SaleSimulation | ServiceFailure:
        try:
            directory = await self.load_directory()
            return simulate_sales_transaction(
                buyer_id,
                directory,
                units=units,
                structure=self.commission_settings.monoline,
                requirements=self.commission_settings.membership,
                decimals=self.decimals,
                currency=self.settings.currency,
            )
        except CommissionEngineError as e:
            return ServiceFailure(error_code=e.code, message=e.message)

    # Internals

    def _statistics(self, directory: MemberDirectory) -> TreeStatisticsEngine:
        return TreeStatisticsEngine(directory, self.size_cache, self.volume_cache)

    def _placement_engine(self, directory: MemberDirectory) -> BinaryPlacementEngine:
        return BinaryPlacementEngine(
            directory,
            self._statistics(directory),
            weights=self.commission_settings.leg_score,
            scoring=self.commission_settings.placement_scoring,
            default_algorithm=self.settings.placement_algorithm,
            default_max_depth=self.settings.placement_max_depth,
        )

    def _tree_operations(self, directory: MemberDirectory) -> TreeOperations:
        return TreeOperations(self._placement_engine(directory))

    def _monoline(
        self,
        directory: MemberDirectory,
        buyer_id: str,
        unit_price: Decimal | None,
        structure: MonolineCommissionStructure | None,
        sale_id: str | None,
    ) -> MonolineSaleResult:
        try:
            return calculate_monoline_commissions(
                buyer_id,
                directory,
                unit_price=unit_price,
                structure=structure or self.commission_settings.monoline,
                requirements=self.commission_settings.membership,
                decimals=self.decimals,
                sale_id=sale_id,
            )
        except CommissionEngineError as e:
            logger.warning(f"Monoline commissions not calculated for {buyer_id}: {e.message}")
            return MonolineSaleResult(
                success=False,
                buyer_id=buyer_id,
                error_code=e.code,
                message=e.message,
            )

    async def _call(self, action: str, operation: Awaitable[T]) -> T:
        """Await a collaborator call, turning its failure into PersistenceError."""
        try:
            return await operation
        except CommissionEngineError:
            raise
        except Exception as e:
            logger.error(f"{action} failed: {e}")
            raise PersistenceError(action, str(e)) from e

    async def _apply_and_persist(
        self, transactions: list[CommissionTransaction], directory: MemberDirectory
    ) -> LedgerApplication:
        application = await self.wallet_applier.apply_transactions(transactions, directory)
        await self._persist(application)
        return application

    async def _persist(self, application: LedgerApplication) -> None:
        """
        Save applied and failed transactions.

        Raises:
            PersistenceError: If saving failed or the batch stopped on a
                wallet credit failure
        """
        if self.transaction_sink is not None and application.transactions:
            await self._call(
                "Saving commission transactions",
                self.transaction_sink.save_transactions(application.transactions),
            )
        if application.error is not None:
            raise PersistenceError(
                f"Wallet credit ({len(application.unapplied)} commissions not applied)",
                application.error,
            )

    async def _save_pointers(self, directory: MemberDirectory, member_ids: list[str]) -> None:
        members = [m for m in (directory.get(member_id) for member_id in member_ids) if m]
        if members:
            await self._call(
                "Saving tree pointers", self.member_source.save_tree_pointers(members)
            )

    @staticmethod
    def _operation_failure(
        member_id: str, error: CommissionEngineError
    ) -> TreeOperationResult:
        logger.error(f"Tree operation on {member_id} failed: {error.message}")
        return TreeOperationResult(
            success=False,
            message=error.message,
            error_code=error.code,
            member_id=member_id,
        )
