"""
Integration tests for CommissionEngineService.

The service runs against in-memory collaborators that behave like the
SQLAlchemy repositories: every call reads fresh member copies and wallet
credits are stored as increments.
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from mlm_engine.models.enums import CommissionCategory, PlacementSide, TransactionStatus
from mlm_engine.services.commission_engine import CommissionEngineService, ServiceFailure
from mlm_engine.services.ledger.wallet_applier import CATEGORY_ACCUMULATORS
from mlm_engine.services.tree.cache import TTLStatsCache

pytestmark = pytest.mark.integration


class InMemoryMemberSource:
    """Member store returning detached copies, like a database session would."""

    def __init__(self, members, last_code=None):
        self.members = {member.id: member for member in members}
        self.last_code = last_code
        self.pointer_saves = []

    async def get_member(self, member_id):
        member = self.members.get(member_id)
        return member.model_copy(deep=True) if member else None

    async def get_members_by_sponsor(self, sponsor_id):
        return [
            member.model_copy(deep=True)
            for member in self.members.values()
            if member.sponsor_id == sponsor_id
        ]

    async def list_members(self):
        return [member.model_copy(deep=True) for member in self.members.values()]

    async def get_last_member_code(self):
        return self.last_code

    async def save_tree_pointers(self, members):
        self.pointer_saves.append([member.id for member in members])
        for snapshot in members:
            stored = self.members[snapshot.id]
            stored.sponsor_id = snapshot.sponsor_id
            stored.left_child_id = snapshot.left_child_id
            stored.right_child_id = snapshot.right_child_id

    async def credit_wallet(self, member_id, category, amount):
        wallet = self.members[member_id].wallet
        wallet.balance += amount
        accumulator = CATEGORY_ACCUMULATORS[category]
        if accumulator is not None:
            wallet.total_earnings += amount
            setattr(wallet, accumulator, getattr(wallet, accumulator) + amount)

    async def delete_member(self, member_id):
        self.members.pop(member_id, None)


class InMemoryTransactionSink:
    def __init__(self):
        self.saved = []

    async def save_transactions(self, transactions):
        self.saved.extend(transactions)


@dataclass
class StoredPurchase:
    id: str
    buyer_id: str
    unit_price: Decimal
    amount: Decimal
    units: int = 1
    commission_model: str = "monoline"
    commission_distributed: bool = False


class InMemoryPurchaseLedger:
    def __init__(self, purchases):
        self.purchases = {purchase.id: purchase for purchase in purchases}

    async def get_purchase(self, purchase_id):
        return self.purchases.get(purchase_id)

    async def mark_commission_distributed(self, purchase_id):
        purchase = self.purchases[purchase_id]
        if purchase.commission_distributed:
            return False
        purchase.commission_distributed = True
        return True


@pytest.fixture
def build_service(engine_settings):
    def _build(members, purchases=(), last_code=None):
        source = InMemoryMemberSource(members, last_code=last_code)
        sink = InMemoryTransactionSink()
        ledger = InMemoryPurchaseLedger(purchases)
        service = CommissionEngineService(
            source,
            transaction_sink=sink,
            purchase_ledger=ledger,
            engine_settings=engine_settings,
        )
        return service, source, sink, ledger

    return _build


@pytest.fixture
def active_chain(make_member):
    """root -> u7 -> ... -> u1 -> buyer, every upline member fully active."""
    ids = ["root"] + [f"u{i}" for i in range(7, 0, -1)] + ["buyer"]
    members = []
    for parent_id, member_id in zip([None] + ids, ids):
        members.append(make_member(member_id, sponsor_id=parent_id, fully_active=member_id != "buyer"))
    for parent, child in zip(members, members[1:]):
        parent.left_child_id = child.id
    return members


class TestPlacement:
    """Test placement through the service."""

    @pytest.mark.asyncio
    async def test_no_sponsor_falls_back_to_root(self, build_service, make_member):
        service, source, _, _ = build_service([make_member("root"), make_member("n")])

        result = await service.place_binary_user("n")

        assert result.success
        assert (result.parent_id, result.side) == ("root", PlacementSide.LEFT)
        assert source.members["root"].left_child_id == "n"
        assert source.members["n"].sponsor_id == "root"
        assert source.pointer_saves == [["root", "n"]]

    @pytest.mark.asyncio
    async def test_sequential_placements_persist(self, build_service, make_member):
        service, source, _, _ = build_service(
            [make_member("root")] + [make_member(m) for m in ("a", "b", "c")]
        )

        for member_id in ("a", "b", "c"):
            assert (await service.place_binary_user(member_id, "root")).success

        assert source.members["root"].left_child_id == "a"
        assert source.members["root"].right_child_id == "b"
        assert source.members["a"].left_child_id == "c"

        stats = await service.get_placement_stats("root")
        assert (stats.left_size, stats.right_size) == (2, 1)

    @pytest.mark.asyncio
    async def test_unknown_sponsor_saves_nothing(self, build_service, make_member):
        service, source, _, _ = build_service([make_member("root"), make_member("n")])

        result = await service.place_binary_user("n", "ghost")

        assert not result.success
        assert result.error_code == "not_found"
        assert source.pointer_saves == []

    @pytest.mark.asyncio
    async def test_next_member_code(self, build_service, make_member):
        service, _, _, _ = build_service([make_member("root")], last_code="MB0000041")
        assert await service.next_member_code() == "MB0000042"


class TestProcessPurchase:
    """Test exactly-once purchase distribution."""

    @pytest.mark.asyncio
    async def test_monoline_purchase(self, build_service, active_chain):
        purchase = StoredPurchase("p1", "buyer", Decimal("20.00"), Decimal("40.00"), units=2)
        service, source, sink, _ = build_service(active_chain, [purchase])

        result = await service.process_purchase("p1")

        assert result.success
        assert len(result.transactions) == 16
        assert result.total_distributed == Decimal("19.80")
        assert result.passive_pool_amount == Decimal("0.20")
        assert result.company_fund_amount == Decimal("20.00")
        assert {t.sale_id for t in result.transactions} == {"p1_1", "p1_2"}
        assert all(t.status is TransactionStatus.PROCESSED for t in result.transactions)

        u1 = source.members["u1"].wallet
        assert u1.sponsor_bonus == Decimal("6.00")
        assert u1.career_bonus == Decimal("5.00")
        assert u1.balance == Decimal("11.00")
        assert source.members["u7"].wallet.career_bonus == Decimal("0.60")
        assert len(sink.saved) == 16
        assert purchase.commission_distributed

    @pytest.mark.asyncio
    async def test_second_run_is_rejected(self, build_service, active_chain):
        purchase = StoredPurchase("p1", "buyer", Decimal("20.00"), Decimal("20.00"))
        service, source, sink, _ = build_service(active_chain, [purchase])

        await service.process_purchase("p1")
        second = await service.process_purchase("p1")

        assert not second.success
        assert second.error_code == "already_distributed"
        assert source.members["u1"].wallet.balance == Decimal("5.50")
        assert len(sink.saved) == 8

    @pytest.mark.asyncio
    async def test_concurrent_runs_distribute_once(self, build_service, active_chain):
        purchase = StoredPurchase("p1", "buyer", Decimal("20.00"), Decimal("20.00"))
        service, source, _, _ = build_service(active_chain, [purchase])

        results = await asyncio.gather(
            service.process_purchase("p1"), service.process_purchase("p1")
        )

        assert sorted(result.success for result in results) == [False, True]
        assert source.members["u1"].wallet.balance == Decimal("5.50")

    @pytest.mark.asyncio
    async def test_classic_purchase(self, build_service, make_member):
        members = [
            make_member("root", left_child_id="s"),
            make_member("s", sponsor_id="root", left_child_id="b"),
            make_member("b", sponsor_id="s"),
        ]
        purchase = StoredPurchase(
            "p2", "b", Decimal("1000"), Decimal("1000"), commission_model="classic"
        )
        service, source, _, _ = build_service(members, [purchase])

        result = await service.process_purchase("p2")

        assert result.success
        assert result.commission_model == "classic"
        assert result.total_distributed == Decimal("735.00")
        assert source.members["s"].wallet.balance == Decimal("120.00")
        root_wallet = source.members["root"].wallet
        assert root_wallet.balance == Decimal("615.00")
        assert root_wallet.career_bonus == Decimal("15.00")
        assert root_wallet.total_earnings == Decimal("15.00")

    @pytest.mark.asyncio
    async def test_missing_purchase(self, build_service, make_member):
        service, _, _, _ = build_service([make_member("root")])

        result = await service.process_purchase("nope")

        assert result.error_code == "not_found"
        assert result.message == "Purchase not found: nope"

    @pytest.mark.asyncio
    async def test_unknown_buyer_stays_unclaimed(self, build_service, make_member):
        purchase = StoredPurchase("p1", "ghost", Decimal("20.00"), Decimal("20.00"))
        service, _, sink, _ = build_service([make_member("root")], [purchase])

        result = await service.process_purchase("p1")

        assert (result.success, result.error_code) == (False, "not_found")
        assert result.message == "Buyer not found: ghost"
        assert not purchase.commission_distributed
        assert sink.saved == []

    @pytest.mark.asyncio
    async def test_ledger_required(self, engine_settings, make_member):
        service = CommissionEngineService(
            InMemoryMemberSource([make_member("root")]), engine_settings=engine_settings
        )
        with pytest.raises(RuntimeError):
            await service.process_purchase("p1")


class TestCommissionCalls:
    """Test direct commission calls and queries."""

    @pytest.mark.asyncio
    async def test_monoline_without_apply(self, build_service, active_chain):
        service, source, sink, _ = build_service(active_chain)

        result = await service.calculate_monoline_commissions("buyer", apply=False)

        assert result.total_allocated == Decimal("20.00")
        assert all(t.status is TransactionStatus.PENDING for t in result.transactions)
        assert source.members["u1"].wallet.balance == Decimal("0")
        assert sink.saved == []

    @pytest.mark.asyncio
    async def test_unknown_buyer_is_structured(self, build_service, make_member):
        service, _, _, _ = build_service([make_member("root")])

        monoline = await service.calculate_monoline_commissions("ghost")
        classic = await service.calculate_classic_commissions(Decimal("100"), "ghost")
        simulation = await service.simulate_sales_transaction("ghost")

        assert (monoline.success, monoline.error_code) == (False, "not_found")
        assert (classic.success, classic.error_code) == (False, "not_found")
        assert isinstance(simulation, ServiceFailure)
        assert simulation.error_code == "not_found"

    @pytest.mark.asyncio
    async def test_passive_pool(self, build_service, make_member):
        members = [
            make_member("root"),
            make_member("a", fully_active=True),
            make_member("b", fully_active=True),
            make_member("c", fully_active=True),
        ]
        service, source, sink, _ = build_service(members)

        distribution = await service.distribute_passive_income_pool(Decimal("10"))

        assert distribution.amount_per_member == Decimal("3.33")
        assert distribution.undistributed_remainder == Decimal("0.01")
        for member_id in ("a", "b", "c"):
            assert source.members[member_id].wallet.passive_income == Decimal("3.33")
        assert [t.category for t in sink.saved] == [CommissionCategory.PASSIVE] * 3

    @pytest.mark.asyncio
    async def test_network_queries(self, build_service, active_chain):
        service, _, _, _ = build_service(active_chain)

        binary = await service.get_binary_network_stats("root")
        overview = await service.get_monoline_network_stats()

        assert binary.left_count == 8
        assert overview.total_members == 9
        assert overview.fully_active_members == 8


class TestCareerStatus:
    """Test career level evaluation from the member source."""

    @pytest.mark.asyncio
    async def test_qualifies_for_next_level(self, build_service, make_member):
        members = [
            make_member("s", total_investment=Decimal("500")),
            make_member("a", sponsor_id="s"),
            make_member("b", sponsor_id="s"),
            make_member("c", sponsor_id="a"),
        ]
        service, _, _, _ = build_service(members)

        status = await service.get_career_status("s")

        assert status.success
        assert status.direct_referral_ids == ["a", "b"]
        assert (status.current_level, status.qualified_level) == (1, 2)
        assert status.qualified_level_name == "Nefs-i Levvame"
        assert status.promotion_due

    @pytest.mark.asyncio
    async def test_referrals_alone_do_not_qualify(self, build_service, make_member):
        members = [make_member("s")] + [
            make_member(member_id, sponsor_id="s") for member_id in ("a", "b", "c")
        ]
        service, _, _, _ = build_service(members)

        status = await service.get_career_status("s")

        assert status.qualified_level == 1
        assert not status.promotion_due

    @pytest.mark.asyncio
    async def test_unknown_member(self, build_service, make_member):
        service, _, _, _ = build_service([make_member("root")])

        status = await service.get_career_status("ghost")

        assert isinstance(status, ServiceFailure)
        assert status.error_code == "not_found"


class TestTreeOperations:
    """Test admin operations with write-back."""

    @pytest.mark.asyncio
    async def test_delete_member_persists(self, build_service, make_member):
        members = [
            make_member("root", left_child_id="a", right_child_id="b"),
            make_member("a", sponsor_id="root", left_child_id="a1", right_child_id="a2"),
            make_member("b", sponsor_id="root"),
            make_member("a1", sponsor_id="a"),
            make_member("a2", sponsor_id="a"),
        ]
        service, source, _, _ = build_service(members)

        result = await service.delete_member("a")

        assert result.success
        assert "a" not in source.members
        assert source.members["root"].left_child_id == "a1"
        assert source.members["a1"].sponsor_id == "root"
        assert source.members["a1"].left_child_id == "a2"
        assert source.members["a2"].sponsor_id == "a1"

    @pytest.mark.asyncio
    async def test_move_member_persists(self, build_service, make_member):
        members = [
            make_member("root", left_child_id="a", right_child_id="b"),
            make_member("a", sponsor_id="root", left_child_id="c"),
            make_member("b", sponsor_id="root"),
            make_member("c", sponsor_id="a"),
        ]
        service, source, _, _ = build_service(members)

        result = await service.move_member("c", "b", PlacementSide.RIGHT)

        assert result.success
        assert source.members["a"].left_child_id is None
        assert source.members["b"].right_child_id == "c"
        assert source.members["c"].sponsor_id == "b"

    @pytest.mark.asyncio
    async def test_manual_placement(self, build_service, make_member):
        service, source, _, _ = build_service([make_member("root"), make_member("n")])

        result = await service.place_manually("n", "root", PlacementSide.RIGHT)

        assert result.success
        assert source.members["root"].right_child_id == "n"


class FlakyMemberSource(InMemoryMemberSource):
    """Member store whose wallet writes start failing after ``healthy_credits``."""

    def __init__(self, members, healthy_credits=0):
        super().__init__(members)
        self.healthy_credits = healthy_credits

    async def credit_wallet(self, member_id, category, amount):
        if self.healthy_credits <= 0:
            raise RuntimeError("database down")
        self.healthy_credits -= 1
        await super().credit_wallet(member_id, category, amount)


class FailingTransactionSink:
    async def save_transactions(self, transactions):
        raise RuntimeError("disk full")


class TestPersistenceFailures:
    """Test that collaborator failures come back as structured results."""

    @pytest.mark.asyncio
    async def test_wallet_failure_mid_sale(self, engine_settings, active_chain):
        source = FlakyMemberSource(active_chain, healthy_credits=2)
        sink = InMemoryTransactionSink()
        service = CommissionEngineService(
            source, transaction_sink=sink, engine_settings=engine_settings
        )

        result = await service.calculate_monoline_commissions("buyer")

        assert not result.success
        assert result.error_code == "persistence_failed"
        assert "database down" in result.message
        processed = [t for t in result.transactions if t.status is TransactionStatus.PROCESSED]
        assert [t.recipient_id for t in processed] == ["u1", "u1"]
        assert sink.saved == processed
        assert source.members["u1"].wallet.balance == Decimal("5.50")
        assert source.members["u2"].wallet.balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_wallet_failure_keeps_purchase_claimed(self, engine_settings, active_chain):
        purchase = StoredPurchase("p1", "buyer", Decimal("20.00"), Decimal("20.00"))
        source = FlakyMemberSource(active_chain, healthy_credits=2)
        sink = InMemoryTransactionSink()
        service = CommissionEngineService(
            source,
            transaction_sink=sink,
            purchase_ledger=InMemoryPurchaseLedger([purchase]),
            engine_settings=engine_settings,
        )

        result = await service.process_purchase("p1")
        retry = await service.process_purchase("p1")

        assert not result.success
        assert result.error_code == "persistence_failed"
        assert len(result.transactions) == 8
        assert len(sink.saved) == 2
        assert purchase.commission_distributed
        assert retry.error_code == "already_distributed"
        assert source.members["u1"].wallet.balance == Decimal("5.50")

    @pytest.mark.asyncio
    async def test_transaction_sink_failure(self, engine_settings, make_member):
        members = [
            make_member("root", left_child_id="s"),
            make_member("s", sponsor_id="root", left_child_id="b"),
            make_member("b", sponsor_id="s"),
        ]
        source = InMemoryMemberSource(members)
        service = CommissionEngineService(
            source, transaction_sink=FailingTransactionSink(), engine_settings=engine_settings
        )

        result = await service.calculate_classic_commissions(Decimal("1000"), "b")

        assert not result.success
        assert result.error_code == "persistence_failed"
        assert "disk full" in result.message
        assert source.members["s"].wallet.balance == Decimal("120.00")

    @pytest.mark.asyncio
    async def test_member_source_down(self, engine_settings):
        source = AsyncMock()
        source.list_members.side_effect = ConnectionError("connection refused")
        service = CommissionEngineService(source, engine_settings=engine_settings)

        placement = await service.place_binary_user("n", "root")
        stats = await service.get_binary_network_stats("root")
        pool = await service.distribute_passive_income_pool(Decimal("10"))

        assert (placement.success, placement.error_code) == (False, "persistence_failed")
        assert isinstance(stats, ServiceFailure)
        assert stats.error_code == "persistence_failed"
        assert (pool.success, pool.error_code) == (False, "persistence_failed")

    @pytest.mark.asyncio
    async def test_pointer_save_failure(self, build_service, make_member):
        service, source, _, _ = build_service([make_member("root"), make_member("n")])
        source.save_tree_pointers = AsyncMock(side_effect=RuntimeError("database down"))

        result = await service.place_binary_user("n")

        assert not result.success
        assert result.error_code == "persistence_failed"
        assert source.members["root"].left_child_id is None


class TestStatisticsCaches:
    """Test the statistics caches shared by service calls."""

    @pytest.mark.asyncio
    async def test_injected_empty_caches_are_used(self, engine_settings, make_member):
        size_cache, volume_cache = TTLStatsCache(), TTLStatsCache()
        members = [
            make_member("root", left_child_id="a", right_child_id="b"),
            make_member("a", sponsor_id="root"),
            make_member("b", sponsor_id="root"),
            make_member("n"),
        ]
        service = CommissionEngineService(
            InMemoryMemberSource(members),
            engine_settings=engine_settings,
            size_cache=size_cache,
            volume_cache=volume_cache,
        )

        await service.get_binary_network_stats("root")

        assert service.size_cache is size_cache
        assert "a" in size_cache
        assert "a" in volume_cache

        placement = await service.place_binary_user("n", "root")
        assert (placement.parent_id, placement.side) == ("a", PlacementSide.LEFT)

        stats = await service.get_binary_network_stats("root")
        assert (stats.left_count, stats.right_count) == (2, 1)
