"""Tests for the worksheet session and its background price lookup."""

import asyncio
from decimal import Decimal

import httpx
import pytest

from zakat_core import WorksheetSession, ZakatConfig
from zakat_core.config import PriceSourceConfig
from zakat_core.models import (
    FieldGroup,
    PersistedSnapshot,
    PriceCacheEntry,
    PriceStatus,
    WorksheetStep,
)
from zakat_core.pricing import PriceService, SilverPriceSource
from zakat_core.storage import SNAPSHOT_KEY, LocalStore

PRICE_URL = "https://prices.test/v1/spot"
NOW_MS = 1_700_000_000_000
MINUTE_MS = 60 * 1000


class RecordingStore(LocalStore):
    """LocalStore that counts snapshot writes."""

    def __init__(self, directory):
        super().__init__(directory)
        self.snapshot_writes = 0

    def save_snapshot(self, snapshot):
        self.snapshot_writes += 1
        return super().save_snapshot(snapshot)


class SpotHandler:
    """MockTransport handler returning a fixed silver price.

    With ``hold`` set, each response waits until ``release()`` is called.
    """

    def __init__(self, silver=31.1035, status=200, hold=False):
        self.silver = silver
        self.status = status
        self.hold = hold
        self.calls = 0
        self._released = asyncio.Event()

    def release(self):
        self._released.set()

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.hold:
            await self._released.wait()
        if self.status != 200:
            return httpx.Response(self.status)
        return httpx.Response(200, json=[{"silver": self.silver}])


@pytest.fixture
def store(tmp_path) -> RecordingStore:
    return RecordingStore(tmp_path)


def make_session(store: LocalStore, handler: SpotHandler) -> WorksheetSession:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    service = PriceService(
        store,
        source=SilverPriceSource(url=PRICE_URL, client=client),
        clock=lambda: NOW_MS,
    )
    return WorksheetSession(store, price_service=service)


async def start_and_wait(session: WorksheetSession):
    await session.start()
    return await session.wait_for_price()


class TestStartupPriceLookup:
    """Test suite for the price lookup run when a session starts."""

    def test_fetches_when_no_price(self, store):
        """With no saved price and no cache the live price is fetched."""
        handler = SpotHandler(silver=31.1035)
        session = make_session(store, handler)

        state = asyncio.run(start_and_wait(session))

        assert handler.calls == 1
        assert state.nisab_price == Decimal("1.0000")
        assert state.price_status == PriceStatus.FETCHED
        assert state.price_confirmed is False
        assert state.price_user_edited is False

    def test_saved_price_is_not_overwritten(self, store):
        """A saved non-zero price skips the lookup entirely."""
        store.save_snapshot(PersistedSnapshot(nisab_price=0.85))
        handler = SpotHandler()
        session = make_session(store, handler)

        state = asyncio.run(start_and_wait(session))

        assert handler.calls == 0
        assert state.nisab_price == Decimal("0.85")
        assert state.price_status == PriceStatus.IDLE

    def test_fresh_cache_used_without_network(self, store):
        store.save_price_cache(PriceCacheEntry(
            price_per_gram=0.9645, silver_per_oz=30.0, fetched_at=NOW_MS - 30 * MINUTE_MS,
        ))
        handler = SpotHandler()
        session = make_session(store, handler)

        async def scenario():
            task = await session.start()
            return task, session.state

        task, state = asyncio.run(scenario())

        assert task is None
        assert handler.calls == 0
        assert state.nisab_price == Decimal("0.9645")
        assert state.price_status == PriceStatus.FETCHED

    def test_stale_cache_triggers_fetch(self, store):
        store.save_price_cache(PriceCacheEntry(
            price_per_gram=0.9645, silver_per_oz=30.0, fetched_at=NOW_MS - 90 * MINUTE_MS,
        ))
        handler = SpotHandler(silver=31.1035)
        session = make_session(store, handler)

        state = asyncio.run(start_and_wait(session))

        assert handler.calls == 1
        assert state.nisab_price == Decimal("1.0000")

    def test_failure_marks_unavailable(self, store):
        """A failed lookup leaves the price at zero and reports unavailable."""
        handler = SpotHandler(status=500)
        session = make_session(store, handler)

        state = asyncio.run(start_and_wait(session))

        assert state.price_status == PriceStatus.UNAVAILABLE
        assert state.nisab_price == Decimal("0")
        assert store.load_price_cache() is None

    def test_status_is_loading_while_in_flight(self, store):
        handler = SpotHandler(hold=True)
        session = make_session(store, handler)

        async def scenario():
            await session.start()
            await asyncio.sleep(0)
            status = session.state.price_status
            handler.release()
            await session.wait_for_price()
            return status

        assert asyncio.run(scenario()) == PriceStatus.LOADING
        assert session.state.price_status == PriceStatus.FETCHED

    def test_late_result_does_not_clobber_user_price(self, store):
        """The guard is evaluated when the lookup completes, not when it starts."""
        handler = SpotHandler(silver=31.1035, hold=True)
        session = make_session(store, handler)

        async def scenario():
            await session.start()
            await asyncio.sleep(0)
            session.set_price("0.80")
            session.confirm_price()
            handler.release()
            return await session.wait_for_price()

        state = asyncio.run(scenario())

        assert handler.calls == 1
        assert state.nisab_price == Decimal("0.80")
        assert state.price_user_edited is True
        assert state.price_confirmed is True
        assert state.price_status == PriceStatus.FETCHED

    def test_no_price_service(self, store):
        """Without a price source the session starts idle."""
        session = WorksheetSession(store)

        async def scenario():
            return await session.start()

        assert asyncio.run(scenario()) is None
        assert session.state.price_status == PriceStatus.IDLE


class TestRefreshPrice:
    """Test suite for replacing the price with the live one."""

    def test_refresh_replaces_user_price(self, store):
        """A refresh is the only way a fetched price replaces a typed one."""
        store.save_snapshot(PersistedSnapshot(nisab_price=0.85))
        handler = SpotHandler(silver=31.1035)
        session = make_session(store, handler)

        async def scenario():
            await start_and_wait(session)
            session.confirm_price()
            return await session.refresh_price()

        state = asyncio.run(scenario())

        assert handler.calls == 1
        assert state.nisab_price == Decimal("1.0000")
        assert state.price_user_edited is False
        assert state.price_confirmed is False

    def test_refresh_bypasses_fresh_cache(self, store):
        store.save_price_cache(PriceCacheEntry(price_per_gram=0.9645, fetched_at=NOW_MS))
        handler = SpotHandler(silver=31.1035)
        session = make_session(store, handler)

        async def scenario():
            await start_and_wait(session)
            return await session.refresh_price()

        state = asyncio.run(scenario())

        assert handler.calls == 1
        assert state.nisab_price == Decimal("1.0000")

    def test_failed_refresh_keeps_price(self, store):
        store.save_snapshot(PersistedSnapshot(nisab_price=0.85))
        session = make_session(store, SpotHandler(status=502))

        async def scenario():
            await start_and_wait(session)
            return await session.refresh_price()

        state = asyncio.run(scenario())

        assert state.price_status == PriceStatus.UNAVAILABLE
        assert state.nisab_price == Decimal("0.85")


class TestPersistence:
    """Test suite for snapshot persistence after mutations."""

    def test_mutations_are_saved(self, store):
        """Every edit overwrites the saved snapshot."""
        session = WorksheetSession(store)
        session.set_field("savings", "10000")
        session.set_field("bond_interest", 40)
        session.set_price("1.00")
        session.set_held_one_year(True)
        session.set_use_gregorian(True)

        restored = WorksheetSession(store)
        restored.load()

        assert restored.subtotal(FieldGroup.ASSETS) == Decimal("10000")
        assert restored.subtotal(FieldGroup.IMPERMISSIBLE_EARNINGS) == Decimal("40")
        assert restored.state.nisab_price == Decimal("1.00")
        assert restored.state.held_one_year is True
        assert restored.state.use_gregorian is True

    def test_confirmation_and_navigation_not_written(self, store):
        """Only changes to the persisted subset trigger a write."""
        session = WorksheetSession(store)
        session.set_price("1.00")
        writes = store.snapshot_writes

        session.confirm_price()
        session.next_step()
        session.go_to(WorksheetStep.CALCULATE)

        assert store.snapshot_writes == writes
        assert session.state.step == WorksheetStep.CALCULATE

    def test_result_reflects_state(self, store):
        session = WorksheetSession(store)
        session.set_field("savings", 10000)
        session.set_price("1.00")
        session.set_held_one_year(True)

        assert session.result().amount_due == Decimal("0")

        session.confirm_price()
        assert session.result().amount_due == Decimal("250")

        session.set_price("1.01")
        assert session.result().amount_due == Decimal("0")

    def test_clear_deletes_snapshot(self, store):
        session = WorksheetSession(store)
        session.set_field("savings", 500)

        session.clear()

        assert not store.path_for(SNAPSHOT_KEY).exists()
        assert session.state.entries == {}

        restored = WorksheetSession(store)
        restored.load()
        assert restored.state.entries == {}

    def test_clear_cancels_lookup(self, store):
        handler = SpotHandler(hold=True)
        session = make_session(store, handler)

        async def scenario():
            task = await session.start()
            await asyncio.sleep(0)
            session.clear()
            await session.wait_for_price()
            await asyncio.gather(task, return_exceptions=True)
            return task

        task = asyncio.run(scenario())

        assert task.cancelled()
        assert session.state.price_status == PriceStatus.IDLE
        assert session.state.nisab_price == Decimal("0")


class TestFromConfig:
    """Test suite for building a session from settings."""

    def test_wires_storage_and_source(self, tmp_path):
        config = ZakatConfig(
            storage_dir=tmp_path,
            price=PriceSourceConfig(url=PRICE_URL, cache_max_age=600),
        )

        session = WorksheetSession.from_config(config)

        assert session.store.directory == tmp_path
        assert session.price_service.source.url == PRICE_URL
        assert session.price_service.cache_max_age_ms == 600_000

    def test_disabled_lookup(self, tmp_path):
        config = ZakatConfig(storage_dir=tmp_path, price=PriceSourceConfig(enabled=False))

        session = WorksheetSession.from_config(config)

        assert session.price_service is None
