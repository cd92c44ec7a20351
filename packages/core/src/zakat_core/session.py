"""Worksheet session.

Owns the current ``WorksheetState``, applies reducers one at a time and
overwrites the saved snapshot whenever a persisted value changes. The
silver price lookup runs as an ``asyncio.Task`` next to user edits; its
result goes through the same reducer path, so the "don't clobber user
input" guard is evaluated against the state at completion time.
"""

import asyncio
from decimal import Decimal
from typing import Any, Callable, Optional

import httpx
import structlog

from . import state as reducers
from .calculator import ZakatCalculator
from .config import ZakatConfig
from .exceptions import PriceFetchError
from .models import FieldGroup, WorksheetState, WorksheetStep, ZakatResult
from .pricing import PriceService, SilverPriceSource
from .storage import LocalStore

logger = structlog.get_logger()

Reducer = Callable[..., WorksheetState]


class WorksheetSession:
    """
    A single user's worksheet, backed by the local store.

    All mutations go through ``dispatch``. The session is meant to be
    driven from one event loop; it holds no locks.
    """

    def __init__(
        self,
        store: LocalStore,
        price_service: Optional[PriceService] = None,
        calculator: Optional[ZakatCalculator] = None,
        state: Optional[WorksheetState] = None,
    ):
        self.store = store
        self.price_service = price_service
        self.calculator = calculator or ZakatCalculator()
        self._state = state or reducers.initial_state()
        self._price_task: Optional[asyncio.Task] = None

    @classmethod
    def from_config(
        cls,
        config: ZakatConfig,
        client: Optional[httpx.AsyncClient] = None,
    ) -> "WorksheetSession":
        """Build a session with storage and price lookup wired from settings."""
        store = LocalStore(config.storage_dir)
        price_service = None
        if config.price.enabled:
            price_service = PriceService(
                store,
                source=SilverPriceSource(
                    url=config.price.url,
                    timeout=config.price.timeout,
                    client=client,
                ),
                cache_max_age_ms=config.price.cache_max_age_ms,
            )
        return cls(store, price_service=price_service)

    @property
    def state(self) -> WorksheetState:
        return self._state

    # -------------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------------

    def dispatch(self, reducer: Reducer, *args: Any, **kwargs: Any) -> WorksheetState:
        """Apply a reducer and persist if the saved subset changed."""
        previous = self._state
        self._state = reducer(previous, *args, **kwargs)

        snapshot = reducers.to_snapshot(self._state)
        if snapshot != reducers.to_snapshot(previous):
            self.store.save_snapshot(snapshot)
        return self._state

    def load(self) -> WorksheetState:
        """Replace the in-memory state with the saved snapshot."""
        self._state = reducers.from_snapshot(self.store.load_snapshot())
        logger.info(
            "session_loaded",
            fields=len(self._state.entries),
            has_price=self._state.nisab_price > 0,
        )
        return self._state

    def set_field(self, field_id: str, value: Any) -> WorksheetState:
        return self.dispatch(reducers.update_field, field_id, value)

    def set_price(self, value: Any) -> WorksheetState:
        return self.dispatch(reducers.set_nisab_price, value)

    def confirm_price(self) -> WorksheetState:
        return self.dispatch(reducers.confirm_price)

    def unconfirm_price(self) -> WorksheetState:
        return self.dispatch(reducers.unconfirm_price)

    def set_held_one_year(self, held: bool) -> WorksheetState:
        return self.dispatch(reducers.set_held_one_year, held)

    def set_use_gregorian(self, enabled: bool) -> WorksheetState:
        return self.dispatch(reducers.set_use_gregorian, enabled)

    def go_to(self, step: WorksheetStep) -> WorksheetState:
        return self.dispatch(reducers.go_to_step, step)

    def next_step(self) -> WorksheetState:
        return self.dispatch(reducers.next_step)

    def previous_step(self) -> WorksheetState:
        return self.dispatch(reducers.previous_step)

    def clear(self) -> WorksheetState:
        """Discard all inputs and delete the saved snapshot."""
        self.cancel_price_lookup()
        self._state = reducers.clear_all(self._state)
        self.store.clear_snapshot()
        return self._state

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    def result(self) -> ZakatResult:
        return self.calculator.calculate_worksheet(self._state)

    def subtotal(self, group: FieldGroup) -> Decimal:
        return self.calculator.aggregator.total(self._state.entries, group)

    # -------------------------------------------------------------------------
    # Price lookup
    # -------------------------------------------------------------------------

    async def start(self) -> Optional[asyncio.Task]:
        """Load the saved snapshot and kick off the startup price lookup."""
        self.load()
        return self.start_price_lookup()

    def start_price_lookup(self, refresh: bool = False) -> Optional[asyncio.Task]:
        """Begin a price lookup without waiting for it.

        The startup lookup (``refresh=False``) never touches a price the
        user supplied and prefers a fresh cached quote, which is applied
        immediately. A refresh always goes to the network.

        Must be called from a running event loop. Returns the lookup task,
        or None when no network call was needed.
        """
        if self.price_service is None:
            return None

        if not refresh:
            if self._state.price_user_edited or self._state.nisab_price > 0:
                logger.info("price_lookup_skipped", reason="user_price")
                return None
            quote = self.price_service.cached_quote()
            if quote is not None:
                self.dispatch(reducers.apply_price_quote, quote, require_empty=True)
                return None

        self.cancel_price_lookup()
        self.dispatch(reducers.begin_price_fetch, refresh=refresh)
        self._price_task = asyncio.create_task(
            self._run_price_lookup(require_empty=not refresh),
            name="silver-price-lookup",
        )
        return self._price_task

    async def _run_price_lookup(self, require_empty: bool) -> None:
        try:
            quote = await self.price_service.fetch_live()
        except PriceFetchError as e:
            logger.warning("price_lookup_failed", **e.details, error=e.message)
            self.dispatch(reducers.mark_price_unavailable)
            return
        self.dispatch(reducers.apply_price_quote, quote, require_empty=require_empty)

    async def wait_for_price(self) -> WorksheetState:
        """Wait for an in-flight lookup, if any, and return the state."""
        task = self._price_task
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
        return self._state

    async def refresh_price(self) -> WorksheetState:
        """Fetch the live price again, replacing a manually entered one."""
        self.start_price_lookup(refresh=True)
        return await self.wait_for_price()

    def cancel_price_lookup(self) -> None:
        task = self._price_task
        if task is not None and not task.done():
            task.cancel()
            self.dispatch(reducers.cancel_price_fetch)
            logger.info("price_lookup_cancelled")
        self._price_task = None
