"""Reducers for the worksheet application state.

Each function takes a ``WorksheetState`` and returns an updated copy; none
of them performs I/O. The session applies them one at a time and persists
the result.

The silver price carries two flags beside its value. ``price_user_edited``
records that the user typed the price, which protects it from being
replaced by a fetched quote. ``price_confirmed`` is the explicit
acknowledgement required before any Zakat is due; it is cleared whenever
the price changes.
"""

from decimal import Decimal
from typing import Any, Optional

import structlog

from .aggregator import coerce_amount
from .catalog import is_known_field
from .exceptions import UnknownFieldError
from .models import (
    PersistedSnapshot,
    PriceQuote,
    PriceStatus,
    WorksheetState,
    WorksheetStep,
)

logger = structlog.get_logger()


def initial_state() -> WorksheetState:
    """Zeroed state of a new session."""
    return WorksheetState()


# =============================================================================
# SNAPSHOT CONVERSION
# =============================================================================

def from_snapshot(snapshot: Optional[PersistedSnapshot]) -> WorksheetState:
    """Rehydrate state from a persisted snapshot.

    Unknown field ids are dropped. A saved non-zero price counts as
    user-supplied so the startup price lookup leaves it alone; it still
    has to be confirmed again.
    """
    if snapshot is None:
        return initial_state()

    entries: dict[str, Decimal] = {}
    for field_id, value in snapshot.data.items():
        if not is_known_field(field_id):
            logger.warning("snapshot_unknown_field_dropped", field=field_id)
            continue
        entries[field_id] = coerce_amount(value)

    price = coerce_amount(snapshot.nisab_price)
    return WorksheetState(
        entries=entries,
        nisab_price=price,
        held_one_year=snapshot.held_one_year,
        use_gregorian=snapshot.use_gregorian,
        price_user_edited=price > 0,
    )


def to_snapshot(state: WorksheetState) -> PersistedSnapshot:
    """Project the persisted subset of the state."""
    return PersistedSnapshot(
        data={k: float(v) for k, v in state.entries.items()},
        nisab_price=float(state.nisab_price),
        held_one_year=state.held_one_year,
        use_gregorian=state.use_gregorian,
    )


# =============================================================================
# WORKSHEET EDITS
# =============================================================================

def update_field(state: WorksheetState, field_id: str, value: Any) -> WorksheetState:
    """Set the amount of one worksheet line.

    Raises:
        UnknownFieldError: If ``field_id`` is not in the catalog.
    """
    if not is_known_field(field_id):
        raise UnknownFieldError(field_id)
    entries = dict(state.entries)
    entries[field_id] = coerce_amount(value)
    return state.model_copy(update={"entries": entries})


def set_held_one_year(state: WorksheetState, held: bool) -> WorksheetState:
    return state.model_copy(update={"held_one_year": bool(held)})


def set_use_gregorian(state: WorksheetState, enabled: bool) -> WorksheetState:
    return state.model_copy(update={"use_gregorian": bool(enabled)})


def clear_all(state: WorksheetState) -> WorksheetState:
    """Discard every input and return to the first step."""
    return initial_state()


# =============================================================================
# SILVER PRICE
# =============================================================================

def set_nisab_price(state: WorksheetState, value: Any) -> WorksheetState:
    """Manual price entry. Marks the price as user-edited and re-arms confirmation."""
    return state.model_copy(update={
        "nisab_price": coerce_amount(value),
        "price_user_edited": True,
        "price_confirmed": False,
    })


def confirm_price(state: WorksheetState) -> WorksheetState:
    """Acknowledge the current price. Without a price there is nothing to confirm."""
    if state.nisab_price <= 0:
        return state
    return state.model_copy(update={"price_confirmed": True})


def unconfirm_price(state: WorksheetState) -> WorksheetState:
    return state.model_copy(update={"price_confirmed": False})


def begin_price_fetch(state: WorksheetState, refresh: bool = False) -> WorksheetState:
    """Mark a lookup as in flight.

    A refresh is the user asking for the live price back, so it also drops
    the user-edited and confirmed flags.
    """
    update: dict[str, Any] = {"price_status": PriceStatus.LOADING}
    if refresh:
        update["price_user_edited"] = False
        update["price_confirmed"] = False
    return state.model_copy(update=update)


def can_apply_quote(state: WorksheetState, require_empty: bool) -> bool:
    """Guard evaluated when a lookup completes, not when it starts.

    A quote never replaces a price the user typed; the startup lookup
    additionally requires that no price is present at all.
    """
    if state.price_user_edited:
        return False
    if require_empty and state.nisab_price > 0:
        return False
    return True


def apply_price_quote(
    state: WorksheetState,
    quote: PriceQuote,
    require_empty: bool = False,
) -> WorksheetState:
    """Apply a successful lookup if the guard still holds.

    On success the price is replaced and both flags are reset. A quote that
    arrives too late leaves price and flags untouched; the status still
    records that a live price is available.
    """
    if not can_apply_quote(state, require_empty):
        logger.info(
            "price_quote_discarded",
            price_per_gram=str(quote.price_per_gram),
            user_edited=state.price_user_edited,
            current_price=str(state.nisab_price),
        )
        return state.model_copy(update={"price_status": PriceStatus.FETCHED})

    return state.model_copy(update={
        "nisab_price": quote.price_per_gram,
        "price_user_edited": False,
        "price_confirmed": False,
        "price_status": PriceStatus.FETCHED,
    })


def mark_price_unavailable(state: WorksheetState) -> WorksheetState:
    """Record a failed lookup. The price field is left as it is."""
    return state.model_copy(update={"price_status": PriceStatus.UNAVAILABLE})


def cancel_price_fetch(state: WorksheetState) -> WorksheetState:
    if state.price_status != PriceStatus.LOADING:
        return state
    return state.model_copy(update={"price_status": PriceStatus.IDLE})


# =============================================================================
# NAVIGATION
# =============================================================================

def go_to_step(state: WorksheetState, step: WorksheetStep) -> WorksheetState:
    return state.model_copy(update={"step": WorksheetStep(step)})


def next_step(state: WorksheetState) -> WorksheetState:
    steps = WorksheetStep.ordered()
    position = min(state.step.position + 1, len(steps) - 1)
    return go_to_step(state, steps[position])


def previous_step(state: WorksheetState) -> WorksheetState:
    steps = WorksheetStep.ordered()
    position = max(state.step.position - 1, 0)
    return go_to_step(state, steps[position])
