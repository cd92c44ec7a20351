"""Zakat due calculation.

Derives liable wealth from the worksheet subtotals, compares it with the
silver Nisab and applies the Hawl and price-confirmation gates. Every step
is logged for an audit trail the user can read back.
"""

from decimal import Decimal
from typing import Any, Optional

import structlog

from .aggregator import ZERO, WorksheetAggregator, coerce_amount, coerce_flag
from .models import (
    AuditEntry,
    CalculationContext,
    Eligibility,
    GroupTotals,
    WorksheetState,
    ZakatResult,
)

logger = structlog.get_logger()


# =============================================================================
# FIXED CONSTANTS
# =============================================================================

NISAB_SILVER_GRAMS = Decimal("595")
ZAKAT_RATE = Decimal("0.025")

# Hijri year is 354 days, Gregorian 365: 11 extra days of accumulation.
GREGORIAN_ADJUSTMENT = Decimal("1.02578")

METHODOLOGY_SOURCE = "Simple Zakat Guide"


def determine_eligibility(
    threshold_value: Decimal,
    above_threshold: bool,
    held_full_period: bool,
    price_confirmed: bool,
) -> Eligibility:
    """Return the first unmet condition, or DUE when all gates hold."""
    if threshold_value <= 0:
        return Eligibility.PRICE_MISSING
    if not price_confirmed:
        return Eligibility.PRICE_UNCONFIRMED
    if not above_threshold:
        return Eligibility.BELOW_NISAB
    if not held_full_period:
        return Eligibility.HAWL_NOT_MET
    return Eligibility.DUE


class ZakatCalculator:
    """
    Calculate Zakat due from worksheet subtotals.

    The Nisab quantity, the rate and the Gregorian multiplier are fixed.
    Nothing here raises: negative intermediate values propagate and simply
    fail the Nisab gate.
    """

    def __init__(self, aggregator: Optional[WorksheetAggregator] = None):
        self.aggregator = aggregator or WorksheetAggregator()
        self._audit_log: list[AuditEntry] = []

    def _log_step(
        self,
        step: str,
        input_value: str,
        output_value: str,
        source: str,
        notes: Optional[str] = None,
    ) -> None:
        """Add an entry to the audit log."""
        entry = AuditEntry(
            step=step,
            input_value=input_value,
            output_value=output_value,
            source=source,
            notes=notes,
        )
        self._audit_log.append(entry)
        logger.info(
            "calculation_step",
            step=step,
            input=input_value,
            output=output_value,
            source=source,
        )

    def calculate(self, totals: GroupTotals, context: CalculationContext) -> ZakatResult:
        """
        Derive the Zakat result.

        Args:
            totals: Subtotals of assets, haram earnings and expenses
            context: Silver price and the Hawl, confirmation and Gregorian flags

        Returns:
            ZakatResult with the amounts, the eligibility verdict and the audit trail
        """
        self._audit_log = []

        # Step 1: Subtotals
        self._log_step(
            step="total_assets",
            input_value="Worksheet 1",
            output_value=str(totals.total_assets),
            source="User provided",
        )
        self._log_step(
            step="total_impermissible",
            input_value="Worksheet 2",
            output_value=str(totals.total_impermissible),
            source="User provided",
        )
        self._log_step(
            step="total_expenses",
            input_value="Worksheet 3",
            output_value=str(totals.total_expenses),
            source="User provided",
        )

        # Step 2: Purify and deduct
        permissible_wealth = totals.total_assets - totals.total_impermissible
        self._log_step(
            step="permissible_wealth",
            input_value=f"{totals.total_assets} - {totals.total_impermissible}",
            output_value=str(permissible_wealth),
            source="Assets less haram earnings",
        )

        liable_wealth = permissible_wealth - totals.total_expenses
        self._log_step(
            step="liable_wealth",
            input_value=f"{permissible_wealth} - {totals.total_expenses}",
            output_value=str(liable_wealth),
            source="Permissible wealth less immediately due expenses",
        )

        # Step 3: Nisab
        price = context.reference_price_per_gram
        threshold_value = price * NISAB_SILVER_GRAMS
        above_threshold = liable_wealth > threshold_value and threshold_value > 0
        self._log_step(
            step="nisab_threshold",
            input_value=f"{price} * {NISAB_SILVER_GRAMS}g silver",
            output_value=str(threshold_value),
            source=f"{METHODOLOGY_SOURCE} - silver Nisab",
            notes=None if price > 0 else "No silver price entered",
        )
        self._log_step(
            step="above_nisab",
            input_value=f"{liable_wealth} > {threshold_value}",
            output_value=str(above_threshold),
            source="Nisab comparison",
        )

        # Step 4: Gates and amount
        eligibility = determine_eligibility(
            threshold_value=threshold_value,
            above_threshold=above_threshold,
            held_full_period=context.held_full_period,
            price_confirmed=context.price_confirmed,
        )
        if above_threshold and context.held_full_period and context.price_confirmed:
            amount_due = liable_wealth * ZAKAT_RATE
        else:
            amount_due = ZERO
        self._log_step(
            step="amount_due",
            input_value=f"{liable_wealth} * {ZAKAT_RATE}",
            output_value=str(amount_due),
            source=f"{METHODOLOGY_SOURCE} - 2.5% rate",
            notes=eligibility.message,
        )

        # Step 5: Calendar adjustment
        if context.use_calendar_adjustment:
            adjusted_amount_due = amount_due * GREGORIAN_ADJUSTMENT
            self._log_step(
                step="gregorian_adjustment",
                input_value=f"{amount_due} * {GREGORIAN_ADJUSTMENT}",
                output_value=str(adjusted_amount_due),
                source="Hijri (354 days) vs Gregorian (365 days) year",
            )
        else:
            adjusted_amount_due = amount_due

        return ZakatResult(
            total_assets=totals.total_assets,
            total_impermissible=totals.total_impermissible,
            total_expenses=totals.total_expenses,
            permissible_wealth=permissible_wealth,
            liable_wealth=liable_wealth,
            threshold_value=threshold_value,
            above_threshold=above_threshold,
            held_full_period=context.held_full_period,
            price_confirmed=context.price_confirmed,
            use_calendar_adjustment=context.use_calendar_adjustment,
            amount_due=amount_due,
            adjusted_amount_due=adjusted_amount_due,
            eligibility=eligibility,
            audit_log=self._audit_log,
        )

    def calculate_worksheet(self, state: WorksheetState) -> ZakatResult:
        """Calculate directly from the application state."""
        totals = self.aggregator.subtotals(state.entries)
        return self.calculate(totals, state.context())

    def calculate_raw(
        self,
        total_assets: Any,
        total_impermissible: Any,
        total_expenses: Any,
        price_per_gram: Any,
        held_full_period: Any = False,
        price_confirmed: Any = False,
        use_calendar_adjustment: Any = False,
    ) -> ZakatResult:
        """Calculate from loosely typed inputs, coercing each to its default."""
        totals = GroupTotals(
            total_assets=coerce_amount(total_assets),
            total_impermissible=coerce_amount(total_impermissible),
            total_expenses=coerce_amount(total_expenses),
        )
        context = CalculationContext(
            reference_price_per_gram=coerce_amount(price_per_gram),
            held_full_period=coerce_flag(held_full_period),
            price_confirmed=coerce_flag(price_confirmed),
            use_calendar_adjustment=coerce_flag(use_calendar_adjustment),
        )
        return self.calculate(totals, context)
