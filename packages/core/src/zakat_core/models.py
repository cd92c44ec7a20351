"""Core data models for the Zakat worksheet.

This module implements the data structures shared by the worksheet:
the field catalog entries, the application state record the reducers
operate on, the calculation context, and the derived result with its
audit trail.

Monetary amounts are ``Decimal`` throughout. The persisted snapshot and
price cache formats are defined here as well, with the camelCase keys
used on disk.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMERATIONS
# =============================================================================

class FieldGroup(str, Enum):
    """Named groups partitioning the field catalog."""
    ASSETS = "assets"
    IMPERMISSIBLE_EARNINGS = "impermissible_earnings"
    EXPENSES = "expenses"


class WorksheetStep(str, Enum):
    """Sequential steps of the worksheet, in order."""
    ASSETS = "assets"
    HARAM_EARNINGS = "haram_earnings"
    EXPENSES = "expenses"
    CALCULATE = "calculate"

    @classmethod
    def ordered(cls) -> list["WorksheetStep"]:
        return [cls.ASSETS, cls.HARAM_EARNINGS, cls.EXPENSES, cls.CALCULATE]

    @property
    def position(self) -> int:
        return WorksheetStep.ordered().index(self)

    @property
    def label(self) -> str:
        return {
            WorksheetStep.ASSETS: "Assets",
            WorksheetStep.HARAM_EARNINGS: "Haram Earnings",
            WorksheetStep.EXPENSES: "Expenses",
            WorksheetStep.CALCULATE: "Calculate",
        }[self]


class PriceStatus(str, Enum):
    """Lifecycle of the silver price lookup."""
    IDLE = "idle"
    LOADING = "loading"
    FETCHED = "fetched"
    UNAVAILABLE = "unavailable"  # Fetch failed; enter the price manually


class Eligibility(str, Enum):
    """Why Zakat is, or is not, due.

    Values other than DUE are listed in the order they are reported:
    the first unmet condition wins.
    """
    DUE = "due"
    PRICE_MISSING = "price_missing"
    PRICE_UNCONFIRMED = "price_unconfirmed"
    BELOW_NISAB = "below_nisab"
    HAWL_NOT_MET = "hawl_not_met"

    @property
    def message(self) -> str:
        return ELIGIBILITY_MESSAGES[self]


ELIGIBILITY_MESSAGES = {
    Eligibility.DUE: "Zakat is due on your liable wealth.",
    Eligibility.PRICE_MISSING: "Enter the silver price to calculate your Nisab.",
    Eligibility.PRICE_UNCONFIRMED: "Please confirm the silver price to proceed.",
    Eligibility.BELOW_NISAB: "Your liable wealth is below the Nisab threshold.",
    Eligibility.HAWL_NOT_MET: (
        "Confirm that your wealth has been above Nisab for a full year."
    ),
}


# =============================================================================
# CATALOG MODELS
# =============================================================================

class FieldDef(BaseModel):
    """A single worksheet input line."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    label: str
    group: FieldGroup
    hint: Optional[str] = None
    tooltip: Optional[str] = None

    @property
    def help_text(self) -> Optional[str]:
        """Longest help available: the tooltip, else the hint."""
        return self.tooltip or self.hint


# =============================================================================
# CALCULATION MODELS
# =============================================================================

class CalculationContext(BaseModel):
    """Scalar inputs of the decision engine that are not worksheet lines."""
    reference_price_per_gram: Decimal = Field(default=Decimal("0"), ge=0)
    held_full_period: bool = False
    price_confirmed: bool = False
    use_calendar_adjustment: bool = False


class GroupTotals(BaseModel):
    """Subtotals of the three field groups."""
    total_assets: Decimal = Decimal("0")
    total_impermissible: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")


class AuditEntry(BaseModel):
    """Audit log entry for calculation transparency."""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    step: str
    input_value: str
    output_value: str
    source: str
    notes: Optional[str] = None


class ZakatResult(BaseModel):
    """Derived result of a worksheet. Never stored; recomputed on read."""

    # Worksheet subtotals
    total_assets: Decimal
    total_impermissible: Decimal
    total_expenses: Decimal

    # Wealth
    permissible_wealth: Decimal
    liable_wealth: Decimal

    # Nisab
    threshold_value: Decimal
    above_threshold: bool

    # Gates as evaluated
    held_full_period: bool
    price_confirmed: bool
    use_calendar_adjustment: bool

    # Amounts
    amount_due: Decimal
    adjusted_amount_due: Decimal

    eligibility: Eligibility
    audit_log: list[AuditEntry] = Field(default_factory=list)
    calculated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_due(self) -> bool:
        return self.eligibility == Eligibility.DUE

    @property
    def explanation(self) -> str:
        """User-facing sentence explaining the eligibility verdict."""
        return self.eligibility.message


# =============================================================================
# APPLICATION STATE
# =============================================================================

class WorksheetState(BaseModel):
    """Serializable application state of one worksheet session.

    Instances are immutable; the reducers in ``zakat_core.state`` return
    updated copies.
    """
    model_config = ConfigDict(frozen=True)

    entries: dict[str, Decimal] = Field(default_factory=dict)
    nisab_price: Decimal = Field(default=Decimal("0"), ge=0)
    held_one_year: bool = False
    use_gregorian: bool = False
    price_confirmed: bool = False
    price_user_edited: bool = False
    price_status: PriceStatus = PriceStatus.IDLE
    step: WorksheetStep = WorksheetStep.ASSETS

    def amount(self, field_id: str) -> Decimal:
        """Entered amount for a field; 0 when absent."""
        return self.entries.get(field_id, Decimal("0"))

    def context(self) -> CalculationContext:
        """Project the scalar inputs of the decision engine."""
        return CalculationContext(
            reference_price_per_gram=self.nisab_price,
            held_full_period=self.held_one_year,
            price_confirmed=self.price_confirmed,
            use_calendar_adjustment=self.use_gregorian,
        )


# =============================================================================
# PERSISTENCE FORMATS
# =============================================================================

class PersistedSnapshot(BaseModel):
    """On-disk worksheet snapshot.

    Only the user's inputs are persisted; confirmation, fetch status and the
    current step always start fresh.
    """
    model_config = ConfigDict(populate_by_name=True)

    data: dict[str, float] = Field(default_factory=dict)
    nisab_price: float = Field(default=0.0, alias="nisabPrice")
    held_one_year: bool = Field(default=False, alias="heldOneYear")
    use_gregorian: bool = Field(default=False, alias="useGregorian")


class PriceQuote(BaseModel):
    """A silver spot price converted to a per-gram figure."""
    silver_per_oz: Decimal = Field(default=Decimal("0"), ge=0)
    price_per_gram: Decimal = Field(gt=0)
    fetched_at: int = Field(description="Epoch milliseconds")
    from_cache: bool = False


class PriceCacheEntry(BaseModel):
    """On-disk cache of the last successful price fetch."""
    model_config = ConfigDict(populate_by_name=True)

    price_per_gram: float = Field(alias="pricePerGram")
    silver_per_oz: float = Field(default=0.0, alias="silverPerOz")
    fetched_at: int = Field(alias="fetchedAt", description="Epoch milliseconds")
