"""Zakat Core - Zakat worksheet calculations and price lookup."""

__version__ = "0.1.0"

from .aggregator import WorksheetAggregator, coerce_amount, sum_group
from .calculator import (
    GREGORIAN_ADJUSTMENT,
    NISAB_SILVER_GRAMS,
    ZAKAT_RATE,
    ZakatCalculator,
)
from .catalog import FIELD_CATALOG, FIELD_GROUPS
from .config import PriceSourceConfig, ZakatConfig
from .models import (
    CalculationContext,
    Eligibility,
    FieldDef,
    FieldGroup,
    GroupTotals,
    PriceStatus,
    WorksheetState,
    WorksheetStep,
    ZakatResult,
)
from .pricing import PriceService, SilverPriceSource
from .report import ZakatReportGenerator, format_currency
from .session import WorksheetSession
from .storage import LocalStore

__all__ = [
    "WorksheetAggregator",
    "coerce_amount",
    "sum_group",
    "GREGORIAN_ADJUSTMENT",
    "NISAB_SILVER_GRAMS",
    "ZAKAT_RATE",
    "ZakatCalculator",
    "FIELD_CATALOG",
    "FIELD_GROUPS",
    "PriceSourceConfig",
    "ZakatConfig",
    "CalculationContext",
    "Eligibility",
    "FieldDef",
    "FieldGroup",
    "GroupTotals",
    "PriceStatus",
    "WorksheetState",
    "WorksheetStep",
    "ZakatResult",
    "PriceService",
    "SilverPriceSource",
    "ZakatReportGenerator",
    "format_currency",
    "WorksheetSession",
    "LocalStore",
]
