"""Worksheet subtotals.

Sums worksheet entries over the named field groups of the catalog. Every
function here is pure and total: amounts are coerced rather than
validated, so a worksheet never fails to add up.
"""

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional

import structlog

from .catalog import FIELD_CATALOG, FIELD_GROUPS
from .exceptions import CatalogError
from .models import FieldDef, FieldGroup, GroupTotals

logger = structlog.get_logger()

ZERO = Decimal("0")

# Leading numeric prefix of a keyboard entry, after stripping everything
# but digits and dots ("1,250.50" -> "1250.50", "1.2.3" -> "1.2").
_NUMERIC_PREFIX = re.compile(r"\d+(?:\.\d*)?|\.\d+")
_NON_NUMERIC = re.compile(r"[^0-9.]")


def coerce_amount(value: Any) -> Decimal:
    """Coerce a user-supplied amount to a non-negative Decimal.

    Missing, non-numeric, non-finite and negative values become 0.
    Strings are cleaned the way the worksheet's input fields clean
    keystrokes: only digits and dots are kept, and the leading number
    is parsed.
    """
    if value is None or isinstance(value, bool):
        return ZERO

    if isinstance(value, str):
        match = _NUMERIC_PREFIX.match(_NON_NUMERIC.sub("", value))
        if not match:
            return ZERO
        value = match.group(0)

    try:
        if isinstance(value, float):
            if math.isnan(value) or math.isinf(value):
                return ZERO
            amount = Decimal(str(value))
        elif isinstance(value, (int, str, Decimal)):
            amount = Decimal(value)
        else:
            return ZERO
    except (InvalidOperation, ValueError):
        return ZERO

    if not amount.is_finite() or amount < 0:
        return ZERO
    return amount


_TRUE_STRINGS = {"1", "true", "yes", "y", "on"}


def coerce_flag(value: Any) -> bool:
    """Coerce a checkbox-like value to bool; anything unrecognised is False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def sum_group(entries: Mapping[str, Any], group_ids: Iterable[str]) -> Decimal:
    """Sum the entries of the given field ids.

    Ids absent from ``entries`` count as 0; entries outside ``group_ids``
    are ignored.
    """
    total = ZERO
    for field_id in group_ids:
        total += coerce_amount(entries.get(field_id))
    return total


class WorksheetAggregator:
    """
    Compute category subtotals for a worksheet.

    Group membership is checked against the catalog once, at construction.
    A group naming an id the catalog does not define is a programmer error
    and raises CatalogError; nothing is checked per call.
    """

    def __init__(
        self,
        catalog: Iterable[FieldDef] = FIELD_CATALOG,
        groups: Optional[Mapping[FieldGroup, Iterable[FieldDef]]] = None,
    ):
        known_ids = {f.id for f in catalog}
        groups = FIELD_GROUPS if groups is None else groups

        self._group_ids: dict[FieldGroup, tuple[str, ...]] = {}
        for group, fields in groups.items():
            ids = tuple(f.id for f in fields)
            missing = [i for i in ids if i not in known_ids]
            if missing:
                raise CatalogError(
                    f"Group {group.value} references fields outside the catalog",
                    group=group.value,
                    missing_ids=missing,
                )
            self._group_ids[group] = ids

        for group in FieldGroup:
            if group not in self._group_ids:
                raise CatalogError(
                    f"No fields defined for group {group.value}",
                    group=group.value,
                )

    def group_ids(self, group: FieldGroup) -> tuple[str, ...]:
        return self._group_ids[group]

    def total(self, entries: Mapping[str, Any], group: FieldGroup) -> Decimal:
        """Subtotal of one group."""
        return sum_group(entries, self._group_ids[group])

    def subtotals(self, entries: Mapping[str, Any]) -> GroupTotals:
        """Subtotals of all three groups."""
        totals = GroupTotals(
            total_assets=self.total(entries, FieldGroup.ASSETS),
            total_impermissible=self.total(entries, FieldGroup.IMPERMISSIBLE_EARNINGS),
            total_expenses=self.total(entries, FieldGroup.EXPENSES),
        )
        logger.debug(
            "worksheet_subtotals",
            assets=str(totals.total_assets),
            impermissible=str(totals.total_impermissible),
            expenses=str(totals.total_expenses),
        )
        return totals
