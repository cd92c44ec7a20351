"""Report generation for the Zakat worksheet.

Renders the worksheets, the Nisab and Hawl checks and the final amount as
plain text or markdown. All amounts are shown with two decimals and
thousands separators.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import structlog

from .calculator import GREGORIAN_ADJUSTMENT, NISAB_SILVER_GRAMS
from .catalog import get_group_fields
from .models import FieldGroup, PriceStatus, WorksheetState, WorksheetStep, ZakatResult

logger = structlog.get_logger()

CENTS = Decimal("0.01")

STEP_GROUPS = {
    WorksheetStep.ASSETS: FieldGroup.ASSETS,
    WorksheetStep.HARAM_EARNINGS: FieldGroup.IMPERMISSIBLE_EARNINGS,
    WorksheetStep.EXPENSES: FieldGroup.EXPENSES,
}

GROUP_TITLES = {
    FieldGroup.ASSETS: ("Worksheet 1: Total Earnings & Income", "Total Assets (A)"),
    FieldGroup.IMPERMISSIBLE_EARNINGS: ("Worksheet 2: Haram Earnings", "Total Haram Earnings (B)"),
    FieldGroup.EXPENSES: ("Worksheet 3: Expenses & Liabilities", "Total Expenses (C)"),
}

PRICE_STATUS_TEXT = {
    PriceStatus.IDLE: "",
    PriceStatus.LOADING: "fetching live price...",
    PriceStatus.FETCHED: "live price",
    PriceStatus.UNAVAILABLE: "live price unavailable - enter manually",
}


def format_currency(amount: Decimal) -> str:
    """Two decimals, half up, with thousands separators: ``1,234.50``."""
    return f"{Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP):,.2f}"


def format_money(amount: Decimal) -> str:
    """Currency with a dollar sign; the sign goes in front: ``-$12.00``."""
    amount = Decimal(amount)
    if amount < 0:
        return f"-${format_currency(-amount)}"
    return f"${format_currency(amount)}"


def describe_formula(result: ZakatResult) -> str:
    """The arithmetic behind the amount due, as shown under the result."""
    base = f"{format_money(result.liable_wealth)} × 2.5%"
    if result.use_calendar_adjustment:
        return f"{base} × {GREGORIAN_ADJUSTMENT} (Gregorian adjustment)"
    return base


def _check(flag: bool) -> str:
    return "✓" if flag else "✗"


@dataclass
class ReportSection:
    """A section of the report."""
    title: str
    content: str
    subsections: list["ReportSection"] = field(default_factory=list)


class ZakatReportGenerator:
    """
    Generate a Zakat worksheet report.

    Reports include:
    - One section per worksheet with its non-zero lines and subtotal
    - Nisab threshold and silver price status
    - Hawl and price confirmation checks
    - The amount due, or why none is due
    - Optionally, the calculation audit trail
    """

    def __init__(self):
        self._sections: list[ReportSection] = []
        self._report_date = ""

    def generate(
        self,
        state: WorksheetState,
        result: ZakatResult,
        format: str = "text",
        include_audit: bool = False,
        steps: Optional[list[WorksheetStep]] = None,
    ) -> str:
        """
        Generate the report.

        Args:
            state: Worksheet state the result was calculated from
            result: The calculation result
            format: Output format ("text" or "markdown")
            include_audit: Append the calculation audit trail
            steps: Limit the report to these steps (default: all)

        Returns:
            Formatted report string
        """
        self._sections = []
        steps = steps or WorksheetStep.ordered()

        self._add_header(result)
        for step in steps:
            if step in STEP_GROUPS:
                self._add_worksheet(state, result, STEP_GROUPS[step])
        if WorksheetStep.CALCULATE in steps:
            self._add_nisab(state, result)
            self._add_hawl(result)
            self._add_result(result)
        if include_audit:
            self._add_audit_trail(result)

        logger.debug("report_generated", format=format, sections=len(self._sections))
        if format == "markdown":
            return self._format_markdown()
        return self._format_text()

    def _add_header(self, result: ZakatResult) -> None:
        self._report_date = result.calculated_at.astimezone().strftime("%B %d, %Y")
        content = f"""
ZAKAT CALCULATION
=================

Report Date: {self._report_date}
""".strip()
        self._sections.append(ReportSection(title="Header", content=content))

    def _group_total(self, result: ZakatResult, group: FieldGroup) -> Decimal:
        return {
            FieldGroup.ASSETS: result.total_assets,
            FieldGroup.IMPERMISSIBLE_EARNINGS: result.total_impermissible,
            FieldGroup.EXPENSES: result.total_expenses,
        }[group]

    def _add_worksheet(self, state: WorksheetState, result: ZakatResult, group: FieldGroup) -> None:
        title, total_label = GROUP_TITLES[group]
        lines = []
        for f in get_group_fields(group):
            amount = state.amount(f.id)
            if amount:
                lines.append(f"{f.label:<40} {format_money(amount):>16}")
        if not lines:
            lines.append("(no amounts entered)")
        lines.append("-" * 57)
        lines.append(f"{total_label:<40} {format_money(self._group_total(result, group)):>16}")
        self._sections.append(ReportSection(title=title, content="\n".join(lines)))

    def _add_nisab(self, state: WorksheetState, result: ZakatResult) -> None:
        status = PRICE_STATUS_TEXT[state.price_status]
        price_line = f"Silver price per gram:    ${state.nisab_price}"
        if status:
            price_line += f" ({status})"
        content = "\n".join([
            price_line,
            f"Nisab ({NISAB_SILVER_GRAMS}g silver):     {format_money(result.threshold_value)}",
            f"Price confirmed:          {_check(result.price_confirmed)}",
        ])
        self._sections.append(ReportSection(title="Step 1: Nisab Threshold", content=content))

    def _add_hawl(self, result: ZakatResult) -> None:
        content = "\n".join([
            f"{_check(result.above_threshold)} Wealth above Nisab?",
            f"{_check(result.held_full_period)} Held above Nisab for 1 year?",
            f"Gregorian calendar adjustment: {'on' if result.use_calendar_adjustment else 'off'}",
        ])
        self._sections.append(ReportSection(title="Step 2: Hawl", content=content))

    def _add_result(self, result: ZakatResult) -> None:
        lines = [
            f"Total Assets (A):             {format_money(result.total_assets):>16}",
            f"Haram Earnings (B):           {format_money(result.total_impermissible):>16}",
            f"Permissible Wealth (A - B):   {format_money(result.permissible_wealth):>16}",
            f"Expenses (C):                 {format_money(result.total_expenses):>16}",
            f"Wealth Liable (A - B - C):    {format_money(result.liable_wealth):>16}",
            "",
        ]
        if result.adjusted_amount_due > 0:
            lines.append(f"YOUR ZAKAT DUE: {format_money(result.adjusted_amount_due)}")
            lines.append(describe_formula(result))
        else:
            lines.append("NO ZAKAT DUE")
            lines.append(result.explanation)
        self._sections.append(ReportSection(title="Step 3: Your Zakat Calculation", content="\n".join(lines)))

    def _add_audit_trail(self, result: ZakatResult) -> None:
        lines = [
            f"{entry.step}: {entry.input_value} = {entry.output_value} [{entry.source}]"
            for entry in result.audit_log
        ]
        self._sections.append(ReportSection(title="Calculation Audit Trail", content="\n".join(lines)))

    def _format_text(self) -> str:
        output = []
        for section in self._sections:
            if section.title != "Header":
                output.append(f"\n{section.title.upper()}")
                output.append("-" * len(section.title))
            output.append(section.content)
        return "\n".join(output) + "\n"

    def _format_markdown(self) -> str:
        output = []
        for section in self._sections:
            if section.title == "Header":
                output.append("# Zakat Calculation\n")
                output.append(f"*Generated: {self._report_date}*\n")
                continue
            output.append(f"## {section.title}\n")
            output.append("```")
            output.append(section.content)
            output.append("```\n")
        return "\n".join(output)
