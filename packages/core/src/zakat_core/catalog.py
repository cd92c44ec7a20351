"""Field catalog for the Zakat worksheet.

This module contains the static table of worksheet lines, partitioned
into the three groups the calculation sums over. The table is configuration
data: it is defined once at import time and never mutated.

Source: Simple Zakat Guide (Joe Bradford), worksheets 1-3.
"""

from types import MappingProxyType
from typing import Mapping

from .exceptions import CatalogError
from .models import FieldDef, FieldGroup


# =============================================================================
# WORKSHEET 1 - TOTAL EARNINGS & INCOME
# =============================================================================

ASSET_FIELDS: tuple[FieldDef, ...] = tuple(
    FieldDef(group=FieldGroup.ASSETS, **spec) for spec in (
        {"id": "cash_on_hand", "label": "Cash on hand", "hint": "Physical currency"},
        {"id": "checking", "label": "Checking accounts", "hint": "All checking account balances"},
        {"id": "savings", "label": "Savings accounts", "hint": "All savings account balances"},
        {
            "id": "gold",
            "label": "Gold (value in currency)",
            "hint": "All gold jewelry, bullion, coins by pure weight",
            "tooltip": (
                "Add up all your gold: jewelry, coins, bars. Only count the pure gold "
                "content, not the total weight of mixed items. Multiply today's gold "
                "price per gram by your total pure gold weight."
            ),
        },
        {"id": "silver", "label": "Silver (value in currency)",
         "hint": "All silver jewelry, bullion, coins, silverware"},
        {
            "id": "active_investments",
            "label": "Active investments",
            "hint": "Stocks traded < 1 year, full market value",
            "tooltip": (
                "Investments you actively trade: stocks, ETFs or funds bought and sold "
                "within the past year. Enter their full market value today."
            ),
        },
        {
            "id": "passive_investments",
            "label": "Passive investments (CRI)",
            "hint": "Long-term stocks, CRI method (about 30% of market value)",
            "tooltip": (
                "Long-term investments held over one year that you don't actively "
                "trade. With the CRI method you only count about 30% of the market "
                "value: a $10,000 index fund is entered as $3,000."
            ),
        },
        {
            "id": "dividends",
            "label": "Dividend earnings",
            "hint": "Total dividend income received",
            "tooltip": (
                "Cash payments companies pay you for owning their stock. Check your "
                "brokerage account for total dividends received this year."
            ),
        },
        {
            "id": "capital_gains",
            "label": "Capital gains on sales",
            "hint": "Gains from assets sold this year",
            "tooltip": (
                "Profit from selling an asset for more than you paid. Shares bought "
                "for $1,000 and sold for $1,500 are a $500 capital gain."
            ),
        },
        {
            "id": "retirement_401k",
            "label": "401(k) / pension",
            "hint": "Net value if using Approach 1; or 0 if deferring (Approach 2)",
            "tooltip": (
                "Approach 1: include the full balance minus early-withdrawal penalties "
                "and taxes. Approach 2: enter 0 now and pay Zakat when you withdraw "
                "the money in retirement."
            ),
        },
        {
            "id": "retirement_ira",
            "label": "IRA / Roth IRA",
            "hint": "Net value if using Approach 1; or 0 if deferring",
            "tooltip": (
                "Same two approaches as 401(k). Approach 1 pays Zakat now on the full "
                "value, Approach 2 defers it until withdrawal."
            ),
        },
        {
            "id": "education_accounts",
            "label": "Education accounts (529, ESA)",
            "hint": "Only if not used for education expenses",
            "tooltip": (
                "529 plans, Coverdell ESAs and similar accounts. Only include them if "
                "the funds won't be used for education."
            ),
        },
        {
            "id": "hsa",
            "label": "Health Savings Account (HSA)",
            "hint": "Full aggregate balance, rolls over yearly",
            "tooltip": (
                "Unlike FSAs, HSA balances roll over every year and the money is "
                "permanently yours. Include the full balance."
            ),
        },
        {
            "id": "real_estate_market",
            "label": "Real estate (on market)",
            "hint": "Current market value of properties actively for sale",
            "tooltip": (
                "Only properties you are actively trying to sell. Your home, vacation "
                "home and rentals you plan to keep are not included."
            ),
        },
        {
            "id": "rental_income",
            "label": "Rental income",
            "hint": "Net rental income from investment properties",
            "tooltip": (
                "Total rent collected minus property expenses such as repairs, "
                "management fees and maintenance."
            ),
        },
        {"id": "cryptocurrency", "label": "Cryptocurrency", "hint": "Total value in local currency"},
        {
            "id": "nfts_digital",
            "label": "NFTs & digital assets",
            "hint": "Based on underlying asset rules",
            "tooltip": (
                "Digital assets held for trade or sale count at current market value. "
                "Personal-use digital items may be exempt."
            ),
        },
        {
            "id": "business_inventory",
            "label": "Business inventory",
            "hint": "Unsold inventory not under contract",
            "tooltip": (
                "Products in stock that haven't been sold or committed under contract. "
                "Equipment, tools and raw materials used to run the business are excluded."
            ),
        },
        {
            "id": "accounts_receivable",
            "label": "Accounts receivable",
            "hint": "Money owed to you (collectible)",
            "tooltip": (
                "Money customers or clients owe you that you can reasonably expect to "
                "collect. Written-off debts are excluded."
            ),
        },
        {
            "id": "good_debt",
            "label": "Good debt owed to you",
            "hint": "Loans to others you can reasonably collect",
            "tooltip": (
                "Money lent to someone able and expected to pay it back."
            ),
        },
        {"id": "other_assets", "label": "Other liable assets",
         "hint": "Collectibles for sale, livestock for sale, etc."},
    )
)


# =============================================================================
# WORKSHEET 2 - HARAM EARNINGS
# =============================================================================
# Impermissible income is purified, not kept, so it is subtracted from
# gross assets before the Nisab comparison.

HARAM_FIELDS: tuple[FieldDef, ...] = tuple(
    FieldDef(group=FieldGroup.IMPERMISSIBLE_EARNINGS, **spec) for spec in (
        {
            "id": "equity_haram",
            "label": "Equity haram earnings",
            "hint": "(Prohibited income / Shares outstanding) x Your shares",
            "tooltip": (
                "Your share of a company's prohibited income such as interest or "
                "alcohol revenue: prohibited income divided by shares outstanding, "
                "times the shares you hold."
            ),
        },
        {
            "id": "dividend_haram",
            "label": "Dividend haram earnings",
            "hint": "(Prohibited income / Total income) x Dividend received",
            "tooltip": (
                "The prohibited portion of dividends received. If 5% of a company's "
                "revenue is prohibited and you received $200 in dividends, enter $10."
            ),
        },
        {
            "id": "bond_interest",
            "label": "Bond / interest earnings",
            "hint": "Interest earned from fixed-income instruments",
            "tooltip": (
                "All interest from bonds, CDs, money market funds or savings accounts. "
                "Interest income (riba) must be removed from your wealth."
            ),
        },
    )
)


# =============================================================================
# WORKSHEET 3 - EXPENSES & LIABILITIES
# =============================================================================
# Only amounts that are immediately due are deductible.

EXPENSE_FIELDS: tuple[FieldDef, ...] = tuple(
    FieldDef(group=FieldGroup.EXPENSES, **spec) for spec in (
        {"id": "rent_mortgage", "label": "Rent / mortgage (1 month)", "hint": "One month's housing payment"},
        {"id": "medical", "label": "Medical expenses", "hint": "Current period medical costs"},
        {"id": "groceries", "label": "Groceries & household", "hint": "One month's food and supplies"},
        {"id": "utilities", "label": "Utilities & telecom", "hint": "One month's utilities"},
        {"id": "transport", "label": "Transportation & fuel", "hint": "One month's transport costs"},
        {"id": "insurance", "label": "Insurance payments", "hint": "Home, auto, medical: period-due amount"},
        {
            "id": "property_tax",
            "label": "Property taxes (period-due)",
            "hint": "Only the currently-due portion",
            "tooltip": (
                "Only the portion currently due, not the full annual bill. A $6,000 "
                "annual tax paid quarterly is entered as $1,500."
            ),
        },
        {
            "id": "delinquent_tax",
            "label": "Delinquent taxes & fines",
            "hint": "Overdue taxes, fines, penalties",
            "tooltip": (
                "Overdue taxes, unpaid tickets, court fines or government penalties "
                "you currently owe."
            ),
        },
        {
            "id": "debts_owed",
            "label": "Debts owed (immediately due)",
            "hint": "Only debts with current payment obligations",
            "tooltip": (
                "Only payments due right now, such as this month's credit card minimum "
                "or a loan installment due today. Not the total mortgage balance."
            ),
        },
        {"id": "other_expenses", "label": "Other deductible expenses", "hint": "Miscellaneous living costs"},
    )
)


# =============================================================================
# CATALOG
# =============================================================================

FIELD_GROUPS: Mapping[FieldGroup, tuple[FieldDef, ...]] = MappingProxyType({
    FieldGroup.ASSETS: ASSET_FIELDS,
    FieldGroup.IMPERMISSIBLE_EARNINGS: HARAM_FIELDS,
    FieldGroup.EXPENSES: EXPENSE_FIELDS,
})

FIELD_CATALOG: tuple[FieldDef, ...] = ASSET_FIELDS + HARAM_FIELDS + EXPENSE_FIELDS


def _index_catalog(fields: tuple[FieldDef, ...]) -> Mapping[str, FieldDef]:
    index: dict[str, FieldDef] = {}
    for field in fields:
        if field.id in index:
            raise CatalogError(f"Duplicate field id in catalog: {field.id}",
                               group=field.group.value, missing_ids=[field.id])
        index[field.id] = field
    return MappingProxyType(index)


FIELDS_BY_ID: Mapping[str, FieldDef] = _index_catalog(FIELD_CATALOG)


def get_field(field_id: str) -> FieldDef:
    """Look up a catalog entry by id.

    Raises:
        KeyError: If the id is not in the catalog.
    """
    return FIELDS_BY_ID[field_id]


def is_known_field(field_id: str) -> bool:
    return field_id in FIELDS_BY_ID


def get_group_fields(group: FieldGroup) -> tuple[FieldDef, ...]:
    """Ordered fields of one group."""
    return FIELD_GROUPS[group]


def get_group_ids(group: FieldGroup) -> tuple[str, ...]:
    return tuple(f.id for f in FIELD_GROUPS[group])
