"""Balance engine and reports."""

from smartspend.reports.balances import (
    BAZAR_CATEGORY,
    CASH_ACCOUNT_ID,
    UNCATEGORIZED,
    CategoryGroup,
    FinancialSummary,
    Granularity,
    MonthlyReport,
    PeriodGroup,
    aggregate_by_category,
    aggregate_by_period,
    all_of,
    compute_balances,
    end_of_month,
    in_category,
    in_month,
    in_year,
    is_expense,
    is_income,
    is_transfer,
    monthly_report,
    summarize,
    touches_account,
)

__all__ = [
    "BAZAR_CATEGORY",
    "CASH_ACCOUNT_ID",
    "UNCATEGORIZED",
    "CategoryGroup",
    "FinancialSummary",
    "Granularity",
    "MonthlyReport",
    "PeriodGroup",
    "aggregate_by_category",
    "aggregate_by_period",
    "all_of",
    "compute_balances",
    "end_of_month",
    "in_category",
    "in_month",
    "in_year",
    "is_expense",
    "is_income",
    "is_transfer",
    "monthly_report",
    "summarize",
    "touches_account",
]
