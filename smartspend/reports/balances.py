"""
Balance Engine

DESIGN DECISION: Everything here is a PURE function of its inputs.
No state, no I/O, no clock. Reporting collaborators (dashboard, bazar
report, expense report, full monthly report) call these on demand.

Order independence: each transaction contributes an independent additive
delta per account, so the fold is commutative. Floating-point addition is
not associative, so deltas are collected and summed with math.fsum, which
is exactly rounded: the result is bit-identical for every permutation of
the input.
"""

import calendar
import math
from collections import defaultdict
from datetime import datetime, tzinfo
from enum import Enum
from typing import Callable, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

from smartspend.models.ledger import Account, Transaction, TransactionType


BAZAR_CATEGORY = "Bazar"
CASH_ACCOUNT_ID = "cash"
UNCATEGORIZED = "Other"

TransactionPredicate = Callable[[Transaction], bool]


class Granularity(str, Enum):
    """Calendar bucket used by aggregate_by_period."""
    DAY = "day"      # period key YYYY-MM-DD
    MONTH = "month"  # period key YYYY-MM


# =============================================================================
# RESULT MODELS
# =============================================================================

class PeriodGroup(BaseModel):
    """Transactions falling in one calendar day or month."""
    model_config = ConfigDict(frozen=True)

    period_key: str
    total: float
    items: tuple[Transaction, ...]


class CategoryGroup(BaseModel):
    """Transactions sharing a category."""
    model_config = ConfigDict(frozen=True)

    category: str
    total: float
    items: tuple[Transaction, ...]


class FinancialSummary(BaseModel):
    """Income/expense totals for a set of transactions."""
    model_config = ConfigDict(frozen=True)

    total_income: float = 0.0
    total_expenses: float = 0.0
    balance: float = 0.0
    savings_rate: float = Field(
        default=0.0,
        description="(income - expenses) / income * 100, 0 when there is no income"
    )


class MonthlyReport(BaseModel):
    """The full monthly report: flows, withdrawals, categories, closing balances."""
    model_config = ConfigDict(frozen=True)

    year: int
    month: int
    total_income: float
    total_expense: float
    net_flow: float
    total_withdrawals: float
    categories: tuple[CategoryGroup, ...]
    closing_balances: dict[str, float]


# =============================================================================
# PREDICATES
# =============================================================================

def is_income(tx: Transaction) -> bool:
    return tx.type == TransactionType.INCOME


def is_expense(tx: Transaction) -> bool:
    return tx.type == TransactionType.EXPENSE


def is_transfer(tx: Transaction) -> bool:
    return tx.type == TransactionType.TRANSFER


def in_category(category: str) -> TransactionPredicate:
    return lambda tx: tx.category == category


def in_month(year: int, month: int, tz: Optional[tzinfo] = None) -> TransactionPredicate:
    def predicate(tx: Transaction) -> bool:
        local = _local(tx.date, tz)
        return local.year == year and local.month == month
    return predicate


def in_year(year: int, tz: Optional[tzinfo] = None) -> TransactionPredicate:
    return lambda tx: _local(tx.date, tz).year == year


def touches_account(account_id: str) -> TransactionPredicate:
    return lambda tx: tx.account_id == account_id or tx.target_account_id == account_id


def all_of(*predicates: TransactionPredicate) -> TransactionPredicate:
    return lambda tx: all(p(tx) for p in predicates)


# =============================================================================
# HELPERS
# =============================================================================

def _local(moment: datetime, tz: Optional[tzinfo]) -> datetime:
    """Wall-clock time of a transaction. Naive datetimes are already local."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(tz)


def _newest_first(items: Iterable[Transaction]) -> tuple[Transaction, ...]:
    # Sort ascending by id first so equal dates keep a stable, input-independent order
    by_id = sorted(items, key=lambda tx: tx.id)
    return tuple(sorted(by_id, key=lambda tx: tx.date.timestamp(), reverse=True))


def _sum(amounts: Iterable[float]) -> float:
    return math.fsum(amounts)


# =============================================================================
# BALANCES
# =============================================================================

def compute_balances(
    accounts: Iterable[Account],
    transactions: Iterable[Transaction],
    as_of: Optional[datetime] = None,
) -> dict[str, float]:
    """
    Derive every known account's balance from the transaction set.

    - income:   +amount on accountId
    - expense:  -amount on accountId
    - transfer: -amount on accountId, +amount on targetAccountId

    Ids that are not known accounts are ignored. With `as_of`, only
    transactions dated at or before the cutoff count.
    """
    deltas: dict[str, list[float]] = {account.id: [] for account in accounts}

    def credit(account_id: Optional[str], amount: float) -> None:
        if account_id in deltas:
            deltas[account_id].append(amount)

    for tx in transactions:
        if as_of is not None and _comparable(tx.date, as_of) > as_of:
            continue
        if tx.type == TransactionType.INCOME:
            credit(tx.account_id, tx.amount)
        elif tx.type == TransactionType.EXPENSE:
            credit(tx.account_id, -tx.amount)
        elif tx.type == TransactionType.TRANSFER:
            credit(tx.account_id, -tx.amount)
            credit(tx.target_account_id, tx.amount)

    return {account_id: _sum(values) + 0.0 for account_id, values in deltas.items()}


# =============================================================================
# AGGREGATIONS
# =============================================================================

def aggregate_by_period(
    transactions: Iterable[Transaction],
    granularity: Granularity = Granularity.DAY,
    predicate: Optional[TransactionPredicate] = None,
    tz: Optional[tzinfo] = None,
) -> list[PeriodGroup]:
    """
    Group transactions by local calendar day or month.

    One routine for every report: the bazar report passes
    in_category(BAZAR_CATEGORY), the expense report passes is_expense, the
    monthly report combines them with in_month(...).

    Returns groups most-recent period first; items newest first.
    """
    key_format = "%Y-%m-%d" if granularity == Granularity.DAY else "%Y-%m"
    groups: dict[str, list[Transaction]] = defaultdict(list)

    for tx in transactions:
        if predicate is not None and not predicate(tx):
            continue
        groups[_local(tx.date, tz).strftime(key_format)].append(tx)

    return [
        PeriodGroup(
            period_key=key,
            total=_sum(tx.amount for tx in items),
            items=_newest_first(items),
        )
        for key, items in sorted(groups.items(), key=lambda kv: kv[0], reverse=True)
    ]


def aggregate_by_category(
    transactions: Iterable[Transaction],
    predicate: Optional[TransactionPredicate] = None,
) -> list[CategoryGroup]:
    """
    Group transactions by category.

    Sorted by total descending; ties broken by category name.
    """
    groups: dict[str, list[Transaction]] = defaultdict(list)
    for tx in transactions:
        if predicate is not None and not predicate(tx):
            continue
        groups[tx.category or UNCATEGORIZED].append(tx)

    result = [
        CategoryGroup(
            category=category,
            total=_sum(tx.amount for tx in items),
            items=_newest_first(items),
        )
        for category, items in groups.items()
    ]
    result.sort(key=lambda group: (-group.total, group.category))
    return result


# =============================================================================
# SUMMARIES
# =============================================================================

def summarize(
    transactions: Iterable[Transaction],
    account_id: Optional[str] = None,
) -> FinancialSummary:
    """
    Income/expense totals, as shown on the dashboard.

    For all accounts only boundary flows count (transfers net to zero).
    For a single account, money transferred out counts as an expense and
    money transferred in counts as income.
    """
    income: list[float] = []
    expenses: list[float] = []

    for tx in transactions:
        if account_id is None:
            if tx.type == TransactionType.INCOME:
                income.append(tx.amount)
            elif tx.type == TransactionType.EXPENSE:
                expenses.append(tx.amount)
            continue

        is_source = tx.account_id == account_id
        if tx.type == TransactionType.INCOME and is_source:
            income.append(tx.amount)
        elif tx.type == TransactionType.EXPENSE and is_source:
            expenses.append(tx.amount)
        elif tx.type == TransactionType.TRANSFER:
            if is_source:
                expenses.append(tx.amount)
            if tx.target_account_id == account_id:
                income.append(tx.amount)

    total_income = _sum(income)
    total_expenses = _sum(expenses)
    balance = total_income - total_expenses
    savings_rate = (balance / total_income) * 100 if total_income > 0 else 0.0

    return FinancialSummary(
        total_income=total_income,
        total_expenses=total_expenses,
        balance=balance,
        savings_rate=savings_rate,
    )


def end_of_month(year: int, month: int) -> datetime:
    """Last representable second of the month (naive, local)."""
    last_day = calendar.monthrange(year, month)[1]
    return datetime(year, month, last_day, 23, 59, 59)


def monthly_report(
    accounts: Iterable[Account],
    transactions: Iterable[Transaction],
    year: int,
    month: int,
    tz: Optional[tzinfo] = None,
) -> MonthlyReport:
    """
    Build the full monthly report.

    Withdrawals are transfers into the cash account from another account.
    Closing balances include every transaction up to the end of the month.
    """
    accounts = list(accounts)
    transactions = list(transactions)
    this_month = [tx for tx in transactions if in_month(year, month, tz)(tx)]

    total_income = _sum(tx.amount for tx in this_month if is_income(tx))
    total_expense = _sum(tx.amount for tx in this_month if is_expense(tx))
    total_withdrawals = _sum(
        tx.amount
        for tx in this_month
        if is_transfer(tx)
        and tx.target_account_id == CASH_ACCOUNT_ID
        and tx.account_id != CASH_ACCOUNT_ID
    )

    cutoff = end_of_month(year, month)
    if tz is not None:
        cutoff = cutoff.replace(tzinfo=tz)
    closing = compute_balances(
        accounts,
        [tx for tx in transactions if _comparable(tx.date, cutoff) <= cutoff],
    )

    return MonthlyReport(
        year=year,
        month=month,
        total_income=total_income,
        total_expense=total_expense,
        net_flow=total_income - total_expense,
        total_withdrawals=total_withdrawals,
        categories=tuple(aggregate_by_category(this_month, is_expense)),
        closing_balances=closing,
    )


def _comparable(moment: datetime, reference: datetime) -> datetime:
    # Mixed naive/aware comparisons raise; align to the reference's flavour
    if (moment.tzinfo is None) == (reference.tzinfo is None):
        return moment
    if reference.tzinfo is None:
        return moment.astimezone().replace(tzinfo=None)
    return moment.replace(tzinfo=reference.tzinfo)
