"""Balances and reports built from the nearest snapshot plus the ledger delta."""

from collections import UserDict
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable

import simplejson as json  # type: ignore
from pydantic import BaseModel

from .base import T5, CENT, SaveLoadMixin, add_money, subtract_money, sum_money
from .engine import SnapshotService
from .entry import Account, LedgerEntry


class ReportDict(UserDict[str, Decimal], SaveLoadMixin):
    @property
    def total(self):
        return sum_money(self.data.values())

    def add(self, key: str, amount: Decimal):
        self.data[key] = add_money(self.data.get(key, 0), amount)

    def model_dump_json(self, indent: int = 2, warnings: bool = False):
        return json.dumps(self.data, indent=indent)

    @classmethod
    def model_validate_json(cls, text: str):
        return cls(json.loads(text, use_decimal=True))


@dataclass
class NetBalances:
    """Net (debit less credit) amounts keyed by account id and by account code."""

    by_id: ReportDict = field(default_factory=ReportDict)
    by_code: ReportDict = field(default_factory=ReportDict)

    def add(self, account_id: str, account_code: str, amount: Decimal):
        self.by_id.add(account_id, amount)
        self.by_code.add(account_code, amount)

    def add_entry(self, entry: LedgerEntry):
        self.add(entry.account_id, entry.account_code, entry.net)

    def get(self, account_id: str, account_code: str) -> Decimal:
        if account_id in self.by_id:
            return self.by_id[account_id]
        return self.by_code.get(account_code, Decimal(0))


def balances_as_of(service: SnapshotService, tenant: str, as_of: date) -> ReportDict:
    """Net balance per account id for all ledger entries dated up to *as_of*."""
    balances = NetBalances()
    snapshot = service.find_latest_snapshot_before(tenant, as_of + timedelta(days=1))
    after = None
    if snapshot is not None:
        for entry in snapshot.accounts:
            balances.add(entry.account_id, entry.account_code, entry.cumulative_net)
        after = snapshot.period_end_date
    for ledger_entry in service.query_gl_delta(tenant, after, as_of):
        balances.add_entry(ledger_entry)
    return balances.by_id


def opening_and_period(
    service: SnapshotService, tenant: str, period_start: date, as_of: date
) -> tuple[NetBalances, NetBalances]:
    """Split net balances up to *as_of* into before and from *period_start*."""
    opening, period = NetBalances(), NetBalances()
    snapshot = service.find_latest_snapshot_before(tenant, period_start)
    after = None
    if snapshot is not None:
        for entry in snapshot.accounts:
            opening.add(entry.account_id, entry.account_code, entry.cumulative_net)
        after = snapshot.period_end_date
    for ledger_entry in service.query_gl_delta(tenant, after, as_of):
        if ledger_entry.entry_date < period_start:
            opening.add_entry(ledger_entry)
        else:
            period.add_entry(ledger_entry)
    return opening, period


def split(net: Decimal) -> tuple[Decimal, Decimal]:
    """Return (debit, credit) presentation of a net amount."""
    if net > 0:
        return net, Decimal(0)
    return Decimal(0), abs(net)


class TrialBalanceRow(BaseModel):
    account_id: str
    account_code: str
    account_name: str
    account_type: T5
    opening_debit: Decimal
    opening_credit: Decimal
    period_debit: Decimal
    period_credit: Decimal
    closing_debit: Decimal
    closing_credit: Decimal

    @classmethod
    def new(cls, account, opening: Decimal, period: Decimal):
        closing = add_money(opening, period)
        opening_debit, opening_credit = split(opening)
        period_debit, period_credit = split(period)
        closing_debit, closing_credit = split(closing)
        return cls(
            account_id=account.id,
            account_code=account.code,
            account_name=account.name,
            account_type=account.type,
            opening_debit=opening_debit,
            opening_credit=opening_credit,
            period_debit=period_debit,
            period_credit=period_credit,
            closing_debit=closing_debit,
            closing_credit=closing_credit,
        )

    def is_empty(self) -> bool:
        return all(
            abs(amount) < CENT
            for amount in (
                self.opening_debit - self.opening_credit,
                self.period_debit - self.period_credit,
                self.closing_debit - self.closing_credit,
            )
        )


class TrialBalance(BaseModel, SaveLoadMixin):
    as_of: date
    period_start: date
    rows: list[TrialBalanceRow]
    total_debit: Decimal
    total_credit: Decimal
    is_balanced: bool

    @classmethod
    def from_rows(cls, as_of: date, period_start: date, rows: Iterable[TrialBalanceRow]):
        rows = sorted(rows, key=lambda r: r.account_code)
        total_debit = sum_money(r.closing_debit for r in rows)
        total_credit = sum_money(r.closing_credit for r in rows)
        return cls(
            as_of=as_of,
            period_start=period_start,
            rows=rows,
            total_debit=total_debit,
            total_credit=total_credit,
            is_balanced=abs(total_debit - total_credit) < CENT,
        )


def trial_balance(
    service: SnapshotService, tenant: str, as_of: date, period_start: date
) -> TrialBalance:
    opening, period = opening_and_period(service, tenant, period_start, as_of)
    rows = []
    for account in service.accounts.all_accounts(tenant):
        if not account.is_active:
            continue
        row = TrialBalanceRow.new(
            account,
            opening.get(account.id, account.code),
            period.get(account.id, account.code),
        )
        if not row.is_empty():
            rows.append(row)
    return TrialBalance.from_rows(as_of, period_start, rows)


CREDIT_NORMAL = (T5.Liability, T5.Equity, T5.Revenue)


def fill(accounts: Iterable[Account], t: T5, *balances: NetBalances) -> ReportDict:
    """Return balances of active accounts of type *t* keyed by account code.

    Credit-normal accounts are shown with a positive sign. Zero balances are
    left out.
    """
    result = ReportDict()
    for account in sorted(accounts, key=lambda a: (a.code, a.id)):
        if not account.is_active or account.type != t:
            continue
        amount = sum_money(b.get(account.id, account.code) for b in balances)
        if t in CREDIT_NORMAL:
            amount = -amount
        if abs(amount) >= CENT:
            result.add(account.code, amount)
    return result


@dataclass
class IncomeStatement:
    period_start: date
    period_end: date
    income: ReportDict
    expenses: ReportDict

    @classmethod
    def new(cls, accounts, period_start: date, period_end: date, *balances: NetBalances):
        return cls(
            period_start=period_start,
            period_end=period_end,
            income=fill(accounts, T5.Revenue, *balances),
            expenses=fill(accounts, T5.Expense, *balances),
        )

    @property
    def net_earnings(self) -> Decimal:
        """Calculate net earnings as income less expenses."""
        return subtract_money(self.income.total, self.expenses.total)


@dataclass
class BalanceSheet:
    as_of: date
    assets: ReportDict
    equity: ReportDict
    liabilities: ReportDict

    def is_balanced(self) -> bool:
        """Return True if assets equal liabilities plus equity."""
        return abs(self.assets.total - add_money(self.equity.total, self.liabilities.total)) < CENT


def income_statement(
    service: SnapshotService, tenant: str, period_start: date, period_end: date
) -> IncomeStatement:
    """Revenue and expense activity dated within [period_start, period_end]."""
    _, period = opening_and_period(service, tenant, period_start, period_end)
    accounts = service.accounts.all_accounts(tenant)
    return IncomeStatement.new(accounts, period_start, period_end, period)


def balance_sheet(
    service: SnapshotService,
    tenant: str,
    as_of: date,
    fiscal_year_start: date | None = None,
) -> BalanceSheet:
    """Assets, liabilities and equity through *as_of* inclusive.

    Revenue and expense are rolled into equity: activity since
    *fiscal_year_start* (January 1 of the *as_of* year by default) as
    `current_earnings`, older activity as `retained_earnings`.
    """
    if fiscal_year_start is None:
        fiscal_year_start = date(as_of.year, 1, 1)
    opening, current = opening_and_period(service, tenant, fiscal_year_start, as_of)
    accounts = service.accounts.all_accounts(tenant)
    equity = fill(accounts, T5.Equity, opening, current)
    earnings = {
        "retained_earnings": IncomeStatement.new(
            accounts, date.min, fiscal_year_start - timedelta(days=1), opening
        ).net_earnings,
        "current_earnings": IncomeStatement.new(
            accounts, fiscal_year_start, as_of, current
        ).net_earnings,
    }
    for name, amount in earnings.items():
        if abs(amount) >= CENT:
            equity.add(name, amount)
    return BalanceSheet(
        as_of=as_of,
        assets=fill(accounts, T5.Asset, opening, current),
        equity=equity,
        liabilities=fill(accounts, T5.Liability, opening, current),
    )
