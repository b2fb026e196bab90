"""Balance snapshots and the arithmetic that builds them.

A snapshot holds per-account cumulative balances as of a closed period end
together with the activity of that period alone. It is built in one of two ways:

- `merge_with_delta()` adds one period of ledger entries to the prior snapshot
  (incremental path),
- `build_from_scan()` accumulates every ledger entry up to the period end
  (cold-start path).

Both paths produce the same figures for the same ledger.
"""

from collections import UserDict
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel

from .base import T5, CENT, SaveLoadMixin, add_money, subtract_money, sum_money
from .entry import AccountIndex, LedgerEntry
from .period import FiscalPeriod, snapshot_key

SCHEMA_VERSION = 1


class BalanceSnapshotEntry(BaseModel):
    account_id: str
    account_code: str
    account_name: str
    account_type: T5 | None = None
    cumulative_debit: Decimal = Decimal(0)
    cumulative_credit: Decimal = Decimal(0)
    cumulative_net: Decimal = Decimal(0)
    period_debit: Decimal = Decimal(0)
    period_credit: Decimal = Decimal(0)
    period_net: Decimal = Decimal(0)


class BalanceSnapshot(BaseModel, SaveLoadMixin):
    year: int
    period: int
    period_end_date: date
    fiscal_period_id: str
    accounts: list[BalanceSnapshotEntry] = []
    total_cumulative_debit: Decimal = Decimal(0)
    total_cumulative_credit: Decimal = Decimal(0)
    is_balanced: bool = True
    generated_at: datetime
    generated_by: str
    version: int = SCHEMA_VERSION

    @property
    def key(self) -> str:
        return snapshot_key(self.year, self.period)

    def account(self, account_id: str) -> BalanceSnapshotEntry:
        for entry in self.accounts:
            if entry.account_id == account_id:
                return entry
        raise KeyError(account_id)

    @property
    def imbalance(self) -> Decimal:
        return subtract_money(self.total_cumulative_debit, self.total_cumulative_credit)


@dataclass
class AccountActivity:
    """Running debit and credit sums for one account."""

    account_code: str
    account_name: str
    debit: Decimal = Decimal(0)
    credit: Decimal = Decimal(0)

    def add(self, entry: LedgerEntry):
        self.debit = add_money(self.debit, entry.debit)
        self.credit = add_money(self.credit, entry.credit)

    @property
    def net(self) -> Decimal:
        return subtract_money(self.debit, self.credit)


class ActivityDict(UserDict[str, AccountActivity]):
    """Ledger activity summed by account id, in order of first appearance."""

    @classmethod
    def from_entries(cls, entries: Iterable[LedgerEntry]):
        self = cls()
        for entry in entries:
            self.add(entry)
        return self

    def add(self, entry: LedgerEntry):
        if entry.account_id not in self.data:
            self.data[entry.account_id] = AccountActivity(
                entry.account_code, entry.account_name
            )
        self.data[entry.account_id].add(entry)


@dataclass
class Scan:
    """Cumulative and in-period activity from a full ledger scan."""

    cumulative: ActivityDict = field(default_factory=ActivityDict)
    period: ActivityDict = field(default_factory=ActivityDict)

    @classmethod
    def from_entries(cls, entries: Iterable[LedgerEntry], fiscal_period: FiscalPeriod):
        self = cls()
        for entry in entries:
            self.cumulative.add(entry)
            if fiscal_period.contains(entry.entry_date):
                self.period.add(entry)
        return self


def new_entry(
    account_id: str,
    cumulative: AccountActivity,
    period: AccountActivity | None,
    account_type: T5 | None,
) -> BalanceSnapshotEntry:
    period_debit = period.debit if period else Decimal(0)
    period_credit = period.credit if period else Decimal(0)
    return BalanceSnapshotEntry(
        account_id=account_id,
        account_code=cumulative.account_code,
        account_name=cumulative.account_name,
        account_type=account_type,
        cumulative_debit=cumulative.debit,
        cumulative_credit=cumulative.credit,
        cumulative_net=cumulative.net,
        period_debit=period_debit,
        period_credit=period_credit,
        period_net=subtract_money(period_debit, period_credit),
    )


def merge_with_delta(
    prior: BalanceSnapshot, period_entries: Iterable[LedgerEntry], index: AccountIndex
) -> list[BalanceSnapshotEntry]:
    """Add one period of ledger entries on top of the prior snapshot."""
    delta = ActivityDict.from_entries(period_entries)
    result: dict[str, BalanceSnapshotEntry] = {}
    for entry in prior.accounts:
        activity = delta.get(entry.account_id)
        cumulative = AccountActivity(
            entry.account_code,
            entry.account_name,
            add_money(entry.cumulative_debit, activity.debit if activity else 0),
            add_money(entry.cumulative_credit, activity.credit if activity else 0),
        )
        account_type = entry.account_type or index.type_of(
            entry.account_id, entry.account_code
        )
        result[entry.account_id] = new_entry(
            entry.account_id, cumulative, activity, account_type
        )
    # first activity ever: cumulative starts with this period
    for account_id, activity in delta.items():
        if account_id in result:
            continue
        account_type = index.type_of(account_id, activity.account_code)
        result[account_id] = new_entry(account_id, activity, activity, account_type)
    return sort_entries(result.values())


def build_from_scan(
    entries: Iterable[LedgerEntry], fiscal_period: FiscalPeriod, index: AccountIndex
) -> list[BalanceSnapshotEntry]:
    """Accumulate all entries up to period end, marking the in-period part."""
    scan = Scan.from_entries(entries, fiscal_period)
    return sort_entries(
        new_entry(
            account_id,
            cumulative,
            scan.period.get(account_id),
            index.type_of(account_id, cumulative.account_code),
        )
        for account_id, cumulative in scan.cumulative.items()
    )


def sort_entries(entries: Iterable[BalanceSnapshotEntry]) -> list[BalanceSnapshotEntry]:
    return sorted(entries, key=lambda e: (e.account_code, e.account_id))


def totals(
    entries: list[BalanceSnapshotEntry], tolerance: Decimal = CENT
) -> tuple[Decimal, Decimal, bool]:
    """Return total cumulative debit, total cumulative credit and balance flag."""
    debit = sum_money(e.cumulative_debit for e in entries)
    credit = sum_money(e.cumulative_credit for e in entries)
    return debit, credit, abs(debit - credit) < tolerance
