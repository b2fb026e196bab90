import calendar
from datetime import date

import pytest

from tally import (
    T5,
    Account,
    Book,
    FiscalPeriod,
    LedgerEntry,
    MemoryAccounts,
    MemoryLedger,
    MemoryPeriods,
    MemorySnapshotStore,
    PeriodStatus,
    SnapshotService,
)


def month(year: int, period: int, status=PeriodStatus.Closed) -> FiscalPeriod:
    last_day = calendar.monthrange(year, period)[1]
    return FiscalPeriod(
        id=f"fp-{year}-{period:02d}",
        year=year,
        period=period,
        start_date=date(year, period, 1),
        end_date=date(year, period, last_day),
        status=status,
    )


@pytest.fixture
def cash():
    return Account("acc-cash", "1000", "Cash", T5.Asset)


@pytest.fixture
def revenue():
    return Account("acc-revenue", "4000", "Sales revenue", T5.Revenue)


@pytest.fixture
def expense():
    return Account("acc-expense", "5000", "Operating expenses", T5.Expense)


@pytest.fixture
def ledger():
    return MemoryLedger()


@pytest.fixture
def snapshots():
    return MemorySnapshotStore()


@pytest.fixture
def directory(cash, revenue, expense):
    accounts = MemoryAccounts()
    accounts.add("acme", cash, revenue, expense)
    return accounts


@pytest.fixture
def service(ledger, directory, snapshots):
    return SnapshotService(ledger, directory, snapshots)


@pytest.fixture
def post(ledger):
    """Post a balanced double entry for tenant `acme` (or another tenant)."""

    def _post(day, debit, credit, amount, tenant="acme"):
        ledger.post(
            tenant,
            [
                LedgerEntry.debit_of(day, debit, amount),
                LedgerEntry.credit_of(day, credit, amount),
            ],
        )

    return _post


@pytest.fixture
def jan_to_mar(post, cash, revenue, expense):
    post(date(2026, 1, 5), cash, revenue, 1000)
    post(date(2026, 2, 10), expense, cash, 200)
    post(date(2026, 3, 1), cash, revenue, 350.25)
    post(date(2026, 3, 31), expense, cash, 50)


@pytest.fixture
def periods():
    registry = MemoryPeriods()
    registry.add("acme", *(month(2026, m, PeriodStatus.Open) for m in range(1, 13)))
    return registry


@pytest.fixture
def book(service, periods):
    return Book("acme", service, periods)


@pytest.fixture
def make_period():
    return month
