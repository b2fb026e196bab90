from .base import T5, TallyError
from .book import Book
from .config import EngineConfig
from .engine import BuildPath, GenerationStats, SnapshotService
from .entry import Account, AccountIndex, LedgerEntry
from .period import FiscalPeriod, PeriodStatus, decrement_period, snapshot_key
from .report import (
    BalanceSheet,
    IncomeStatement,
    ReportDict,
    TrialBalance,
    balance_sheet,
    balances_as_of,
    income_statement,
    trial_balance,
)
from .snapshot import BalanceSnapshot, BalanceSnapshotEntry
from .store import (
    AccountDirectory,
    FileSnapshotStore,
    LedgerStore,
    MemoryAccounts,
    MemoryLedger,
    MemoryPeriods,
    MemorySnapshotStore,
    PeriodRegistry,
    SnapshotStore,
    make_snapshot_store,
)
