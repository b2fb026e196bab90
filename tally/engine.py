"""Snapshot generation and lookup.

`SnapshotService` turns the append-only ledger of a tenant into monthly
balance snapshots and finds the snapshot to start a report from:

1. `generate_snapshot()` builds a snapshot for a closed fiscal period,
   incrementally from the prior period snapshot or from a full scan,
2. `find_latest_snapshot_before()` walks back month by month over
   deterministic keys,
3. `query_gl_delta()` returns ledger entries after a snapshot end date,
4. `delete_snapshot()` drops a snapshot when its period is reopened.

Reports combine a snapshot with the ledger delta since its period end.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum

from .base import TallyError
from .config import EngineConfig
from .entry import AccountIndex, LedgerEntry
from .period import FiscalPeriod, decrement_period, snapshot_key, walk_back
from .snapshot import (
    SCHEMA_VERSION,
    BalanceSnapshot,
    build_from_scan,
    merge_with_delta,
    totals,
)
from .store import AccountDirectory, LedgerStore, SnapshotStore

logger = logging.getLogger(__name__)


class BuildPath(Enum):
    Incremental = "incremental"
    ColdStart = "cold_start"


@dataclass
class GenerationStats:
    key: str
    path: BuildPath
    entries_read: int


@dataclass
class SnapshotService:
    ledger: LedgerStore
    accounts: AccountDirectory
    snapshots: SnapshotStore
    config: EngineConfig = field(default_factory=EngineConfig)

    def generate_snapshot(
        self, tenant: str, period: FiscalPeriod, generated_by: str
    ) -> BalanceSnapshot:
        """Build, save and return the snapshot for a closed fiscal period.

        Writing to the same key again overwrites the earlier snapshot.
        """
        return self.generate_snapshot_with_stats(tenant, period, generated_by)[0]

    def generate_snapshot_with_stats(
        self, tenant: str, period: FiscalPeriod, generated_by: str
    ) -> tuple[BalanceSnapshot, GenerationStats]:
        """Same as `generate_snapshot()`, also telling which path built it."""
        if not period.is_closed():
            raise TallyError(f"Fiscal period {period.key} must be closed.")
        key = period.key
        index = AccountIndex.from_accounts(self.accounts.all_accounts(tenant))
        prior_key = snapshot_key(*decrement_period(period.year, period.period))
        prior = self.snapshots.get(tenant, prior_key)
        if prior is not None:
            entries = self.ledger.query(tenant, period.end_date, start=period.start_date)
            accounts = merge_with_delta(prior, entries, index)
            path = BuildPath.Incremental
        else:
            entries = self.query_gl_delta(tenant, None, period.end_date)
            accounts = build_from_scan(entries, period, index)
            path = BuildPath.ColdStart
        stats = GenerationStats(key, path, len(entries))
        logger.info(
            "Generating snapshot %s for tenant %s via %s path from %d ledger entries",
            key,
            tenant,
            path.value,
            stats.entries_read,
            extra=dict(
                tenant=tenant, key=key, path=path.value, entries_read=stats.entries_read
            ),
        )
        debit, credit, is_balanced = totals(accounts, self.config.balance_tolerance)
        snapshot = BalanceSnapshot(
            year=period.year,
            period=period.period,
            period_end_date=period.end_date,
            fiscal_period_id=period.id,
            accounts=accounts,
            total_cumulative_debit=debit,
            total_cumulative_credit=credit,
            is_balanced=is_balanced,
            generated_at=datetime.now(timezone.utc),
            generated_by=generated_by,
            version=SCHEMA_VERSION,
        )
        if not is_balanced:
            logger.warning(
                "Snapshot %s for tenant %s is not balanced: debit %s, credit %s",
                key,
                tenant,
                debit,
                credit,
            )
        self.snapshots.put(tenant, key, snapshot)
        return snapshot, stats

    def get_snapshot(self, tenant: str, key: str) -> BalanceSnapshot | None:
        return self.snapshots.get(tenant, key)

    def find_latest_snapshot_before(
        self, tenant: str, before_date: date
    ) -> BalanceSnapshot | None:
        """Return the latest snapshot ending strictly before *before_date*.

        Probes one key per month starting with the month before *before_date*,
        up to `config.lookback_months` probes.
        """
        for year, month in walk_back(
            before_date.year, before_date.month, self.config.lookback_months
        ):
            snapshot = self.snapshots.get(tenant, snapshot_key(year, month))
            if snapshot and snapshot.period_end_date < before_date:
                return snapshot
        logger.debug(
            "No snapshot before %s for tenant %s within %d months",
            before_date,
            tenant,
            self.config.lookback_months,
        )
        return None

    def query_gl_delta(
        self, tenant: str, after_date: date | None, up_to_date: date
    ) -> list[LedgerEntry]:
        """Ledger entries in (after_date, up_to_date], ascending by date.

        No lower bound when *after_date* is None.
        """
        return self.ledger.query(tenant, up_to_date, after=after_date)

    def delete_snapshot(self, tenant: str, key: str):
        self.snapshots.delete(tenant, key)
        logger.info("Deleted snapshot %s for tenant %s", key, tenant)
