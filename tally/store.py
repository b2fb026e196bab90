"""Tenant-scoped collaborators of the snapshot engine.

Every method takes an opaque tenant id as its first argument and must never
read or write data of another tenant. The in-memory classes back tests and
embedded use; `FileSnapshotStore` keeps snapshots as JSON files.
"""

import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date
from pathlib import Path
from typing import Iterable

from .base import TallyError
from .config import EngineConfig
from .entry import Account, LedgerEntry
from .period import FiscalPeriod, PeriodStatus
from .snapshot import BalanceSnapshot

logger = logging.getLogger(__name__)


class LedgerStore(ABC):
    @abstractmethod
    def query(
        self, tenant: str, up_to: date, after: date | None = None, start: date | None = None
    ) -> list[LedgerEntry]:
        """Entries dated up to *up_to* inclusive, ascending by date.

        *after* is an exclusive lower bound, *start* an inclusive one.
        """


class AccountDirectory(ABC):
    @abstractmethod
    def all_accounts(self, tenant: str) -> list[Account]:
        pass


class SnapshotStore(ABC):
    @abstractmethod
    def get(self, tenant: str, key: str) -> BalanceSnapshot | None:
        pass

    @abstractmethod
    def put(self, tenant: str, key: str, snapshot: BalanceSnapshot):
        """Insert or overwrite the snapshot at *key*."""

    @abstractmethod
    def delete(self, tenant: str, key: str):
        pass


class PeriodRegistry(ABC):
    @abstractmethod
    def get(self, tenant: str, period_id: str) -> FiscalPeriod:
        pass

    @abstractmethod
    def set_status(
        self, tenant: str, period_id: str, status: PeriodStatus, by: str | None
    ) -> FiscalPeriod:
        pass


def check_tenant(tenant: str):
    if not tenant or "/" in tenant or "\\" in tenant or tenant in (".", ".."):
        raise TallyError(f"Invalid tenant id: {tenant!r}.")


KEY_PATTERN = re.compile(r"\d{4}-(0[1-9]|1[0-2])")


def check_key(key: str):
    if not isinstance(key, str) or not KEY_PATTERN.fullmatch(key):
        raise TallyError(f"Invalid snapshot key: {key!r}.")


def in_range(entry: LedgerEntry, up_to: date, after: date | None, start: date | None):
    if entry.entry_date > up_to:
        return False
    if after is not None and entry.entry_date <= after:
        return False
    if start is not None and entry.entry_date < start:
        return False
    return True


class MemoryLedger(LedgerStore):
    def __init__(self):
        self.entries: dict[str, list[LedgerEntry]] = defaultdict(list)

    def post(self, tenant: str, entries: Iterable[LedgerEntry]):
        check_tenant(tenant)
        self.entries[tenant].extend(entries)

    def query(self, tenant, up_to, after=None, start=None):
        check_tenant(tenant)
        found = [e for e in self.entries.get(tenant, []) if in_range(e, up_to, after, start)]
        return sorted(found, key=lambda e: e.entry_date)


class MemoryAccounts(AccountDirectory):
    def __init__(self):
        self.accounts: dict[str, list[Account]] = defaultdict(list)

    def add(self, tenant: str, *accounts: Account):
        check_tenant(tenant)
        self.accounts[tenant].extend(accounts)

    def all_accounts(self, tenant):
        check_tenant(tenant)
        return list(self.accounts.get(tenant, []))


class MemorySnapshotStore(SnapshotStore):
    def __init__(self):
        self.snapshots: dict[tuple[str, str], BalanceSnapshot] = {}

    def get(self, tenant, key):
        check_tenant(tenant)
        check_key(key)
        return self.snapshots.get((tenant, key))

    def put(self, tenant, key, snapshot):
        check_tenant(tenant)
        check_key(key)
        self.snapshots[(tenant, key)] = snapshot

    def delete(self, tenant, key):
        check_tenant(tenant)
        check_key(key)
        self.snapshots.pop((tenant, key), None)

    def keys(self, tenant: str) -> list[str]:
        return sorted(key for t, key in self.snapshots if t == tenant)


class FileSnapshotStore(SnapshotStore):
    """Snapshots saved as `<root>/<tenant>/snapshots/<key>.json`.

    A snapshot is written to a temporary file next to its target and moved
    into place, so readers see either the old or the new file.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def path(self, tenant: str, key: str) -> Path:
        check_tenant(tenant)
        check_key(key)
        return self.root / tenant / "snapshots" / f"{key}.json"

    def get(self, tenant, key):
        path = self.path(tenant, key)
        if not path.exists():
            return None
        return BalanceSnapshot.load(path)

    def put(self, tenant, key, snapshot):
        path = self.path(tenant, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = tempfile.NamedTemporaryFile(
            "w", dir=path.parent, prefix=f".{key}.", suffix=".tmp", delete=False
        )
        try:
            with tmp:
                tmp.write(snapshot.model_dump_json(indent=2))
            os.replace(tmp.name, path)
        except OSError:
            Path(tmp.name).unlink(missing_ok=True)
            raise
        logger.debug("Saved snapshot %s for tenant %s to %s", key, tenant, path)

    def delete(self, tenant, key):
        self.path(tenant, key).unlink(missing_ok=True)


class MemoryPeriods(PeriodRegistry):
    def __init__(self):
        self.periods: dict[tuple[str, str], FiscalPeriod] = {}

    def add(self, tenant: str, *periods: FiscalPeriod):
        check_tenant(tenant)
        for period in periods:
            self.periods[(tenant, period.id)] = period

    def get(self, tenant, period_id):
        check_tenant(tenant)
        TallyError.must_exist(
            [p for t, p in self.periods if t == tenant], period_id, "Fiscal period"
        )
        return self.periods[(tenant, period_id)]

    def set_status(self, tenant, period_id, status, by):
        period = self.get(tenant, period_id)
        match status:
            case PeriodStatus.Open:
                closed_by = None
            case PeriodStatus.Closed:
                closed_by = by
            case PeriodStatus.Locked:
                closed_by = period.closed_by
        period = period.model_copy(update=dict(status=status, closed_by=closed_by))
        self.periods[(tenant, period_id)] = period
        return period


def make_snapshot_store(config: EngineConfig) -> SnapshotStore:
    """File store under `config.snapshot_dir` if set, in-memory store otherwise."""
    if config.snapshot_dir is None:
        return MemorySnapshotStore()
    return FileSnapshotStore(config.snapshot_dir)
