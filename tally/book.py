"""User-facing Book class that ties fiscal period workflow to snapshots."""

import logging
from dataclasses import dataclass
from datetime import date

from .base import TallyError
from .engine import SnapshotService
from .period import FiscalPeriod, PeriodStatus
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
from .snapshot import BalanceSnapshot
from .store import PeriodRegistry

logger = logging.getLogger(__name__)


@dataclass
class Book:
    tenant: str
    service: SnapshotService
    periods: PeriodRegistry

    def close_period(self, period_id: str, closed_by: str) -> BalanceSnapshot:
        period = self.periods.set_status(self.tenant, period_id, PeriodStatus.Closed, closed_by)
        logger.info("Closed fiscal period %s for tenant %s", period.key, self.tenant)
        return self.service.generate_snapshot(self.tenant, period, closed_by)

    def reopen_period(self, period_id: str, reopened_by: str) -> FiscalPeriod:
        period = self.periods.get(self.tenant, period_id)
        if period.status == PeriodStatus.Locked:
            raise TallyError(f"Locked fiscal period {period.key} cannot be reopened.")
        period = self.periods.set_status(self.tenant, period_id, PeriodStatus.Open, reopened_by)
        logger.info(
            "Reopened fiscal period %s for tenant %s by %s", period.key, self.tenant, reopened_by
        )
        self.service.delete_snapshot(self.tenant, period.key)
        return period

    def lock_period(self, period_id: str, locked_by: str) -> FiscalPeriod:
        period = self.periods.get(self.tenant, period_id)
        match period.status:
            case PeriodStatus.Locked:
                return period
            case PeriodStatus.Open:
                raise TallyError(
                    f"Fiscal period {period.key} must be closed before it can be locked."
                )
        return self.periods.set_status(self.tenant, period_id, PeriodStatus.Locked, locked_by)

    def snapshot(self, key: str) -> BalanceSnapshot | None:
        return self.service.get_snapshot(self.tenant, key)

    def balances(self, as_of: date) -> ReportDict:
        return balances_as_of(self.service, self.tenant, as_of)

    def trial_balance(self, as_of: date, period_start: date) -> TrialBalance:
        return trial_balance(self.service, self.tenant, as_of, period_start)

    def income_statement(self, period_start: date, period_end: date) -> IncomeStatement:
        return income_statement(self.service, self.tenant, period_start, period_end)

    def balance_sheet(
        self, as_of: date, fiscal_year_start: date | None = None
    ) -> BalanceSheet:
        return balance_sheet(self.service, self.tenant, as_of, fiscal_year_start)
