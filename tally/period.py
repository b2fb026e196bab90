"""Fiscal periods and the period arithmetic shared by snapshot lookups."""

from datetime import date
from enum import Enum
from typing import Iterator

from pydantic import BaseModel, model_validator

from .base import TallyError


class PeriodStatus(Enum):
    Open = "open"
    Closed = "closed"
    Locked = "locked"


class FiscalPeriod(BaseModel):
    """Accounting month with its boundaries and close state."""

    id: str
    year: int
    period: int
    start_date: date
    end_date: date
    status: PeriodStatus = PeriodStatus.Open
    closed_by: str | None = None

    @model_validator(mode="after")
    def check_boundaries(self):
        check_period_number(self.period)
        if self.start_date > self.end_date:
            raise TallyError(
                f"Period {self.key} starts {self.start_date} after it ends {self.end_date}."
            )
        return self

    @property
    def key(self) -> str:
        return snapshot_key(self.year, self.period)

    def is_closed(self) -> bool:
        return self.status in (PeriodStatus.Closed, PeriodStatus.Locked)

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


def check_period_number(period: int):
    if not 1 <= period <= 12:
        raise TallyError(f"Period number must be within 1..12, got {period}.")


def snapshot_key(year: int, period: int) -> str:
    """Deterministic snapshot key like `2026-02`."""
    check_period_number(period)
    return f"{year}-{period:02d}"


def decrement_period(year: int, period: int) -> tuple[int, int]:
    """Return (year, period) immediately before the given one."""
    check_period_number(period)
    if period == 1:
        return year - 1, 12
    return year, period - 1


def walk_back(year: int, period: int, steps: int) -> Iterator[tuple[int, int]]:
    """Yield *steps* periods going backwards, starting with the one before (year, period)."""
    for _ in range(steps):
        year, period = decrement_period(year, period)
        yield year, period
