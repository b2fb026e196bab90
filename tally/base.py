from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from pathlib import Path
from typing import Iterable

Numeric = int | float | str | Decimal

CENT = Decimal("0.01")


def to_money(amount: Numeric) -> Decimal:
    """Convert *amount* to Decimal rounded to cents, half up."""
    if isinstance(amount, float):
        amount = str(amount)
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def add_money(*amounts: Numeric) -> Decimal:
    return to_money(sum((to_money(a) for a in amounts), Decimal(0)))


def subtract_money(base: Numeric, *amounts: Numeric) -> Decimal:
    return to_money(to_money(base) - add_money(*amounts))


def sum_money(amounts: Iterable[Numeric]) -> Decimal:
    return add_money(*amounts)


class TallyError(Exception):
    pass

    @staticmethod
    def must_exist(collection: Iterable[str], name: str, what: str = "Item"):
        if name not in collection:
            raise TallyError(f"{what} {name} not found.")

    @staticmethod
    def must_not_be_negative(amount: Decimal, what: str):
        if amount < 0:
            raise TallyError(f"{what} must not be negative, got {amount}.")


class T5(Enum):
    Asset = "asset"
    Liability = "liability"
    Equity = "equity"
    Revenue = "revenue"
    Expense = "expense"

    def __repr__(self):
        return self.value.capitalize()


class SaveLoadMixin:
    """A mix-in class for loading and saving pydantic models to files."""

    @classmethod
    def load(cls, filename: str | Path):
        return cls.model_validate_json(Path(filename).read_text())  # type: ignore

    def save(self, filename: str | Path, allow_overwrite: bool = False):
        if not allow_overwrite and Path(filename).exists():
            raise FileExistsError(f"File already exists: {filename}")
        content = self.model_dump_json(indent=2, warnings=False)  # type: ignore
        Path(filename).write_text(content)  # type: ignore
