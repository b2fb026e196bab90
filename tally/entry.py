from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable

from .base import T5, Numeric, TallyError, subtract_money, to_money


@dataclass(frozen=True)
class LedgerEntry:
    """One debit/credit line posted against an account on a given date.

    Account code and name are copied at write time, so the entry stays
    self-describing after the account is renamed.
    """

    entry_date: date
    account_id: str
    account_code: str
    account_name: str
    debit: Decimal = Decimal(0)
    credit: Decimal = Decimal(0)
    description: str = ""
    entry_id: str | None = None
    journal_entry_id: str | None = None

    def __post_init__(self):
        for attr in ("debit", "credit"):
            amount = to_money(getattr(self, attr))
            TallyError.must_not_be_negative(amount, attr.capitalize())
            object.__setattr__(self, attr, amount)

    @property
    def net(self) -> Decimal:
        return subtract_money(self.debit, self.credit)

    @classmethod
    def debit_of(cls, entry_date: date, account: "Account", amount: Numeric, description=""):
        return cls(entry_date, account.id, account.code, account.name, debit=amount, description=description)  # type: ignore

    @classmethod
    def credit_of(cls, entry_date: date, account: "Account", amount: Numeric, description=""):
        return cls(entry_date, account.id, account.code, account.name, credit=amount, description=description)  # type: ignore


@dataclass
class Account:
    id: str
    code: str
    name: str
    type: T5
    is_active: bool = True


@dataclass
class AccountIndex:
    """Chart of accounts looked up by id first and by code second."""

    by_id: dict[str, Account] = field(default_factory=dict)
    by_code: dict[str, Account] = field(default_factory=dict)

    @classmethod
    def from_accounts(cls, accounts: Iterable[Account]):
        self = cls()
        for account in accounts:
            if account.id:
                self.by_id[account.id] = account
            self.by_code[account.code] = account
        return self

    def find(self, account_id: str, account_code: str) -> Account | None:
        if account_id in self.by_id:
            return self.by_id[account_id]
        return self.by_code.get(account_code)

    def type_of(self, account_id: str, account_code: str) -> T5 | None:
        """Return account type or None if the account is not in the chart."""
        account = self.find(account_id, account_code)
        return account.type if account else None
