"""
Account Balance Calculator - Balances and turnover from ledger transactions.

Pure functions over TransactionInfo snapshots.  Only posted transactions
count; drafts never move a balance.

Balances are signed debit-minus-credit.  A debit-normal account (asset,
expense) therefore shows a positive balance, and a credit-normal account a
negative one.

Usage:
    from erp_engines.balances import AccountBalanceCalculator

    calc = AccountBalanceCalculator(transactions)
    cash = calc.balance("1000", as_of=date(2024, 12, 31))
    check = calc.verify_accounting_equation(accounts, as_of=date(2024, 12, 31))
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from erp_kernel.domain.dtos import AccountInfo, AccountType, EntryType, TransactionInfo
from erp_kernel.logging_config import get_logger

logger = get_logger("engines.balances")

EQUATION_TOLERANCE = Decimal("0.01")


@dataclass(frozen=True)
class Turnover:
    """Debit and credit movement on an account over a date range."""

    account_code: str
    debit: Decimal
    credit: Decimal

    @property
    def net(self) -> Decimal:
        return self.debit - self.credit


@dataclass(frozen=True)
class AccountingEquationCheck:
    """Assets + expenses must offset liabilities + equity + revenue."""

    as_of: date
    debit_side: Decimal
    credit_side: Decimal

    @property
    def difference(self) -> Decimal:
        return self.debit_side + self.credit_side

    @property
    def is_balanced(self) -> bool:
        return abs(self.difference) < EQUATION_TOLERANCE


class AccountBalanceCalculator:
    """Computes balances from a snapshot of ledger transactions."""

    def __init__(self, transactions: Iterable[TransactionInfo]):
        self._transactions = tuple(t for t in transactions if t.is_posted)

    def balance(self, account_code: str, as_of: date) -> Decimal:
        """Debits minus credits on the account up to and including as_of."""
        total = Decimal("0")
        for tx in self._transactions:
            if tx.transaction_date > as_of:
                continue
            for entry in tx.entries:
                if entry.account_code == account_code:
                    total += entry.signed_amount
        return total

    def turnover(self, account_code: str, start: date, end: date) -> Turnover:
        """Debit and credit totals between start and end inclusive."""
        debit = Decimal("0")
        credit = Decimal("0")
        for tx in self._transactions:
            if not start <= tx.transaction_date <= end:
                continue
            for entry in tx.entries:
                if entry.account_code != account_code:
                    continue
                if entry.entry_type == EntryType.DEBIT:
                    debit += entry.amount
                else:
                    credit += entry.amount
        return Turnover(account_code=account_code, debit=debit, credit=credit)

    def has_transactions(self, account_code: str) -> bool:
        return any(
            entry.account_code == account_code
            for tx in self._transactions
            for entry in tx.entries
        )

    def accounts_with_transactions(self) -> list[str]:
        """Account codes with at least one posted entry, sorted."""
        return sorted(
            {entry.account_code for tx in self._transactions for entry in tx.entries}
        )

    def all_balances(self, as_of: date) -> dict[str, Decimal]:
        balances: dict[str, Decimal] = {}
        for tx in self._transactions:
            if tx.transaction_date > as_of:
                continue
            for entry in tx.entries:
                balances[entry.account_code] = (
                    balances.get(entry.account_code, Decimal("0")) + entry.signed_amount
                )
        return dict(sorted(balances.items()))

    def verify_accounting_equation(
        self,
        accounts: Iterable[AccountInfo],
        as_of: date,
    ) -> AccountingEquationCheck:
        """
        Check assets + expenses == -(liabilities + equity + revenue).

        Settlement accounts and accounts without a known type are ignored.
        """
        balances = self.all_balances(as_of)
        debit_side = Decimal("0")
        credit_side = Decimal("0")
        for account in accounts:
            amount = balances.get(account.code, Decimal("0"))
            if account.account_type in (AccountType.ASSET, AccountType.EXPENSE):
                debit_side += amount
            elif account.account_type in (
                AccountType.LIABILITY,
                AccountType.EQUITY,
                AccountType.REVENUE,
            ):
                credit_side += amount

        check = AccountingEquationCheck(
            as_of=as_of, debit_side=debit_side, credit_side=credit_side
        )
        if not check.is_balanced:
            logger.warning("accounting_equation_unbalanced", extra={
                "as_of": as_of,
                "debit_side": str(debit_side),
                "credit_side": str(credit_side),
                "difference": str(check.difference),
            })
        return check
