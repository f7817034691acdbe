"""Tests for AccountBalanceCalculator."""

from datetime import date
from decimal import Decimal

from hypothesis import given
from hypothesis import strategies as st

from erp_engines.balances import AccountBalanceCalculator
from erp_kernel.domain.dtos import (
    AccountInfo,
    AccountType,
    EntryType,
    LedgerEntryInfo,
    TransactionInfo,
)


def _tx(number, day, debit_code, credit_code, amount, posted=True):
    amount = Decimal(amount)
    return TransactionInfo(
        number=number,
        transaction_date=day,
        is_posted=posted,
        entries=(
            LedgerEntryInfo(account_code=debit_code, entry_type=EntryType.DEBIT, amount=amount),
            LedgerEntryInfo(account_code=credit_code, entry_type=EntryType.CREDIT, amount=amount),
        ),
    )


ACCOUNTS = [
    AccountInfo(code="1000", name="Cash", account_type=AccountType.ASSET),
    AccountInfo(code="3000", name="Equity", account_type=AccountType.EQUITY),
    AccountInfo(code="4000", name="Sales", account_type=AccountType.REVENUE),
    AccountInfo(code="6100", name="Rent", account_type=AccountType.EXPENSE),
]

LEDGER = [
    _tx("T1", date(2024, 1, 2), "1000", "3000", "10000"),
    _tx("T2", date(2024, 1, 15), "1000", "4000", "2500"),
    _tx("T3", date(2024, 2, 1), "6100", "1000", "1200"),
    _tx("T4", date(2024, 2, 10), "1000", "4000", "999", posted=False),
]


class TestBalances:
    def test_balance_as_of(self):
        calc = AccountBalanceCalculator(LEDGER)
        assert calc.balance("1000", date(2024, 1, 31)) == Decimal("12500")
        assert calc.balance("1000", date(2024, 2, 28)) == Decimal("11300")

    def test_credit_normal_accounts_are_negative(self):
        calc = AccountBalanceCalculator(LEDGER)
        assert calc.balance("4000", date(2024, 12, 31)) == Decimal("-2500")

    def test_drafts_are_ignored(self):
        calc = AccountBalanceCalculator(LEDGER)
        assert calc.balance("4000", date(2024, 2, 28)) == Decimal("-2500")

    def test_unknown_account_is_zero(self):
        calc = AccountBalanceCalculator(LEDGER)
        assert calc.balance("9999", date(2024, 12, 31)) == Decimal("0")
        assert calc.has_transactions("9999") is False

    def test_turnover(self):
        calc = AccountBalanceCalculator(LEDGER)
        turnover = calc.turnover("1000", date(2024, 1, 1), date(2024, 2, 29))
        assert turnover.debit == Decimal("12500")
        assert turnover.credit == Decimal("1200")
        assert turnover.net == Decimal("11300")

    def test_turnover_range_is_inclusive(self):
        calc = AccountBalanceCalculator(LEDGER)
        turnover = calc.turnover("1000", date(2024, 1, 15), date(2024, 1, 15))
        assert turnover.debit == Decimal("2500")

    def test_accounts_with_transactions(self):
        calc = AccountBalanceCalculator(LEDGER)
        assert calc.accounts_with_transactions() == ["1000", "3000", "4000", "6100"]

    def test_all_balances_sum_to_zero(self):
        balances = AccountBalanceCalculator(LEDGER).all_balances(date(2024, 12, 31))
        assert sum(balances.values()) == Decimal("0")


class TestAccountingEquation:
    def test_balanced_ledger(self):
        check = AccountBalanceCalculator(LEDGER).verify_accounting_equation(
            ACCOUNTS, date(2024, 12, 31)
        )
        assert check.is_balanced
        assert check.debit_side == Decimal("11300") + Decimal("1200")

    def test_unknown_account_type_leaves_equation_unbalanced(self, captured_logs):
        ledger = [_tx("X1", date(2024, 1, 1), "1000", "7777", "50")]
        check = AccountBalanceCalculator(ledger).verify_accounting_equation(
            ACCOUNTS, date(2024, 12, 31)
        )
        assert not check.is_balanced
        assert check.difference == Decimal("50")
        assert any(r["message"] == "accounting_equation_unbalanced" for r in captured_logs())


class TestBalanceProperties:
    @given(
        amounts=st.lists(
            st.decimals(min_value=Decimal("0.01"), max_value=Decimal("100000"), places=2),
            min_size=1,
            max_size=20,
        )
    )
    def test_balanced_transactions_keep_ledger_at_zero(self, amounts):
        ledger = [
            _tx(f"P{i}", date(2024, 3, 1), "1000", "4000", amount)
            for i, amount in enumerate(amounts)
        ]
        calc = AccountBalanceCalculator(ledger)
        balances = calc.all_balances(date(2024, 3, 31))
        assert sum(balances.values()) == Decimal("0")
        assert calc.balance("1000", date(2024, 3, 31)) == sum(amounts, Decimal("0"))
