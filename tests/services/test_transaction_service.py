"""
Tests for TransactionService.

Covers:
- Balance and account checks when recording a transaction
- Posting into open / closed / missing periods
- Unposting and deleting
- Date-bounded listing
"""

from datetime import date
from decimal import Decimal

import pytest

from erp_kernel.domain.dtos import EntryType, LedgerEntryInfo
from erp_kernel.exceptions import (
    AccountArchivedError,
    AccountNotFoundError,
    ClosedPeriodError,
    DuplicateCodeError,
    PeriodNotFoundError,
    TransactionAlreadyPostedError,
    TransactionNotFoundError,
    TransactionNotPostedError,
    UnbalancedTransactionError,
)
from erp_kernel.services.transaction_service import validate_entries


def _entries(debit_code, credit_code, amount):
    amount = Decimal(amount)
    return [
        LedgerEntryInfo(account_code=debit_code, entry_type=EntryType.DEBIT, amount=amount),
        LedgerEntryInfo(account_code=credit_code, entry_type=EntryType.CREDIT, amount=amount),
    ]


@pytest.fixture
def sale(transaction_service, standard_accounts, open_year, test_actor_id):
    """A draft cash sale with VAT dated 2024-03-10."""
    entries = [
        LedgerEntryInfo("1000", EntryType.DEBIT, Decimal("120.00")),
        LedgerEntryInfo("4000", EntryType.CREDIT, Decimal("100.00")),
        LedgerEntryInfo("2100", EntryType.CREDIT, Decimal("20.00")),
    ]
    return transaction_service.create_transaction(
        "TX-0001",
        date(2024, 3, 10),
        entries,
        test_actor_id,
        description="Cash sale",
        document_number="INV-001",
    )


class TestValidateEntries:
    def test_empty(self):
        with pytest.raises(ValueError):
            validate_entries([])

    def test_unbalanced(self):
        entries = [
            LedgerEntryInfo("1000", EntryType.DEBIT, Decimal("100.00")),
            LedgerEntryInfo("4000", EntryType.CREDIT, Decimal("99.00")),
        ]
        with pytest.raises(UnbalancedTransactionError) as exc_info:
            validate_entries(entries)
        assert exc_info.value.debits == "100.00"
        assert exc_info.value.credits == "99.00"

    def test_within_tolerance(self):
        entries = [
            LedgerEntryInfo("1000", EntryType.DEBIT, Decimal("100.000")),
            LedgerEntryInfo("4000", EntryType.CREDIT, Decimal("100.005")),
        ]
        validate_entries(entries)

    def test_tolerance_boundary_is_unbalanced(self):
        entries = [
            LedgerEntryInfo("1000", EntryType.DEBIT, Decimal("100.00")),
            LedgerEntryInfo("4000", EntryType.CREDIT, Decimal("100.01")),
        ]
        with pytest.raises(UnbalancedTransactionError):
            validate_entries(entries)

    def test_non_positive_amount_rejected(self):
        with pytest.raises(ValueError):
            LedgerEntryInfo("1000", EntryType.DEBIT, Decimal("0"))


class TestCreateTransaction:
    def test_create_draft(self, sale):
        assert sale.is_posted is False
        assert sale.posted_at is None
        assert [e.sequence for e in sale.entries] == [1, 2, 3]
        assert sale.total_debits == sale.total_credits == Decimal("120.00")
        assert sale.document_number == "INV-001"

    def test_unknown_account(self, transaction_service, standard_accounts, test_actor_id):
        with pytest.raises(AccountNotFoundError):
            transaction_service.create_transaction(
                "TX-X", date(2024, 3, 1), _entries("1000", "4999", "10"), test_actor_id
            )

    def test_archived_account(
        self, transaction_service, account_service, standard_accounts, test_actor_id
    ):
        account_service.archive_account("6100", test_actor_id)
        with pytest.raises(AccountArchivedError):
            transaction_service.create_transaction(
                "TX-X", date(2024, 3, 1), _entries("6100", "1000", "10"), test_actor_id
            )

    def test_duplicate_number(self, transaction_service, sale, test_actor_id):
        with pytest.raises(DuplicateCodeError):
            transaction_service.create_transaction(
                "TX-0001", date(2024, 3, 11), _entries("1000", "4000", "5"), test_actor_id
            )

    def test_unbalanced_not_stored(self, transaction_service, standard_accounts, test_actor_id):
        entries = [
            LedgerEntryInfo("1000", EntryType.DEBIT, Decimal("10")),
            LedgerEntryInfo("4000", EntryType.CREDIT, Decimal("9")),
        ]
        with pytest.raises(UnbalancedTransactionError):
            transaction_service.create_transaction("TX-U", date(2024, 3, 1), entries, test_actor_id)
        with pytest.raises(TransactionNotFoundError):
            transaction_service.get_transaction("TX-U")


class TestPosting:
    def test_post(self, transaction_service, sale, test_actor_id, deterministic_clock):
        posted = transaction_service.post_transaction("TX-0001", test_actor_id)
        assert posted.is_posted is True
        assert posted.posted_at == deterministic_clock.now()

    def test_post_twice(self, transaction_service, sale, test_actor_id):
        transaction_service.post_transaction("TX-0001", test_actor_id)
        with pytest.raises(TransactionAlreadyPostedError):
            transaction_service.post_transaction("TX-0001", test_actor_id)

    def test_post_into_closed_period(self, transaction_service, period_service, sale, test_actor_id):
        period_service.close_period("2024-03", test_actor_id)
        with pytest.raises(ClosedPeriodError):
            transaction_service.post_transaction("TX-0001", test_actor_id)
        assert transaction_service.get_transaction("TX-0001").is_posted is False

    def test_post_without_period(self, transaction_service, standard_accounts, test_actor_id):
        transaction_service.create_transaction(
            "TX-OLD", date(2019, 1, 1), _entries("1000", "3000", "1"), test_actor_id
        )
        with pytest.raises(PeriodNotFoundError):
            transaction_service.post_transaction("TX-OLD", test_actor_id)

    def test_posting_logged(self, transaction_service, sale, test_actor_id, captured_logs):
        transaction_service.post_transaction("TX-0001", test_actor_id)
        record = next(r for r in captured_logs() if r["message"] == "transaction_posted")
        assert record["period_code"] == "2024-03"
        assert record["transaction_number"] == "TX-0001"

    def test_unpost(self, transaction_service, sale, test_actor_id):
        transaction_service.post_transaction("TX-0001", test_actor_id)
        draft = transaction_service.unpost_transaction("TX-0001", test_actor_id)
        assert draft.is_posted is False
        assert draft.posted_at is None

    def test_unpost_draft(self, transaction_service, sale, test_actor_id):
        with pytest.raises(TransactionNotPostedError):
            transaction_service.unpost_transaction("TX-0001", test_actor_id)

    def test_unpost_after_period_closed(
        self, transaction_service, period_service, sale, test_actor_id
    ):
        transaction_service.post_transaction("TX-0001", test_actor_id)
        period_service.close_period("2024-03", test_actor_id)
        with pytest.raises(ClosedPeriodError):
            transaction_service.unpost_transaction("TX-0001", test_actor_id)


class TestDeleteAndList:
    def test_delete_draft(self, transaction_service, sale):
        transaction_service.delete_transaction("TX-0001")
        assert transaction_service.list_transactions() == []

    def test_delete_posted(self, transaction_service, sale, test_actor_id):
        transaction_service.post_transaction("TX-0001", test_actor_id)
        with pytest.raises(TransactionAlreadyPostedError):
            transaction_service.delete_transaction("TX-0001")

    def test_list_filters(self, transaction_service, sale, test_actor_id):
        transaction_service.create_transaction(
            "TX-0002", date(2024, 1, 5), _entries("1000", "3000", "500"), test_actor_id
        )
        transaction_service.create_transaction(
            "TX-0003", date(2024, 5, 1), _entries("6100", "1000", "50"), test_actor_id
        )
        transaction_service.post_transaction("TX-0002", test_actor_id)

        assert [t.number for t in transaction_service.list_transactions()] == [
            "TX-0002",
            "TX-0001",
            "TX-0003",
        ]
        bounded = transaction_service.list_transactions(
            start=date(2024, 3, 1), end=date(2024, 3, 31)
        )
        assert [t.number for t in bounded] == ["TX-0001"]
        posted = transaction_service.list_transactions(posted_only=True)
        assert [t.number for t in posted] == ["TX-0002"]
