"""
TransactionService -- balanced ledger transactions and posting.

Responsibility:
    Records ledger transactions (draft), posts them into open fiscal periods
    and unposts them again.  Only posted transactions count towards
    balances (see erp_engines.balances).

Architecture position:
    Kernel > Services -- imperative shell.  Uses PeriodService for the
    posting-date check.

Invariants enforced:
    - Debits equal credits within BALANCE_TOLERANCE.
    - Every entry references an existing, non-archived account.
    - A transaction is posted only into an OPEN fiscal period.
    - Posted transactions cannot be edited or deleted.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - ValueError: transaction has no entries.
    - UnbalancedTransactionError, AccountNotFoundError, AccountArchivedError.
    - DuplicateCodeError: transaction number already used.
    - PeriodNotFoundError / ClosedPeriodError on post.
    - TransactionAlreadyPostedError / TransactionNotPostedError.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from erp_kernel.domain.clock import Clock, SystemClock
from erp_kernel.domain.dtos import EntryType, LedgerEntryInfo, TransactionInfo
from erp_kernel.exceptions import (
    AccountArchivedError,
    AccountNotFoundError,
    DuplicateCodeError,
    TransactionAlreadyPostedError,
    TransactionNotFoundError,
    TransactionNotPostedError,
    UnbalancedTransactionError,
)
from erp_kernel.logging_config import get_logger
from erp_kernel.models.account import Account
from erp_kernel.models.transaction import LedgerEntry, Transaction
from erp_kernel.services.base import BaseService
from erp_kernel.services.period_service import PeriodService

logger = get_logger("services.transaction")

BALANCE_TOLERANCE = Decimal("0.01")


def validate_entries(entries: list[LedgerEntryInfo] | tuple[LedgerEntryInfo, ...]) -> None:
    """
    Check that entries exist and balance.

    Raises:
        ValueError: If there are no entries.
        UnbalancedTransactionError: If |debits - credits| >= BALANCE_TOLERANCE.
    """
    if not entries:
        raise ValueError("Transaction must have at least one entry")

    debits = sum(
        (e.amount for e in entries if e.entry_type == EntryType.DEBIT), Decimal("0")
    )
    credits = sum(
        (e.amount for e in entries if e.entry_type == EntryType.CREDIT), Decimal("0")
    )
    if abs(debits - credits) >= BALANCE_TOLERANCE:
        raise UnbalancedTransactionError(str(debits), str(credits))


class TransactionService(BaseService[Transaction]):
    """Service for recording and posting ledger transactions."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        period_service: PeriodService | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._periods = period_service or PeriodService(session, self._clock)

    def _get_by_number(self, number: str) -> Transaction:
        tx = self.session.execute(
            select(Transaction).where(Transaction.number == number)
        ).scalar_one_or_none()
        if tx is None:
            raise TransactionNotFoundError(number)
        return tx

    def _resolve_accounts(self, entries: tuple[LedgerEntryInfo, ...]) -> dict[str, Account]:
        codes = {e.account_code for e in entries}
        accounts = {
            a.code: a
            for a in self.session.execute(
                select(Account).where(Account.code.in_(codes))
            ).scalars()
        }
        for code in sorted(codes):
            account = accounts.get(code)
            if account is None:
                raise AccountNotFoundError(code)
            if account.is_archived:
                raise AccountArchivedError(code)
        return accounts

    def create_transaction(
        self,
        number: str,
        transaction_date: date,
        entries: list[LedgerEntryInfo] | tuple[LedgerEntryInfo, ...],
        actor_id: UUID,
        description: str = "",
        document_number: str | None = None,
    ) -> TransactionInfo:
        """
        Record a draft transaction.

        Entry sequences are assigned from their position in ``entries``.

        Raises:
            ValueError, UnbalancedTransactionError: See validate_entries().
            AccountNotFoundError / AccountArchivedError: Bad account reference.
            DuplicateCodeError: If the number is taken.
        """
        entries = tuple(entries)
        validate_entries(entries)
        accounts = self._resolve_accounts(entries)

        exists = self.session.execute(
            select(Transaction.id).where(Transaction.number == number)
        ).first()
        if exists is not None:
            raise DuplicateCodeError("Transaction", number)

        tx = Transaction(
            number=number,
            transaction_date=transaction_date,
            description=description or None,
            document_number=document_number,
            is_posted=False,
            created_by_id=actor_id,
        )
        for seq, entry in enumerate(entries, start=1):
            tx.entries.append(
                LedgerEntry(
                    account=accounts[entry.account_code],
                    sequence=seq,
                    entry_type=EntryType(entry.entry_type).value,
                    amount=entry.amount,
                    description=entry.description or None,
                    created_by_id=actor_id,
                )
            )
        self.session.add(tx)
        self.session.flush()

        logger.info(
            "transaction_created",
            extra={
                "transaction_number": number,
                "transaction_date": str(transaction_date),
                "entry_count": len(entries),
                "actor_id": str(actor_id),
            },
        )
        return TransactionInfo.from_model(tx)

    def get_transaction(self, number: str) -> TransactionInfo:
        return TransactionInfo.from_model(self._get_by_number(number))

    def list_transactions(
        self,
        start: date | None = None,
        end: date | None = None,
        posted_only: bool = False,
    ) -> list[TransactionInfo]:
        """Transactions ordered by date then number, optionally bounded."""
        stmt = select(Transaction)
        if start is not None:
            stmt = stmt.where(Transaction.transaction_date >= start)
        if end is not None:
            stmt = stmt.where(Transaction.transaction_date <= end)
        if posted_only:
            stmt = stmt.where(Transaction.is_posted == True)  # noqa: E712
        stmt = stmt.order_by(Transaction.transaction_date, Transaction.number)
        return [
            TransactionInfo.from_model(t)
            for t in self.session.execute(stmt).scalars().all()
        ]

    def post_transaction(self, number: str, actor_id: UUID) -> TransactionInfo:
        """
        Post a draft transaction.

        Raises:
            TransactionAlreadyPostedError: If already posted.
            PeriodNotFoundError / ClosedPeriodError: Date not in an open period.
        """
        tx = self._get_by_number(number)
        if tx.is_posted:
            raise TransactionAlreadyPostedError(number)

        period = self._periods.validate_posting_date(tx.transaction_date)

        tx.is_posted = True
        tx.posted_at = self._clock.now()
        tx.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "transaction_posted",
            extra={
                "transaction_number": number,
                "period_code": period.code,
                "actor_id": str(actor_id),
            },
        )
        return TransactionInfo.from_model(tx)

    def unpost_transaction(self, number: str, actor_id: UUID) -> TransactionInfo:
        """
        Return a posted transaction to draft.  Its period must still be open.

        Raises:
            TransactionNotPostedError: If the transaction is a draft.
            ClosedPeriodError: If its period has been closed since.
        """
        tx = self._get_by_number(number)
        if not tx.is_posted:
            raise TransactionNotPostedError(number)

        self._periods.validate_posting_date(tx.transaction_date)

        tx.is_posted = False
        tx.posted_at = None
        tx.updated_by_id = actor_id
        self.session.flush()

        logger.warning(
            "transaction_unposted",
            extra={"transaction_number": number, "actor_id": str(actor_id)},
        )
        return TransactionInfo.from_model(tx)

    def delete_transaction(self, number: str) -> None:
        """Delete a draft transaction."""
        tx = self._get_by_number(number)
        if tx.is_posted:
            raise TransactionAlreadyPostedError(number)
        self.session.delete(tx)
        self.session.flush()
        logger.info("transaction_deleted", extra={"transaction_number": number})
