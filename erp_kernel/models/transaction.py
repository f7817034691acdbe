"""
Module: erp_kernel.models.transaction
Responsibility: ORM persistence for ledger transactions and their entries.
Architecture position: Kernel > Models.  May import from db/base.py and the
    enums in domain/dtos.py.

Invariants enforced:
    - Transaction.number is unique (uq_transaction_number).
    - Entry amounts are positive; entry_type carries the sign.
    - Debits equal credits (checked by TransactionService before insert).
    - Posted transactions must fall in an open fiscal period (checked by
      TransactionService.post_transaction).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_kernel.db.base import TrackedBase, UUIDString
from erp_kernel.domain.dtos import EntryType
from erp_kernel.models.account import Account


class Transaction(TrackedBase):
    """
    A dated, balanced set of ledger entries.

    Contract:
        Draft transactions (is_posted=False) do not affect balances.  Posting
        stamps posted_at from the injected clock.
    """

    __tablename__ = "transactions"
    __table_args__ = (
        UniqueConstraint("number", name="uq_transaction_number"),
        Index("idx_transaction_date", "transaction_date"),
        Index("idx_transaction_posted", "is_posted"),
    )

    # Transaction number (e.g. "TX-2024-0001")
    number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    transaction_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    # Source document, if the transaction was generated from one
    document_number: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    is_posted: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    posted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    entries: Mapped[list["LedgerEntry"]] = relationship(
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="LedgerEntry.sequence",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        state = "posted" if self.is_posted else "draft"
        return f"<Transaction {self.number} {self.transaction_date} {state}>"


class LedgerEntry(TrackedBase):
    """Individual debit or credit against one account."""

    __tablename__ = "ledger_entries"
    __table_args__ = (
        Index("idx_ledger_entry_transaction", "transaction_id"),
        Index("idx_ledger_entry_account", "account_id"),
    )

    transaction_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("transactions.id"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    # Position within the transaction
    sequence: Mapped[int] = mapped_column(
        nullable=False,
    )

    entry_type: Mapped[EntryType] = mapped_column(
        String(10),
        nullable=False,
    )

    # Always positive; entry_type determines debit/credit
    amount: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    transaction: Mapped[Transaction] = relationship(back_populates="entries")
    account: Mapped[Account] = relationship(back_populates="entries", lazy="joined")

    def __repr__(self) -> str:
        return f"<LedgerEntry {EntryType(self.entry_type).value} {self.amount}>"
