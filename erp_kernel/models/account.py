"""
Module: erp_kernel.models.account
Responsibility: ORM persistence for the chart of accounts.
Architecture position: Kernel > Models.  May import from db/base.py and the
    enums in domain/dtos.py.

Invariants enforced:
    - Account.code is unique (uq_account_code).
    - normal_balance is derived from account_type on construction and is
      never set independently.

Failure modes:
    - IntegrityError on duplicate code (AccountService checks first and
      raises DuplicateCodeError).
"""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_kernel.db.base import TrackedBase
from erp_kernel.domain.dtos import AccountType, NormalBalance, normal_balance_for

if TYPE_CHECKING:
    from erp_kernel.models.transaction import LedgerEntry


class Account(TrackedBase):
    """
    Chart of Accounts entry.

    Contract:
        The first digit of the code classifies the account (1 asset,
        2 liability, 3 equity, 4 revenue, 6 expense); the service layer
        validates this before insert.  Archived accounts keep their history
        but accept no new ledger entries.
    """

    __tablename__ = "accounts"
    __table_args__ = (
        UniqueConstraint("code", name="uq_account_code"),
        Index("idx_account_type", "account_type"),
        Index("idx_account_parent", "parent_code"),
    )

    # Official account code (e.g. "1100", "2200")
    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Determines statement placement and normal balance
    account_type: Mapped[AccountType] = mapped_column(
        String(20),
        nullable=False,
    )

    normal_balance: Mapped[NormalBalance] = mapped_column(
        String(10),
        nullable=False,
    )

    # Parent account code for a hierarchical chart
    parent_code: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    is_archived: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    entries: Mapped[list["LedgerEntry"]] = relationship(
        back_populates="account",
        lazy="select",
    )

    def __init__(self, **kwargs):
        if "account_type" in kwargs and "normal_balance" not in kwargs:
            kwargs["normal_balance"] = normal_balance_for(
                AccountType(kwargs["account_type"])
            ).value
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"

    @property
    def is_debit_normal(self) -> bool:
        return NormalBalance(self.normal_balance) == NormalBalance.DEBIT
