"""
Module: erp_kernel.models.fiscal_period
Responsibility: ORM persistence for fiscal periods -- controls which date
    ranges accept postings.
Architecture position: Kernel > Models.  May import from db/base.py and the
    enums in domain/dtos.py.

Invariants enforced:
    - No transaction may be posted with a date inside a CLOSED period
      (enforced by PeriodService.validate_posting_date).
    - period code is unique (uq_period_code).

Failure modes:
    - ValueError from close()/reopen() on an invalid transition; the service
      layer checks first and raises the typed PeriodError instead.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Date, DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from erp_kernel.db.base import TrackedBase, UUIDString
from erp_kernel.domain.dtos import PeriodStatus


class FiscalPeriod(TrackedBase):
    """
    Fiscal period for accounting control.

    Contract:
        Dates are inclusive.  Non-overlap is checked by PeriodService at
        creation time, not by this model.
    """

    __tablename__ = "fiscal_periods"
    __table_args__ = (
        UniqueConstraint("code", name="uq_period_code"),
        Index("idx_period_dates", "start_date", "end_date"),
        Index("idx_period_status", "status"),
    )

    # Period identifier (e.g., "2024-01", "FY2024")
    code: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    # Period boundaries (inclusive)
    start_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    end_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    status: Mapped[PeriodStatus] = mapped_column(
        String(20),
        default=PeriodStatus.OPEN.value,
        nullable=False,
    )

    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    closed_by_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<FiscalPeriod {self.code}: {PeriodStatus(self.status).value}>"

    @property
    def is_open(self) -> bool:
        return PeriodStatus(self.status) == PeriodStatus.OPEN

    @property
    def is_closed(self) -> bool:
        return PeriodStatus(self.status) == PeriodStatus.CLOSED

    def contains_date(self, check_date: date) -> bool:
        """Check if a date falls within this period."""
        return self.start_date <= check_date <= self.end_date

    def close(self, actor_id: UUID, closed_at: datetime) -> None:
        """Close the period.

        Requires closed_at from an injected clock -- does NOT call
        datetime.now().

        Raises: ValueError if the period is already closed.
        """
        if self.is_closed:
            raise ValueError(f"Period {self.code} is already closed")
        self.status = PeriodStatus.CLOSED.value
        self.closed_at = closed_at
        self.closed_by_id = actor_id

    def reopen(self) -> None:
        """Reopen a closed period.

        Raises: ValueError if the period is not closed.
        """
        if not self.is_closed:
            raise ValueError(f"Period {self.code} is not closed")
        self.status = PeriodStatus.OPEN.value
        self.closed_at = None
        self.closed_by_id = None
