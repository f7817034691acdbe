"""
PeriodService -- fiscal period lifecycle and posting-date validation.

Responsibility:
    Creates fiscal periods (field validation plus non-overlap), looks them up
    by code, status or date, drives the OPEN <-> CLOSED lifecycle, and
    validates that postings target an open period.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by TransactionService before a transaction is posted.

Invariants enforced:
    - No two periods overlap (inclusive date ranges).
    - No posting into a CLOSED period (``validate_posting_date()``).
    - Returns frozen ``FiscalPeriodInfo`` DTOs, never ORM entities.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - ValidationFailedError: name/description/date-range checks failed.
    - PeriodOverlapError: new range overlaps an existing period.
    - PeriodNotFoundError: no period with the code / covering the date.
    - ClosedPeriodError: posting date falls in a closed period.
    - PeriodAlreadyClosedError / PeriodNotClosedError: invalid transition.

Audit relevance:
    Period creation, close and reopen are logged with period_code and
    actor_id.  Posting-date violations are logged at WARNING level.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from erp_kernel.domain.clock import Clock, SystemClock
from erp_kernel.domain.dtos import FiscalPeriodInfo, PeriodStatus
from erp_kernel.domain.validation import validate_fiscal_period
from erp_kernel.exceptions import (
    ClosedPeriodError,
    DuplicateCodeError,
    PeriodAlreadyClosedError,
    PeriodNotClosedError,
    PeriodNotFoundError,
    PeriodOverlapError,
)
from erp_kernel.logging_config import get_logger
from erp_kernel.models.fiscal_period import FiscalPeriod
from erp_kernel.services.base import BaseService

logger = get_logger("services.period")


class PeriodService(BaseService[FiscalPeriod]):
    """
    Service for managing fiscal periods.

    Contract:
        Accepts period codes or dates and returns frozen FiscalPeriodInfo
        DTOs.  Lifecycle methods flush within the caller's transaction.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def create_period(
        self,
        code: str,
        name: str,
        start_date: date,
        end_date: date,
        actor_id: UUID,
        description: str = "",
    ) -> FiscalPeriodInfo:
        """
        Create a new fiscal period.

        Args:
            code: Unique period identifier (e.g., "2024-01").
            name: Human-readable name (at most 100 characters).
            start_date: First day of the period (inclusive).
            end_date: Last day of the period (inclusive).
            actor_id: Who is creating the period.
            description: Optional description (at most 500 characters).

        Raises:
            ValidationFailedError: If field validation fails.
            DuplicateCodeError: If the code is taken.
            PeriodOverlapError: If the range overlaps an existing period.
        """
        candidate = FiscalPeriodInfo(
            code=code,
            name=name,
            start_date=start_date,
            end_date=end_date,
            description=description,
        )
        self._require_valid("fiscal_period", validate_fiscal_period(candidate))

        if self._get_period_orm(code) is not None:
            raise DuplicateCodeError("FiscalPeriod", code)
        self._validate_no_overlap(code, start_date, end_date)

        period = FiscalPeriod(
            code=code,
            name=name,
            description=description or None,
            start_date=start_date,
            end_date=end_date,
            status=PeriodStatus.OPEN.value,
            created_by_id=actor_id,
        )
        self.session.add(period)
        self.session.flush()

        logger.info(
            "period_created",
            extra={
                "period_code": code,
                "start_date": str(start_date),
                "end_date": str(end_date),
                "actor_id": str(actor_id),
            },
        )
        return FiscalPeriodInfo.from_model(period)

    def _find_overlapping(
        self,
        start_date: date,
        end_date: date,
        exclude_code: str | None = None,
    ) -> FiscalPeriod | None:
        # Two ranges overlap if: start1 <= end2 AND start2 <= end1
        stmt = select(FiscalPeriod).where(
            FiscalPeriod.start_date <= end_date,
            FiscalPeriod.end_date >= start_date,
        )
        if exclude_code is not None:
            stmt = stmt.where(FiscalPeriod.code != exclude_code)
        return self.session.execute(
            stmt.order_by(FiscalPeriod.start_date)
        ).scalars().first()

    def _validate_no_overlap(
        self,
        new_period_code: str,
        start_date: date,
        end_date: date,
    ) -> None:
        overlapping = self._find_overlapping(start_date, end_date)
        if overlapping is not None:
            raise PeriodOverlapError(
                new_period_code=new_period_code,
                existing_period_code=overlapping.code,
                overlap_start=str(max(start_date, overlapping.start_date)),
                overlap_end=str(min(end_date, overlapping.end_date)),
            )

    def has_overlapping_periods(
        self,
        start_date: date,
        end_date: date,
        exclude_code: str | None = None,
    ) -> bool:
        """Check whether any stored period overlaps the given range."""
        return self._find_overlapping(start_date, end_date, exclude_code) is not None

    def close_period(self, code: str, actor_id: UUID) -> FiscalPeriodInfo:
        """
        Close a fiscal period.

        Uses SELECT FOR UPDATE to serialize concurrent close attempts.

        Raises:
            PeriodNotFoundError: If period doesn't exist.
            PeriodAlreadyClosedError: If period is already closed.
        """
        period = self._get_period_for_update(code)
        if period is None:
            raise PeriodNotFoundError(code)
        if period.is_closed:
            raise PeriodAlreadyClosedError(code)

        period.close(actor_id, self._clock.now())
        period.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "period_closed",
            extra={"period_code": code, "actor_id": str(actor_id)},
        )
        return FiscalPeriodInfo.from_model(period)

    def reopen_period(self, code: str, actor_id: UUID) -> FiscalPeriodInfo:
        """
        Reopen a closed fiscal period.

        Raises:
            PeriodNotFoundError: If period doesn't exist.
            PeriodNotClosedError: If period is open.
        """
        period = self._get_period_for_update(code)
        if period is None:
            raise PeriodNotFoundError(code)
        if not period.is_closed:
            raise PeriodNotClosedError(code)

        period.reopen()
        period.updated_by_id = actor_id
        self.session.flush()

        logger.warning(
            "period_reopened",
            extra={"period_code": code, "actor_id": str(actor_id)},
        )
        return FiscalPeriodInfo.from_model(period)

    def _get_period_orm(self, code: str) -> FiscalPeriod | None:
        return self.session.execute(
            select(FiscalPeriod).where(FiscalPeriod.code == code)
        ).scalar_one_or_none()

    def _get_period_for_update(self, code: str) -> FiscalPeriod | None:
        """Get ORM FiscalPeriod by code with row lock for concurrent mutation."""
        return self.session.execute(
            select(FiscalPeriod)
            .where(FiscalPeriod.code == code)
            .with_for_update()
        ).scalar_one_or_none()

    def _get_period_for_date_orm(self, effective_date: date) -> FiscalPeriod | None:
        return self.session.execute(
            select(FiscalPeriod).where(
                FiscalPeriod.start_date <= effective_date,
                FiscalPeriod.end_date >= effective_date,
            )
        ).scalar_one_or_none()

    def get_by_code(self, code: str) -> FiscalPeriodInfo:
        """
        Get a period by its code.

        Raises:
            PeriodNotFoundError: If period doesn't exist.
        """
        period = self._get_period_orm(code)
        if period is None:
            raise PeriodNotFoundError(code)
        return FiscalPeriodInfo.from_model(period)

    def find_by_code(self, code: str) -> FiscalPeriodInfo | None:
        period = self._get_period_orm(code)
        return FiscalPeriodInfo.from_model(period) if period else None

    def get_period_for_date(self, effective_date: date) -> FiscalPeriodInfo | None:
        """The period containing ``effective_date``, or None."""
        period = self._get_period_for_date_orm(effective_date)
        return FiscalPeriodInfo.from_model(period) if period else None

    def get_current_period(self, as_of: date | None = None) -> FiscalPeriodInfo | None:
        """The period containing ``as_of`` (defaults to the clock's today)."""
        return self.get_period_for_date(as_of or self._clock.today())

    def list_periods(self) -> list[FiscalPeriodInfo]:
        result = self.session.execute(
            select(FiscalPeriod).order_by(FiscalPeriod.start_date)
        )
        return [FiscalPeriodInfo.from_model(p) for p in result.scalars().all()]

    def list_by_status(self, status: PeriodStatus) -> list[FiscalPeriodInfo]:
        result = self.session.execute(
            select(FiscalPeriod)
            .where(FiscalPeriod.status == PeriodStatus(status).value)
            .order_by(FiscalPeriod.start_date)
        )
        return [FiscalPeriodInfo.from_model(p) for p in result.scalars().all()]

    def validate_posting_date(self, effective_date: date) -> FiscalPeriodInfo:
        """
        Validate that a posting can be made for the given date.

        Returns:
            The open period containing the date.

        Raises:
            PeriodNotFoundError: If no period exists for the date.
            ClosedPeriodError: If the period is closed.
        """
        period = self._get_period_for_date_orm(effective_date)

        if period is None:
            logger.warning(
                "posting_date_without_period",
                extra={"effective_date": str(effective_date)},
            )
            raise PeriodNotFoundError(str(effective_date))

        if period.is_closed:
            logger.warning(
                "period_closed_violation",
                extra={"period_code": period.code, "effective_date": str(effective_date)},
            )
            raise ClosedPeriodError(period.code, str(effective_date))

        return FiscalPeriodInfo.from_model(period)

    def is_date_in_open_period(self, effective_date: date) -> bool:
        try:
            self.validate_posting_date(effective_date)
            return True
        except (PeriodNotFoundError, ClosedPeriodError):
            return False
