"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for every
    service in the kernel layer.  Services receive a SQLAlchemy ``Session``
    and use ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell.  The caller (``session_scope()``,
    a CLI command, or the test harness) owns commit/rollback.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from erp_kernel.db.base import Base
from erp_kernel.domain.dtos import ValidationResult
from erp_kernel.exceptions import ValidationFailedError

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.
    """

    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def _require_valid(entity: str, result: ValidationResult) -> None:
        """Raise ValidationFailedError unless ``result`` is valid."""
        if not result:
            raise ValidationFailedError(entity, result)
