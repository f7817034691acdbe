"""
Module: erp_kernel.models.business_entity
Responsibility: ORM persistence for business partners (customers, suppliers).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - code is unique (uq_business_entity_code).  Tax group memberships
      reference entities by this code.
"""

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from erp_kernel.db.base import TrackedBase


class BusinessEntity(TrackedBase):
    """A customer, supplier or other partner that documents are issued to."""

    __tablename__ = "business_entities"
    __table_args__ = (
        UniqueConstraint("code", name="uq_business_entity_code"),
        Index("idx_business_entity_active", "is_active"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Postal address
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    zip_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)

    phone_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<BusinessEntity {self.code}: {self.name}>"
