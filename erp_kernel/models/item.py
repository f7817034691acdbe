"""
Module: erp_kernel.models.item
Responsibility: ORM persistence for items that appear on document lines.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - code is unique (uq_item_code).  Tax group memberships reference items
      by this code.
    - base_price is Decimal (Numeric(38, 9)), never float.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from erp_kernel.db.base import TrackedBase


class Item(TrackedBase):
    """A product or service."""

    __tablename__ = "items"
    __table_args__ = (
        UniqueConstraint("code", name="uq_item_code"),
        Index("idx_item_type", "item_type"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    # Free-form classification (e.g. "Product", "Service")
    item_type: Mapped[str] = mapped_column(String(50), nullable=False)
    base_price: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Item {self.code}: {self.description}>"
