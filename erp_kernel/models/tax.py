"""
Tax catalog ORM models (``erp_kernel.models.tax``).

Responsibility:
    SQLAlchemy models persisting the tax catalog: taxes, tax groups, group
    memberships, tax rules and per-operation tax accounting profiles.  Each
    model converts to its frozen DTO via ``<Dto>.from_model`` in
    ``erp_kernel.domain.dtos``.

Architecture position:
    Kernel > Models.  Inherits from ``TrackedBase`` which provides
    id (UUID PK), created_at, updated_at, created_by_id, updated_by_id.

Invariants enforced:
    - Tax.code is unique and at most 20 characters; name at most 100.
    - Amounts and percentages are Decimal (Numeric(38,9)) -- NEVER float.
    - Enum fields stored as String containing the enum .value string.
    - A membership is unique per (group, entity_code, group_type).
    - Tax rules keep an insertion ``sequence`` so the evaluator sees them in
      a stable order before its priority sort.
    - Entity codes in memberships are not foreign keys: a membership points
      at either a business entity or an item depending on group_type.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_kernel.db.base import TrackedBase
from erp_kernel.domain.dtos import TaxApplicationLevel, TaxKind


# ---------------------------------------------------------------------------
# TaxModel
# ---------------------------------------------------------------------------

class TaxModel(TrackedBase):
    """A tax definition in the catalog."""

    __tablename__ = "taxes"

    code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    kind: Mapped[str] = mapped_column(
        String(30), nullable=False, default=TaxKind.PERCENTAGE.value,
    )
    application_level: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TaxApplicationLevel.LINE.value,
    )
    amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    percentage: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_included_in_price: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("code", name="uq_tax_code"),
        Index("idx_tax_enabled", "is_enabled"),
    )

    def __repr__(self) -> str:
        return f"<Tax {self.code}: {self.name}>"


# ---------------------------------------------------------------------------
# TaxGroupModel
# ---------------------------------------------------------------------------

class TaxGroupModel(TrackedBase):
    """A named group of business entities or items used by tax rules."""

    __tablename__ = "tax_groups"

    code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    memberships: Mapped[list["GroupMembershipModel"]] = relationship(
        back_populates="group", cascade="all, delete-orphan", lazy="select",
    )

    __table_args__ = (
        UniqueConstraint("code", name="uq_tax_group_code"),
    )

    def __repr__(self) -> str:
        return f"<TaxGroup {self.code}>"


# ---------------------------------------------------------------------------
# GroupMembershipModel
# ---------------------------------------------------------------------------

class GroupMembershipModel(TrackedBase):
    """Flat membership row linking an entity or item code to a group."""

    __tablename__ = "tax_group_memberships"

    group_id: Mapped[UUID] = mapped_column(ForeignKey("tax_groups.id"), nullable=False)
    entity_code: Mapped[str] = mapped_column(String(50), nullable=False)
    group_type: Mapped[str] = mapped_column(String(30), nullable=False)

    group: Mapped[TaxGroupModel] = relationship(back_populates="memberships")

    __table_args__ = (
        UniqueConstraint(
            "group_id", "entity_code", "group_type", name="uq_tax_group_membership",
        ),
        Index("idx_tax_group_membership_entity", "entity_code", "group_type"),
    )


# ---------------------------------------------------------------------------
# TaxRuleModel
# ---------------------------------------------------------------------------

class TaxRuleModel(TrackedBase):
    """
    Conditional rule deciding whether a tax applies.

    Null filters (document_operation, business_entity_group_id,
    item_group_id) match anything.
    """

    __tablename__ = "tax_rules"

    tax_id: Mapped[UUID] = mapped_column(ForeignKey("taxes.id"), nullable=False)
    document_operation: Mapped[str | None] = mapped_column(String(50), nullable=True)
    business_entity_group_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("tax_groups.id"), nullable=True,
    )
    item_group_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("tax_groups.id"), nullable=True,
    )
    priority: Mapped[int] = mapped_column(default=1, nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # Insertion order; the evaluator's priority sort is stable over it
    sequence: Mapped[int] = mapped_column(nullable=False)

    tax: Mapped[TaxModel] = relationship(lazy="joined")
    business_entity_group: Mapped[TaxGroupModel | None] = relationship(
        foreign_keys=[business_entity_group_id], lazy="joined",
    )
    item_group: Mapped[TaxGroupModel | None] = relationship(
        foreign_keys=[item_group_id], lazy="joined",
    )

    __table_args__ = (
        UniqueConstraint("sequence", name="uq_tax_rule_sequence"),
        Index("idx_tax_rule_tax", "tax_id"),
        Index("idx_tax_rule_operation", "document_operation"),
    )

    def __repr__(self) -> str:
        return f"<TaxRule #{self.sequence} tax={self.tax_id} priority={self.priority}>"


# ---------------------------------------------------------------------------
# TaxAccountingModel
# ---------------------------------------------------------------------------

class TaxAccountingModel(TrackedBase):
    """Accounts a tax is booked against for one document operation."""

    __tablename__ = "tax_accounting_profiles"

    document_operation: Mapped[str] = mapped_column(String(50), nullable=False)
    tax_id: Mapped[UUID] = mapped_column(ForeignKey("taxes.id"), nullable=False)
    # GL account codes -- no FK to accounts, profiles may predate the chart
    debit_account_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    credit_account_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    include_in_transaction: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False,
    )

    tax: Mapped[TaxModel] = relationship(lazy="joined")

    __table_args__ = (
        UniqueConstraint("document_operation", "tax_id", name="uq_tax_accounting_profile"),
    )
