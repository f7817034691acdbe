"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable records that flow between the persistence
    backings (ORM services, ObjectStore) and the pure engines: taxes, tax
    groups, group memberships, tax rules, documents, accounts, fiscal periods,
    business entities, items and ledger transactions.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods exist as boundary converters but are only
    invoked from the service layer (never from engine logic).

Invariants enforced:
    - Pure-layer records reference each other by business code, never by
      ORM primary key, so the same engine code runs against either backing.
    - DocumentLine rejects negative quantities.
    - LedgerEntryInfo rejects non-positive amounts.

Failure modes:
    - ValueError on DocumentLine with a negative quantity.
    - ValueError on LedgerEntryInfo with amount <= 0.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from erp_kernel.models.account import Account as AccountModel
    from erp_kernel.models.business_entity import BusinessEntity as BusinessEntityModel
    from erp_kernel.models.fiscal_period import FiscalPeriod as FiscalPeriodModel
    from erp_kernel.models.item import Item as ItemModel
    from erp_kernel.models.tax import (
        GroupMembershipModel,
        TaxAccountingModel,
        TaxGroupModel,
        TaxModel,
        TaxRuleModel,
    )
    from erp_kernel.models.transaction import Transaction as TransactionModel


# =============================================================================
# Enumerations
# =============================================================================


class TaxKind(str, Enum):
    """How a tax amount is computed."""

    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    AMOUNT_PER_UNIT = "amount_per_unit"


class TaxApplicationLevel(str, Enum):
    """Whether a tax is computed per line or against the document total."""

    LINE = "line"
    DOCUMENT = "document"


class GroupType(str, Enum):
    """Kind of entity a group membership refers to."""

    BUSINESS_ENTITY = "business_entity"
    ITEM = "item"


class DocumentOperation(str, Enum):
    """
    Well-known document operation codes.

    Tax rules and documents carry the operation as a plain string; these
    members compare equal to their string values, so callers may use either.
    """

    PURCHASE_REQUISITION = "PurchaseRequisition"
    REQUEST_FOR_QUOTATION = "RequestForQuotation"
    PURCHASE_ORDER = "PurchaseOrder"
    GOODS_RECEIPT_NOTE = "GoodsReceiptNote"
    PURCHASE_INVOICE = "PurchaseInvoice"
    DEBIT_NOTE = "DebitNote"
    QUOTATION = "Quotation"
    SALES_ORDER = "SalesOrder"
    DELIVERY_NOTE = "DeliveryNote"
    SALES_INVOICE = "SalesInvoice"
    CREDIT_NOTE = "CreditNote"
    RECEIPT = "Receipt"


class AccountType(str, Enum):
    """Classification of accounts; the first digit of the account code."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"
    SETTLEMENT = "settlement"


class NormalBalance(str, Enum):
    """The side that increases an account."""

    DEBIT = "debit"
    CREDIT = "credit"


class PeriodStatus(str, Enum):
    """
    Status of a fiscal period.

    Lifecycle: OPEN <-> CLOSED.  No posting to CLOSED periods.
    """

    OPEN = "open"
    CLOSED = "closed"


class EntryType(str, Enum):
    """Side of a ledger entry."""

    DEBIT = "debit"
    CREDIT = "credit"


def operation_code(value: Any) -> str | None:
    """Normalise a DocumentOperation or plain string to its string code."""
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return value


def _blank_to_none(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value


# =============================================================================
# Validation
# =============================================================================


@dataclass(frozen=True)
class ValidationError:
    """
    A single validation error.

    Carries a machine-readable code, human-readable message, optional field
    name, and optional details dict.  Does NOT raise; it IS the error
    representation.
    """

    code: str
    message: str
    field: str | None = None
    details: dict[str, Any] | None = None


@dataclass(frozen=True)
class ValidationResult:
    """
    Result of validation.

    is_valid is True only when there are no errors; bool(result) mirrors it.
    """

    is_valid: bool
    errors: tuple[ValidationError, ...] = field(default_factory=tuple)

    @classmethod
    def success(cls) -> ValidationResult:
        """Create a successful validation result."""
        return cls(is_valid=True, errors=())

    @classmethod
    def failure(cls, *errors: ValidationError) -> ValidationResult:
        """Create a failed validation result."""
        return cls(is_valid=False, errors=tuple(errors))

    @classmethod
    def from_errors(cls, errors: list[ValidationError]) -> ValidationResult:
        """Success when the list is empty, otherwise a failure carrying it."""
        if not errors:
            return cls.success()
        return cls.failure(*errors)

    @property
    def error_codes(self) -> tuple[str, ...]:
        return tuple(e.code for e in self.errors)

    def __bool__(self) -> bool:
        return self.is_valid


# =============================================================================
# Tax catalog
# =============================================================================


@dataclass(frozen=True)
class TaxInfo:
    """
    Pure representation of a tax definition.

    ``amount`` is used by FIXED_AMOUNT and AMOUNT_PER_UNIT taxes,
    ``percentage`` by PERCENTAGE taxes.  A tax with is_enabled=False is never
    returned by the rule evaluator regardless of rule decisions.
    """

    code: str
    name: str
    kind: TaxKind = TaxKind.PERCENTAGE
    application_level: TaxApplicationLevel = TaxApplicationLevel.LINE
    amount: Decimal = Decimal("0")
    percentage: Decimal = Decimal("0")
    is_enabled: bool = True
    is_included_in_price: bool = False
    id: UUID | None = None

    @classmethod
    def from_model(cls, model: TaxModel) -> TaxInfo:
        return cls(
            id=model.id,
            code=model.code,
            name=model.name,
            kind=TaxKind(model.kind),
            application_level=TaxApplicationLevel(model.application_level),
            amount=model.amount,
            percentage=model.percentage,
            is_enabled=model.is_enabled,
            is_included_in_price=model.is_included_in_price,
        )


@dataclass(frozen=True)
class TaxGroupInfo:
    """A named group used to target tax rules at entities or items."""

    code: str
    name: str
    description: str = ""
    is_enabled: bool = True
    id: UUID | None = None

    @classmethod
    def from_model(cls, model: TaxGroupModel) -> TaxGroupInfo:
        return cls(
            id=model.id,
            code=model.code,
            name=model.name,
            description=model.description or "",
            is_enabled=model.is_enabled,
        )


@dataclass(frozen=True)
class GroupMembershipInfo:
    """
    Associates one business entity code or item code with one group code.

    group_type says which namespace ``entity_code`` lives in.
    """

    group_code: str
    entity_code: str
    group_type: GroupType
    id: UUID | None = None

    @classmethod
    def from_model(cls, model: GroupMembershipModel) -> GroupMembershipInfo:
        return cls(
            id=model.id,
            group_code=model.group.code,
            entity_code=model.entity_code,
            group_type=GroupType(model.group_type),
        )


@dataclass(frozen=True)
class TaxRuleInfo:
    """
    A conditional mapping from a tax to a targeting filter.

    Each filter left as None matches anything.  Lower priority values are
    evaluated first.  is_enabled is the decision the rule records for its
    tax (False means "do not apply"), not whether the rule is active.
    """

    tax_code: str
    document_operation: str | None = None
    business_entity_group: str | None = None
    item_group: str | None = None
    priority: int = 1
    is_enabled: bool = True
    id: UUID | None = None

    def __post_init__(self) -> None:
        # a blank filter is an unset filter
        object.__setattr__(
            self,
            "document_operation",
            _blank_to_none(operation_code(self.document_operation)),
        )
        object.__setattr__(
            self, "business_entity_group", _blank_to_none(self.business_entity_group)
        )
        object.__setattr__(self, "item_group", _blank_to_none(self.item_group))

    @property
    def has_item_group_filter(self) -> bool:
        return self.item_group is not None

    @property
    def has_any_filter(self) -> bool:
        return (
            self.document_operation is not None
            or self.business_entity_group is not None
            or self.item_group is not None
        )

    @classmethod
    def from_model(cls, model: TaxRuleModel) -> TaxRuleInfo:
        return cls(
            id=model.id,
            tax_code=model.tax.code,
            document_operation=model.document_operation,
            business_entity_group=(
                model.business_entity_group.code
                if model.business_entity_group is not None
                else None
            ),
            item_group=(
                model.item_group.code if model.item_group is not None else None
            ),
            priority=model.priority,
            is_enabled=model.is_enabled,
        )


@dataclass(frozen=True)
class TaxAccountingInfo:
    """
    Accounting profile for a tax under one document operation.

    Tells the document tax calculator which accounts a computed tax amount
    is booked against.
    """

    document_operation: str
    tax_code: str
    debit_account_code: str | None = None
    credit_account_code: str | None = None
    include_in_transaction: bool = True
    id: UUID | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "document_operation", operation_code(self.document_operation)
        )

    @classmethod
    def from_model(cls, model: TaxAccountingModel) -> TaxAccountingInfo:
        return cls(
            id=model.id,
            document_operation=model.document_operation,
            tax_code=model.tax.code,
            debit_account_code=model.debit_account_code,
            credit_account_code=model.credit_account_code,
            include_in_transaction=model.include_in_transaction,
        )


@dataclass(frozen=True)
class TaxCatalog:
    """Snapshot of everything the tax engines need, in catalog order."""

    taxes: tuple[TaxInfo, ...] = ()
    groups: tuple[TaxGroupInfo, ...] = ()
    memberships: tuple[GroupMembershipInfo, ...] = ()
    rules: tuple[TaxRuleInfo, ...] = ()
    accounting: tuple[TaxAccountingInfo, ...] = ()

    def tax(self, code: str) -> TaxInfo | None:
        for tax in self.taxes:
            if tax.code == code:
                return tax
        return None


@dataclass(frozen=True)
class DocumentAccountingInfo:
    """
    How documents of one operation are booked to the ledger.

    The document net amount goes to ``net_account_code`` on ``net_side``
    (CREDIT for sales revenue, DEBIT for purchases).  The amount owed goes to
    ``total_account_code`` on the opposite side.  Cost of sales is booked
    only when ``cost_ratio`` is positive and both cost accounts are set.
    """

    document_operation: str
    net_account_code: str
    total_account_code: str
    net_side: EntryType = EntryType.CREDIT
    cost_of_goods_sold_account_code: str | None = None
    inventory_account_code: str | None = None
    cost_ratio: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "document_operation", operation_code(self.document_operation)
        )
        object.__setattr__(self, "net_side", EntryType(self.net_side))

    @property
    def total_side(self) -> EntryType:
        if self.net_side == EntryType.CREDIT:
            return EntryType.DEBIT
        return EntryType.CREDIT

    @property
    def books_cost_of_sales(self) -> bool:
        return (
            self.cost_ratio > 0
            and bool(self.cost_of_goods_sold_account_code)
            and bool(self.inventory_account_code)
        )


# =============================================================================
# Documents
# =============================================================================


@dataclass(frozen=True)
class DocumentLine:
    """One line of a document.  The evaluator only reads ``item_code``."""

    item_code: str | None
    quantity: Decimal = Decimal("1")
    unit_price: Decimal = Decimal("0")
    description: str = ""

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValueError(f"Line quantity cannot be negative: {self.quantity}")

    @property
    def amount(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class DocumentInfo:
    """
    A commercial document (invoice, order, note ...).

    ``operation`` is the document operation code tax rules filter on.
    ``business_entity_code`` may be None for documents without a partner.
    """

    number: str
    operation: str
    business_entity_code: str | None
    lines: tuple[DocumentLine, ...] = ()
    document_date: date | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "operation", operation_code(self.operation))
        object.__setattr__(self, "lines", tuple(self.lines))

    @property
    def subtotal(self) -> Decimal:
        return sum((line.amount for line in self.lines), Decimal("0"))

    @property
    def total_quantity(self) -> Decimal:
        return sum((line.quantity for line in self.lines), Decimal("0"))


# =============================================================================
# Master data
# =============================================================================


@dataclass(frozen=True)
class BusinessEntityInfo:
    """A customer, supplier or other business partner."""

    code: str
    name: str
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""
    phone_number: str | None = None
    email: str | None = None
    is_active: bool = True
    id: UUID | None = None

    @classmethod
    def from_model(cls, model: BusinessEntityModel) -> BusinessEntityInfo:
        return cls(
            id=model.id,
            code=model.code,
            name=model.name,
            address=model.address or "",
            city=model.city or "",
            state=model.state or "",
            zip_code=model.zip_code or "",
            country=model.country or "",
            phone_number=model.phone_number,
            email=model.email,
            is_active=model.is_active,
        )


@dataclass(frozen=True)
class ItemInfo:
    """A sellable or purchasable item."""

    code: str
    description: str
    item_type: str
    base_price: Decimal = Decimal("0")
    is_active: bool = True
    id: UUID | None = None

    @classmethod
    def from_model(cls, model: ItemModel) -> ItemInfo:
        return cls(
            id=model.id,
            code=model.code,
            description=model.description,
            item_type=model.item_type,
            base_price=model.base_price,
            is_active=model.is_active,
        )


# =============================================================================
# Ledger
# =============================================================================


def normal_balance_for(account_type: AccountType) -> NormalBalance:
    """Assets and expenses are debit-normal; everything else credit-normal."""
    if account_type in (AccountType.ASSET, AccountType.EXPENSE):
        return NormalBalance.DEBIT
    return NormalBalance.CREDIT


@dataclass(frozen=True)
class AccountInfo:
    """Pure representation of a chart-of-accounts entry."""

    code: str
    name: str
    account_type: AccountType
    parent_code: str | None = None
    is_archived: bool = False
    id: UUID | None = None

    @property
    def normal_balance(self) -> NormalBalance:
        return normal_balance_for(self.account_type)

    @classmethod
    def from_model(cls, model: AccountModel) -> AccountInfo:
        return cls(
            id=model.id,
            code=model.code,
            name=model.name,
            account_type=AccountType(model.account_type),
            parent_code=model.parent_code,
            is_archived=model.is_archived,
        )


@dataclass(frozen=True)
class FiscalPeriodInfo:
    """
    Pure domain representation of a fiscal period.

    Dates are inclusive on both ends.
    """

    code: str
    name: str
    start_date: date
    end_date: date
    status: PeriodStatus = PeriodStatus.OPEN
    description: str = ""
    closed_at: datetime | None = None
    closed_by_id: UUID | None = None
    id: UUID | None = None

    @property
    def is_open(self) -> bool:
        return self.status == PeriodStatus.OPEN

    @property
    def is_closed(self) -> bool:
        return self.status == PeriodStatus.CLOSED

    def contains_date(self, check_date: date) -> bool:
        """Check if a date falls within this period."""
        return self.start_date <= check_date <= self.end_date

    @classmethod
    def from_model(cls, model: FiscalPeriodModel) -> FiscalPeriodInfo:
        return cls(
            id=model.id,
            code=model.code,
            name=model.name,
            start_date=model.start_date,
            end_date=model.end_date,
            status=PeriodStatus(model.status),
            description=model.description or "",
            closed_at=model.closed_at,
            closed_by_id=model.closed_by_id,
        )


@dataclass(frozen=True)
class LedgerEntryInfo:
    """One debit or credit against an account.  Amount is always positive."""

    account_code: str
    entry_type: EntryType
    amount: Decimal
    sequence: int = 0
    description: str = ""

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError(f"Ledger entry amount must be positive: {self.amount}")

    @property
    def signed_amount(self) -> Decimal:
        """Debits positive, credits negative."""
        if self.entry_type == EntryType.DEBIT:
            return self.amount
        return -self.amount


@dataclass(frozen=True)
class TransactionInfo:
    """A ledger transaction: a dated set of entries that must balance."""

    number: str
    transaction_date: date
    entries: tuple[LedgerEntryInfo, ...]
    description: str = ""
    document_number: str | None = None
    is_posted: bool = False
    posted_at: datetime | None = None
    id: UUID | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", tuple(self.entries))

    @property
    def total_debits(self) -> Decimal:
        return sum(
            (e.amount for e in self.entries if e.entry_type == EntryType.DEBIT),
            Decimal("0"),
        )

    @property
    def total_credits(self) -> Decimal:
        return sum(
            (e.amount for e in self.entries if e.entry_type == EntryType.CREDIT),
            Decimal("0"),
        )

    @classmethod
    def from_model(cls, model: TransactionModel) -> TransactionInfo:
        return cls(
            id=model.id,
            number=model.number,
            transaction_date=model.transaction_date,
            description=model.description or "",
            document_number=model.document_number,
            is_posted=model.is_posted,
            posted_at=model.posted_at,
            entries=tuple(
                LedgerEntryInfo(
                    account_code=entry.account.code,
                    entry_type=EntryType(entry.entry_type),
                    amount=entry.amount,
                    sequence=entry.sequence,
                    description=entry.description or "",
                )
                for entry in sorted(model.entries, key=lambda e: e.sequence)
            ),
        )
