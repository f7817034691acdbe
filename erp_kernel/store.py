"""
ObjectStore -- in-memory backing for DTO snapshots.

Holds plain lists of frozen DTOs.  Used by tests and by callers that want
to build a TaxCatalog or run the engines without a database (the YAML/CSV
loaders in erp_config can fill either this store or a session).

Not thread-safe: a store is owned by one caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from erp_kernel.domain.dtos import (
    AccountInfo,
    BusinessEntityInfo,
    FiscalPeriodInfo,
    GroupMembershipInfo,
    ItemInfo,
    TaxAccountingInfo,
    TaxCatalog,
    TaxGroupInfo,
    TaxInfo,
    TaxRuleInfo,
    TransactionInfo,
)
from erp_kernel.logging_config import get_logger

logger = get_logger("store")

# DTO type -> list attribute on ObjectStore
_COLLECTIONS: dict[type, str] = {
    AccountInfo: "accounts",
    FiscalPeriodInfo: "fiscal_periods",
    BusinessEntityInfo: "business_entities",
    ItemInfo: "items",
    TaxInfo: "taxes",
    TaxGroupInfo: "tax_groups",
    GroupMembershipInfo: "group_memberships",
    TaxRuleInfo: "tax_rules",
    TaxAccountingInfo: "accounting_profiles",
    TransactionInfo: "transactions",
}


@dataclass
class ObjectStore:
    """Lists of DTOs, kept in insertion order."""

    accounts: list[AccountInfo] = field(default_factory=list)
    fiscal_periods: list[FiscalPeriodInfo] = field(default_factory=list)
    business_entities: list[BusinessEntityInfo] = field(default_factory=list)
    items: list[ItemInfo] = field(default_factory=list)
    taxes: list[TaxInfo] = field(default_factory=list)
    tax_groups: list[TaxGroupInfo] = field(default_factory=list)
    group_memberships: list[GroupMembershipInfo] = field(default_factory=list)
    tax_rules: list[TaxRuleInfo] = field(default_factory=list)
    accounting_profiles: list[TaxAccountingInfo] = field(default_factory=list)
    transactions: list[TransactionInfo] = field(default_factory=list)

    def add(self, obj: Any) -> Any:
        """
        Append a DTO to the list for its type and return it.

        Raises:
            TypeError: If the object is not a supported DTO.
        """
        attr = _COLLECTIONS.get(type(obj))
        if attr is None:
            raise TypeError(f"ObjectStore cannot hold {type(obj).__name__}")
        getattr(self, attr).append(obj)
        return obj

    def add_all(self, objs: Iterable[Any]) -> None:
        for obj in objs:
            self.add(obj)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def account(self, code: str) -> AccountInfo | None:
        return next((a for a in self.accounts if a.code == code), None)

    def fiscal_period(self, code: str) -> FiscalPeriodInfo | None:
        return next((p for p in self.fiscal_periods if p.code == code), None)

    def business_entity(self, code: str) -> BusinessEntityInfo | None:
        return next((e for e in self.business_entities if e.code == code), None)

    def item(self, code: str) -> ItemInfo | None:
        return next((i for i in self.items if i.code == code), None)

    def tax(self, code: str) -> TaxInfo | None:
        return next((t for t in self.taxes if t.code == code), None)

    def tax_group(self, code: str) -> TaxGroupInfo | None:
        return next((g for g in self.tax_groups if g.code == code), None)

    def transaction(self, number: str) -> TransactionInfo | None:
        return next((t for t in self.transactions if t.number == number), None)

    def rules_for_tax(self, tax_code: str) -> list[TaxRuleInfo]:
        return [r for r in self.tax_rules if r.tax_code == tax_code]

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def catalog(self) -> TaxCatalog:
        """Freeze the tax-related lists into a TaxCatalog."""
        return TaxCatalog(
            taxes=tuple(self.taxes),
            groups=tuple(self.tax_groups),
            memberships=tuple(self.group_memberships),
            rules=tuple(self.tax_rules),
            accounting=tuple(self.accounting_profiles),
        )

    def counts(self) -> dict[str, int]:
        return {attr: len(getattr(self, attr)) for attr in _COLLECTIONS.values()}

    def clear(self) -> None:
        for attr in _COLLECTIONS.values():
            getattr(self, attr).clear()
        logger.debug("object_store_cleared")
