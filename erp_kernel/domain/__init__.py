"""
Pure domain layer.

Frozen DTOs, enumerations, field validators and the injectable clock.
Nothing here touches the ORM, the database or wall time (except
SystemClock).
"""

from erp_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from erp_kernel.domain.dtos import (
    AccountInfo,
    AccountType,
    BusinessEntityInfo,
    DocumentInfo,
    DocumentLine,
    DocumentOperation,
    EntryType,
    FiscalPeriodInfo,
    GroupMembershipInfo,
    GroupType,
    ItemInfo,
    LedgerEntryInfo,
    NormalBalance,
    PeriodStatus,
    TaxAccountingInfo,
    TaxApplicationLevel,
    TaxCatalog,
    TaxGroupInfo,
    TaxInfo,
    TaxKind,
    TaxRuleInfo,
    TransactionInfo,
    ValidationError,
    ValidationResult,
)

__all__ = [
    "AccountInfo",
    "AccountType",
    "BusinessEntityInfo",
    "Clock",
    "DeterministicClock",
    "DocumentInfo",
    "DocumentLine",
    "DocumentOperation",
    "EntryType",
    "FiscalPeriodInfo",
    "GroupMembershipInfo",
    "GroupType",
    "ItemInfo",
    "LedgerEntryInfo",
    "NormalBalance",
    "PeriodStatus",
    "SystemClock",
    "TaxAccountingInfo",
    "TaxApplicationLevel",
    "TaxCatalog",
    "TaxGroupInfo",
    "TaxInfo",
    "TaxKind",
    "TaxRuleInfo",
    "TransactionInfo",
    "ValidationError",
    "ValidationResult",
]
