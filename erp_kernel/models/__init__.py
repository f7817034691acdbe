"""ORM models for the ERP kernel."""

from erp_kernel.models.account import Account
from erp_kernel.models.business_entity import BusinessEntity
from erp_kernel.models.fiscal_period import FiscalPeriod
from erp_kernel.models.item import Item
from erp_kernel.models.tax import (
    GroupMembershipModel,
    TaxAccountingModel,
    TaxGroupModel,
    TaxModel,
    TaxRuleModel,
)
from erp_kernel.models.transaction import LedgerEntry, Transaction

__all__ = [
    "Account",
    "BusinessEntity",
    "FiscalPeriod",
    "GroupMembershipModel",
    "Item",
    "LedgerEntry",
    "TaxAccountingModel",
    "TaxGroupModel",
    "TaxModel",
    "TaxRuleModel",
    "Transaction",
]
