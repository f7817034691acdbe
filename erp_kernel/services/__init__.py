"""Services for the ERP kernel (write side)."""

from erp_kernel.services.account_service import AccountService
from erp_kernel.services.business_entity_service import BusinessEntityService
from erp_kernel.services.document_posting_service import DocumentPostingService
from erp_kernel.services.item_service import ItemService
from erp_kernel.services.period_service import PeriodService
from erp_kernel.services.reference_data_loader import ReferenceDataLoader
from erp_kernel.services.tax_service import TaxCatalogService
from erp_kernel.services.transaction_service import TransactionService, validate_entries

__all__ = [
    "AccountService",
    "BusinessEntityService",
    "DocumentPostingService",
    "ItemService",
    "PeriodService",
    "ReferenceDataLoader",
    "TaxCatalogService",
    "TransactionService",
    "validate_entries",
]
