"""
Reference Data Loader - Loads reference data for the pure engine layer.

The ReferenceDataLoader queries the database to build TaxCatalog snapshots
and ObjectStore copies that can be passed to the pure engines in
erp_engines.

This keeps database access out of the pure domain layer.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from erp_engines.balances import AccountBalanceCalculator
from erp_engines.tax_rules import TaxRuleEvaluator
from erp_kernel.domain.dtos import (
    AccountInfo,
    BusinessEntityInfo,
    FiscalPeriodInfo,
    ItemInfo,
    TaxCatalog,
)
from erp_kernel.logging_config import get_logger
from erp_kernel.models.account import Account
from erp_kernel.models.business_entity import BusinessEntity
from erp_kernel.models.fiscal_period import FiscalPeriod
from erp_kernel.models.item import Item
from erp_kernel.services.tax_service import TaxCatalogService
from erp_kernel.services.transaction_service import TransactionService
from erp_kernel.store import ObjectStore

logger = get_logger("services.reference_data")


class ReferenceDataLoader:
    """
    Loads reference data from the database for the pure engine layer.

    Catalog order is deterministic: taxes and groups by code, memberships by
    group then entity code, rules by insertion sequence.
    """

    def __init__(self, session: Session):
        """
        Initialize the loader.

        Args:
            session: SQLAlchemy session.
        """
        self._session = session
        self._taxes = TaxCatalogService(session)

    def load_tax_catalog(self) -> TaxCatalog:
        """Snapshot every tax, group, membership, rule and accounting profile."""
        catalog = TaxCatalog(
            taxes=tuple(self._taxes.list_taxes()),
            groups=tuple(self._taxes.list_groups()),
            memberships=tuple(self._taxes.list_memberships()),
            rules=tuple(self._taxes.list_rules()),
            accounting=tuple(self._taxes.list_accounting_profiles()),
        )
        logger.debug(
            "tax_catalog_loaded",
            extra={
                "tax_count": len(catalog.taxes),
                "group_count": len(catalog.groups),
                "membership_count": len(catalog.memberships),
                "rule_count": len(catalog.rules),
            },
        )
        return catalog

    def load_tax_rule_evaluator(self) -> TaxRuleEvaluator:
        return TaxRuleEvaluator.from_catalog(self.load_tax_catalog())

    def load_balance_calculator(self) -> AccountBalanceCalculator:
        """Calculator over every posted transaction."""
        return AccountBalanceCalculator(
            TransactionService(self._session).list_transactions(posted_only=True)
        )

    def load_object_store(self) -> ObjectStore:
        """Copy all master data, the tax catalog and transactions into a store."""
        store = ObjectStore()
        store.add_all(
            AccountInfo.from_model(a)
            for a in self._session.execute(select(Account).order_by(Account.code)).scalars()
        )
        store.add_all(
            FiscalPeriodInfo.from_model(p)
            for p in self._session.execute(
                select(FiscalPeriod).order_by(FiscalPeriod.start_date)
            ).scalars()
        )
        store.add_all(
            BusinessEntityInfo.from_model(e)
            for e in self._session.execute(
                select(BusinessEntity).order_by(BusinessEntity.code)
            ).scalars()
        )
        store.add_all(
            ItemInfo.from_model(i)
            for i in self._session.execute(select(Item).order_by(Item.code)).scalars()
        )

        catalog = self.load_tax_catalog()
        store.add_all(catalog.taxes)
        store.add_all(catalog.groups)
        store.add_all(catalog.memberships)
        store.add_all(catalog.rules)
        store.add_all(catalog.accounting)
        store.add_all(TransactionService(self._session).list_transactions())

        logger.info("object_store_loaded", extra=store.counts())
        return store
