"""
Module: erp_engines
Responsibility:
    Pure calculation engines over erp_kernel DTOs: tax rule resolution,
    document tax amounts, document posting entries and account balances.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import erp_kernel.domain, erp_kernel.exceptions and
    erp_kernel.logging_config.  MUST NOT import erp_kernel.services or the
    ORM models.

Invariants enforced:
    - Engines never call ``datetime.now()`` or ``date.today()``; dates are
      passed in.
    - Decimal-only arithmetic.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from erp_engines import TaxRuleEvaluator, DocumentTaxCalculator
    from erp_engines import AccountBalanceCalculator
"""

from erp_engines.balances import (
    AccountBalanceCalculator,
    AccountingEquationCheck,
    Turnover,
)
from erp_engines.document_posting import ProposedTransaction, propose_document_transaction
from erp_engines.document_tax import (
    DocumentTaxCalculator,
    DocumentTaxResult,
    LineTaxResult,
    TaxAmount,
    compute_tax_amount,
)
from erp_engines.tax_rules import TaxRuleEvaluator

__all__ = [
    "AccountBalanceCalculator",
    "AccountingEquationCheck",
    "DocumentTaxCalculator",
    "DocumentTaxResult",
    "LineTaxResult",
    "ProposedTransaction",
    "TaxAmount",
    "TaxRuleEvaluator",
    "Turnover",
    "compute_tax_amount",
    "propose_document_transaction",
]
