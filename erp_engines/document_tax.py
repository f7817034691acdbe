"""
Document Tax Calculator - Turn applicable taxes into amounts.

Builds on TaxRuleEvaluator: the evaluator says WHICH taxes apply, this module
says HOW MUCH each one is and which accounts it is booked against.

Amount rules:
    PERCENTAGE        base * percentage / 100
                      (included in price: base * p / (100 + p))
    FIXED_AMOUNT      amount
    AMOUNT_PER_UNIT   amount * quantity  (document level: total quantity)

The base of a line tax is the line amount (quantity * unit price); the base
of a document tax is the document subtotal.  Every amount is quantized with
ROUND_HALF_UP.  Taxes included in the price are already part of the
subtotal, so they do not increase the grand total.

Usage:
    from erp_engines.document_tax import DocumentTaxCalculator

    calculator = DocumentTaxCalculator(evaluator, accounting=profiles)
    result = calculator.calculate(invoice)
    print(result.tax_total, result.grand_total)
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from erp_engines.tax_rules import TaxRuleEvaluator
from erp_kernel.domain.dtos import (
    DocumentInfo,
    DocumentLine,
    TaxAccountingInfo,
    TaxApplicationLevel,
    TaxInfo,
    TaxKind,
    operation_code,
)
from erp_kernel.exceptions import InvalidArgumentError
from erp_kernel.logging_config import LogContext, get_logger

logger = get_logger("engines.document_tax")

_HUNDRED = Decimal("100")
_ZERO = Decimal("0")


@dataclass(frozen=True)
class TaxAmount:
    """One computed tax on a line or on the whole document."""

    tax_code: str
    tax_name: str
    kind: TaxKind
    level: TaxApplicationLevel
    base_amount: Decimal
    tax_amount: Decimal
    is_included_in_price: bool = False
    debit_account_code: str | None = None
    credit_account_code: str | None = None
    include_in_transaction: bool = True


@dataclass(frozen=True)
class LineTaxResult:
    """Taxes for a single document line."""

    line: DocumentLine
    taxes: tuple[TaxAmount, ...]

    @property
    def tax_total(self) -> Decimal:
        return sum((t.tax_amount for t in self.taxes), _ZERO)

    @property
    def added_tax_total(self) -> Decimal:
        """Taxes charged on top of the line amount."""
        return sum(
            (t.tax_amount for t in self.taxes if not t.is_included_in_price),
            _ZERO,
        )


@dataclass(frozen=True)
class DocumentTaxResult:
    """Complete tax calculation for a document."""

    document_number: str
    operation: str
    subtotal: Decimal
    lines: tuple[LineTaxResult, ...]
    document_taxes: tuple[TaxAmount, ...]
    totals_by_tax: dict[str, Decimal] = field(default_factory=dict)

    @property
    def line_tax_total(self) -> Decimal:
        return sum((line.tax_total for line in self.lines), _ZERO)

    @property
    def document_tax_total(self) -> Decimal:
        return sum((t.tax_amount for t in self.document_taxes), _ZERO)

    @property
    def tax_total(self) -> Decimal:
        return self.line_tax_total + self.document_tax_total

    @property
    def grand_total(self) -> Decimal:
        added = sum((line.added_tax_total for line in self.lines), _ZERO)
        added += sum(
            (t.tax_amount for t in self.document_taxes if not t.is_included_in_price),
            _ZERO,
        )
        return self.subtotal + added

    @property
    def all_taxes(self) -> tuple[TaxAmount, ...]:
        collected: list[TaxAmount] = []
        for line in self.lines:
            collected.extend(line.taxes)
        collected.extend(self.document_taxes)
        return tuple(collected)


def compute_tax_amount(
    tax: TaxInfo,
    base: Decimal,
    quantity: Decimal,
    decimal_places: int = 2,
) -> Decimal:
    """Amount of ``tax`` on ``base`` (quantity feeds per-unit taxes)."""
    quantum = Decimal(10) ** -decimal_places

    if tax.kind == TaxKind.PERCENTAGE:
        if tax.is_included_in_price:
            raw = base * tax.percentage / (_HUNDRED + tax.percentage)
        else:
            raw = base * tax.percentage / _HUNDRED
    elif tax.kind == TaxKind.FIXED_AMOUNT:
        raw = tax.amount
    else:
        raw = tax.amount * quantity

    return raw.quantize(quantum, rounding=ROUND_HALF_UP)


class DocumentTaxCalculator:
    """
    Calculate line and document taxes for a document.

    Pure - the evaluator and accounting profiles are supplied at
    construction.
    """

    def __init__(
        self,
        evaluator: TaxRuleEvaluator,
        accounting: Iterable[TaxAccountingInfo] = (),
        decimal_places: int = 2,
    ):
        self._evaluator = evaluator
        self._decimal_places = decimal_places
        self._accounting: dict[tuple[str, str], TaxAccountingInfo] = {
            (p.document_operation, p.tax_code): p for p in accounting
        }

    def accounting_for(self, operation: str, tax_code: str) -> TaxAccountingInfo | None:
        return self._accounting.get((operation, tax_code))

    def calculate_line(
        self,
        document: DocumentInfo,
        line: DocumentLine,
        operation: str | None = None,
    ) -> LineTaxResult:
        """Taxes for one line of ``document``."""
        operation = operation_code(operation) or document.operation
        taxes = self._evaluator.get_applicable_line_taxes(document, line, operation)
        amounts = tuple(
            self._amount(tax, TaxApplicationLevel.LINE, line.amount, line.quantity, operation)
            for tax in taxes
        )
        return LineTaxResult(line=line, taxes=amounts)

    def calculate(
        self,
        document: DocumentInfo | None,
        operation: str | None = None,
    ) -> DocumentTaxResult:
        """
        Calculate every tax on the document.

        Raises:
            InvalidArgumentError: If document is None.
        """
        if document is None:
            raise InvalidArgumentError("document", "calculate")

        with LogContext.bind(document_no=document.number):
            return self._calculate(document, operation_code(operation) or document.operation)

    def _calculate(self, document: DocumentInfo, operation: str) -> DocumentTaxResult:
        t0 = time.monotonic()
        logger.info("document_tax_calculation_started", extra={
            "operation": operation,
            "line_count": len(document.lines),
        })

        line_results = tuple(
            self.calculate_line(document, line, operation) for line in document.lines
        )

        subtotal = document.subtotal
        document_taxes = tuple(
            self._amount(
                tax,
                TaxApplicationLevel.DOCUMENT,
                subtotal,
                document.total_quantity,
                operation,
            )
            for tax in self._evaluator.get_applicable_document_taxes(document, operation)
        )

        totals: dict[str, Decimal] = {}
        for amount in [t for lr in line_results for t in lr.taxes] + list(document_taxes):
            totals[amount.tax_code] = totals.get(amount.tax_code, _ZERO) + amount.tax_amount

        result = DocumentTaxResult(
            document_number=document.number,
            operation=operation,
            subtotal=subtotal,
            lines=line_results,
            document_taxes=document_taxes,
            totals_by_tax=totals,
        )

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.info("document_tax_calculation_completed", extra={
            "subtotal": str(result.subtotal),
            "tax_total": str(result.tax_total),
            "grand_total": str(result.grand_total),
            "tax_codes": sorted(totals),
            "duration_ms": duration_ms,
        })
        return result

    def _amount(
        self,
        tax: TaxInfo,
        level: TaxApplicationLevel,
        base: Decimal,
        quantity: Decimal,
        operation: str,
    ) -> TaxAmount:
        profile = self.accounting_for(operation, tax.code)
        return TaxAmount(
            tax_code=tax.code,
            tax_name=tax.name,
            kind=tax.kind,
            level=level,
            base_amount=base,
            tax_amount=compute_tax_amount(tax, base, quantity, self._decimal_places),
            is_included_in_price=tax.is_included_in_price,
            debit_account_code=profile.debit_account_code if profile else None,
            credit_account_code=profile.credit_account_code if profile else None,
            include_in_transaction=profile.include_in_transaction if profile else True,
        )
