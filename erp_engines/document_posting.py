"""
Document Posting - Turn a taxed document into balanced ledger entries.

Pure: takes the DocumentTaxResult and the operation's DocumentAccountingInfo
and proposes the entries; persisting them is DocumentPostingService's job.

Entries, in order:
    total      grand total less unbooked added taxes, on the total side
    net        balancing amount, on the net side
    taxes      one entry per (account, side) from the tax accounting
               profiles, summed over lines and document
    cost       cost of goods sold / inventory, when the profile asks for it

A tax is booked only when its profile includes it in the transaction and
names at least one account.  Unbooked taxes charged on top of the price are
left out of the total; unbooked taxes included in the price stay in the net
amount.

Usage:
    from erp_engines.document_posting import propose_document_transaction

    proposed = propose_document_transaction(tax_result, sales_profile)
    transactions.create_transaction(..., entries=proposed.entries, ...)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from erp_engines.document_tax import DocumentTaxResult, TaxAmount
from erp_kernel.domain.dtos import DocumentAccountingInfo, EntryType, LedgerEntryInfo
from erp_kernel.exceptions import DocumentNotPostableError
from erp_kernel.logging_config import get_logger

logger = get_logger("engines.document_posting")

_ZERO = Decimal("0")


@dataclass(frozen=True)
class ProposedTransaction:
    """Entries for one document, not yet persisted."""

    document_number: str
    operation: str
    transaction_date: date | None
    entries: tuple[LedgerEntryInfo, ...]
    unbooked_taxes: tuple[str, ...] = ()

    @property
    def total_debits(self) -> Decimal:
        return sum(
            (e.amount for e in self.entries if e.entry_type == EntryType.DEBIT), _ZERO
        )

    @property
    def total_credits(self) -> Decimal:
        return sum(
            (e.amount for e in self.entries if e.entry_type == EntryType.CREDIT), _ZERO
        )

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits


def _is_booked(amount: TaxAmount) -> bool:
    return amount.include_in_transaction and bool(
        amount.debit_account_code or amount.credit_account_code
    )


def propose_document_transaction(
    result: DocumentTaxResult,
    profile: DocumentAccountingInfo,
    transaction_date: date | None = None,
    decimal_places: int = 2,
) -> ProposedTransaction:
    """
    Build the ledger entries for a calculated document.

    Raises:
        DocumentNotPostableError: If the profile belongs to another
            operation, or the total or net amount is not positive.
    """
    if profile.document_operation != result.operation:
        raise DocumentNotPostableError(
            result.document_number,
            f"accounting profile is for {profile.document_operation}, "
            f"document operation is {result.operation}",
        )

    booked = [t for t in result.all_taxes if _is_booked(t)]
    unbooked = [t for t in result.all_taxes if not _is_booked(t)]

    tax_entries: dict[tuple[str, EntryType], Decimal] = {}
    tax_names: dict[tuple[str, EntryType], str] = {}
    for amount in booked:
        for account_code, side in (
            (amount.debit_account_code, EntryType.DEBIT),
            (amount.credit_account_code, EntryType.CREDIT),
        ):
            if account_code:
                key = (account_code, side)
                tax_entries[key] = tax_entries.get(key, _ZERO) + amount.tax_amount
                tax_names.setdefault(key, amount.tax_name)

    total = result.grand_total - sum(
        (t.tax_amount for t in unbooked if not t.is_included_in_price), _ZERO
    )
    if total <= 0:
        raise DocumentNotPostableError(result.document_number, "document total is zero")

    # net balances the total against the tax entries
    net = total
    for (_, side), value in tax_entries.items():
        net += value if side == profile.total_side else -value
    if net <= 0:
        raise DocumentNotPostableError(
            result.document_number, f"net amount {net} is not positive"
        )

    entries = [
        LedgerEntryInfo(profile.total_account_code, profile.total_side, total, description="Document total"),
        LedgerEntryInfo(profile.net_account_code, profile.net_side, net, description="Document net"),
    ]
    entries.extend(
        LedgerEntryInfo(account_code, side, value, description=tax_names[(account_code, side)])
        for (account_code, side), value in tax_entries.items()
        if value > 0
    )

    if profile.books_cost_of_sales:
        quantum = Decimal(10) ** -decimal_places
        cost = (result.subtotal * profile.cost_ratio).quantize(quantum, rounding=ROUND_HALF_UP)
        if cost > 0:
            entries.append(
                LedgerEntryInfo(
                    profile.cost_of_goods_sold_account_code,
                    EntryType.DEBIT,
                    cost,
                    description="Cost of goods sold",
                )
            )
            entries.append(
                LedgerEntryInfo(
                    profile.inventory_account_code,
                    EntryType.CREDIT,
                    cost,
                    description="Inventory",
                )
            )

    proposed = ProposedTransaction(
        document_number=result.document_number,
        operation=result.operation,
        transaction_date=transaction_date,
        entries=tuple(entries),
        unbooked_taxes=tuple(t.tax_code for t in unbooked),
    )
    logger.debug(
        "document_transaction_proposed",
        extra={
            "document_no": result.document_number,
            "entry_count": len(proposed.entries),
            "total": total,
            "net": net,
            "unbooked_taxes": list(proposed.unbooked_taxes),
        },
    )
    return proposed
