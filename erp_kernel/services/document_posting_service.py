"""
DocumentPostingService -- record a taxed document as a ledger transaction.

Responsibility:
    Loads the tax catalog, calculates the document's taxes, proposes the
    ledger entries (erp_engines.document_posting) and records them through
    TransactionService, optionally posting straight away.

Architecture position:
    Kernel > Services -- imperative shell around the pure document engines.

Failure modes:
    - DocumentNotPostableError: no document date, profile for another
      operation, or a non-positive total / net amount.
    - Anything TransactionService raises (unknown or archived accounts,
      duplicate number, closed period on post).
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from erp_engines.document_posting import ProposedTransaction, propose_document_transaction
from erp_engines.document_tax import DocumentTaxCalculator
from erp_engines.tax_rules import TaxRuleEvaluator
from erp_kernel.domain.clock import Clock, SystemClock
from erp_kernel.domain.dtos import DocumentAccountingInfo, DocumentInfo, TransactionInfo
from erp_kernel.exceptions import DocumentNotPostableError
from erp_kernel.logging_config import LogContext, get_logger
from erp_kernel.services.reference_data_loader import ReferenceDataLoader
from erp_kernel.services.transaction_service import TransactionService

logger = get_logger("services.document_posting")


class DocumentPostingService:
    """Turns documents into transactions using the tax catalog in the database."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        transaction_service: TransactionService | None = None,
    ):
        self._session = session
        self._transactions = transaction_service or TransactionService(
            session, clock or SystemClock()
        )

    def propose(
        self, document: DocumentInfo, profile: DocumentAccountingInfo
    ) -> ProposedTransaction:
        """Calculate taxes and propose entries without writing anything."""
        catalog = ReferenceDataLoader(self._session).load_tax_catalog()
        calculator = DocumentTaxCalculator(
            TaxRuleEvaluator.from_catalog(catalog), accounting=catalog.accounting
        )
        return propose_document_transaction(
            calculator.calculate(document), profile, document.document_date
        )

    def record_document(
        self,
        document: DocumentInfo,
        profile: DocumentAccountingInfo,
        actor_id: UUID,
        *,
        post: bool = False,
        transaction_number: str | None = None,
    ) -> TransactionInfo:
        """
        Record the document's transaction, numbered after the document
        unless ``transaction_number`` is given.
        """
        with LogContext.bind(document_no=document.number):
            if document.document_date is None:
                raise DocumentNotPostableError(document.number, "document has no date")

            proposed = self.propose(document, profile)
            number = transaction_number or document.number
            tx = self._transactions.create_transaction(
                number,
                document.document_date,
                proposed.entries,
                actor_id,
                description=f"{document.operation} {document.number}",
                document_number=document.number,
            )
            if post:
                tx = self._transactions.post_transaction(number, actor_id)

            logger.info(
                "document_recorded",
                extra={
                    "transaction_number": number,
                    "operation": document.operation,
                    "posted": tx.is_posted,
                    "unbooked_taxes": list(proposed.unbooked_taxes),
                    "actor_id": str(actor_id),
                },
            )
            return tx
