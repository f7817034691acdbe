"""
Tax Rule Evaluator - Resolve which taxes apply to a document and its lines.

Pure functions over a snapshot of the tax catalog: taxes, group memberships
and tax rules are supplied at construction and never mutated afterwards.

Resolution:
    1. Keep rules whose operation filter is unset or equals the operation.
    2. Keep rules whose business entity group filter is unset or is one of
       the groups the document's business entity belongs to.
    3. Keep rules whose item group filter is unset or is one of the groups
       the line's item belongs to (document-level resolution passes no item
       groups, so item-group rules never match there).
    4. Stable-sort the survivors by ascending priority.
    5. Walk them, recording one decision per tax.  A rule writes its
       decision when the tax has none yet, or when the rule carries an item
       group filter.  A later item-group rule therefore overrides an earlier
       generic one even though the generic rule has the lower priority.
    6. Return taxes that are enabled and whose recorded decision is True,
       in catalog order.

Usage:
    from erp_engines.tax_rules import TaxRuleEvaluator

    evaluator = TaxRuleEvaluator(rules, taxes, memberships)
    document_taxes = evaluator.get_applicable_document_taxes(invoice)
    line_taxes = evaluator.get_applicable_line_taxes(invoice, invoice.lines[0])
"""

from __future__ import annotations

from typing import Iterable

from erp_kernel.domain.dtos import (
    DocumentInfo,
    DocumentLine,
    GroupMembershipInfo,
    GroupType,
    TaxApplicationLevel,
    TaxCatalog,
    TaxInfo,
    TaxRuleInfo,
    operation_code,
)
from erp_kernel.exceptions import InvalidArgumentError
from erp_kernel.logging_config import get_logger
from erp_kernel.store import ObjectStore

logger = get_logger("engines.tax_rules")


class TaxRuleEvaluator:
    """
    Resolves applicable taxes from rules, group memberships and the catalog.

    Safe to share between threads: all state is captured as tuples at
    construction.
    """

    def __init__(
        self,
        rules: Iterable[TaxRuleInfo],
        taxes: Iterable[TaxInfo],
        memberships: Iterable[GroupMembershipInfo],
    ):
        self._rules: tuple[TaxRuleInfo, ...] = tuple(rules)
        self._taxes: tuple[TaxInfo, ...] = tuple(taxes)
        self._memberships: tuple[GroupMembershipInfo, ...] = tuple(memberships)

    @classmethod
    def from_catalog(cls, catalog: TaxCatalog) -> TaxRuleEvaluator:
        return cls(catalog.rules, catalog.taxes, catalog.memberships)

    @classmethod
    def from_store(cls, store: ObjectStore) -> TaxRuleEvaluator:
        return cls.from_catalog(store.catalog())

    @property
    def rules(self) -> tuple[TaxRuleInfo, ...]:
        return self._rules

    @property
    def taxes(self) -> tuple[TaxInfo, ...]:
        return self._taxes

    # ------------------------------------------------------------------
    # Public queries
    # ------------------------------------------------------------------

    def get_applicable_document_taxes(
        self,
        document: DocumentInfo | None,
        operation: str | None = None,
    ) -> list[TaxInfo]:
        """
        Taxes applying to the document as a whole.

        Args:
            document: The document being taxed.
            operation: Operation code to match rules against.  Defaults to
                the document's own operation.

        Raises:
            InvalidArgumentError: If document is None.
        """
        if document is None:
            raise InvalidArgumentError("document", "get_applicable_document_taxes")

        if not document.business_entity_code:
            logger.debug(
                "tax_resolution_skipped",
                extra={"document_no": document.number, "reason": "no_business_entity"},
            )
            return []

        operation = self._operation_for(document, operation)
        entity_groups = self.groups_for(
            document.business_entity_code, GroupType.BUSINESS_ENTITY
        )
        taxes = self._filter_level(
            self.resolve(operation, entity_groups, frozenset()),
            TaxApplicationLevel.DOCUMENT,
        )
        logger.debug(
            "document_taxes_resolved",
            extra={
                "document_no": document.number,
                "operation": operation,
                "entity_groups": entity_groups,
                "tax_codes": [t.code for t in taxes],
            },
        )
        return taxes

    def get_applicable_line_taxes(
        self,
        document: DocumentInfo | None,
        line: DocumentLine | None,
        operation: str | None = None,
    ) -> list[TaxInfo]:
        """
        Taxes applying to a single document line.

        Raises:
            InvalidArgumentError: If document or line is None.
        """
        if document is None:
            raise InvalidArgumentError("document", "get_applicable_line_taxes")
        if line is None:
            raise InvalidArgumentError("line", "get_applicable_line_taxes")

        if not document.business_entity_code or not line.item_code:
            logger.debug(
                "tax_resolution_skipped",
                extra={
                    "document_no": document.number,
                    "reason": (
                        "no_business_entity"
                        if not document.business_entity_code
                        else "no_item"
                    ),
                },
            )
            return []

        operation = self._operation_for(document, operation)
        entity_groups = self.groups_for(
            document.business_entity_code, GroupType.BUSINESS_ENTITY
        )
        item_groups = self.groups_for(line.item_code, GroupType.ITEM)
        taxes = self._filter_level(
            self.resolve(operation, entity_groups, item_groups),
            TaxApplicationLevel.LINE,
        )
        logger.debug(
            "line_taxes_resolved",
            extra={
                "document_no": document.number,
                "operation": operation,
                "item_code": line.item_code,
                "entity_groups": entity_groups,
                "item_groups": item_groups,
                "tax_codes": [t.code for t in taxes],
            },
        )
        return taxes

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def groups_for(self, entity_code: str, group_type: GroupType) -> frozenset[str]:
        """Codes of every group the entity belongs to for the given kind."""
        return frozenset(
            m.group_code
            for m in self._memberships
            if m.entity_code == entity_code and m.group_type == group_type
        )

    def resolve(
        self,
        operation: str | None,
        entity_groups: frozenset[str],
        item_groups: frozenset[str],
    ) -> list[TaxInfo]:
        """Run rule resolution without the application level filter."""
        matching = [
            rule
            for rule in self._rules
            if (rule.document_operation is None or rule.document_operation == operation)
            and (
                rule.business_entity_group is None
                or rule.business_entity_group in entity_groups
            )
            and (rule.item_group is None or rule.item_group in item_groups)
        ]
        # sorted() is stable: equal priorities keep their supplied order
        matching = sorted(matching, key=lambda r: r.priority)

        decisions: dict[str, bool] = {}
        for rule in matching:
            if rule.tax_code not in decisions or rule.has_item_group_filter:
                decisions[rule.tax_code] = rule.is_enabled

        return [
            tax
            for tax in self._taxes
            if tax.is_enabled and decisions.get(tax.code, False)
        ]

    @staticmethod
    def _operation_for(document: DocumentInfo, operation: str | None) -> str:
        if operation is None:
            return document.operation
        return operation_code(operation)

    @staticmethod
    def _filter_level(
        taxes: list[TaxInfo], level: TaxApplicationLevel
    ) -> list[TaxInfo]:
        return [t for t in taxes if t.application_level == level]
