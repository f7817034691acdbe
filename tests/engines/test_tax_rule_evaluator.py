"""
Tests for TaxRuleEvaluator.

Covers:
- Operation, business entity group and item group filters
- Priority ordering and the item-group override
- Catalog-level disabled taxes
- Application level split between document and line queries
- Missing business entity / item references
- Null document / line arguments
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from erp_engines.tax_rules import TaxRuleEvaluator
from erp_kernel.domain.dtos import (
    DocumentInfo,
    DocumentLine,
    DocumentOperation,
    GroupMembershipInfo,
    GroupType,
    TaxApplicationLevel,
    TaxCatalog,
    TaxInfo,
    TaxRuleInfo,
)
from erp_kernel.exceptions import InvalidArgumentError


def _tax(code, level=TaxApplicationLevel.LINE, enabled=True):
    return TaxInfo(code=code, name=f"Tax {code}", application_level=level, is_enabled=enabled)


def _entity_member(group, entity):
    return GroupMembershipInfo(group_code=group, entity_code=entity, group_type=GroupType.BUSINESS_ENTITY)


def _item_member(group, item):
    return GroupMembershipInfo(group_code=group, entity_code=item, group_type=GroupType.ITEM)


def _invoice(entity="C001", operation="SalesInvoice", items=("I001",)):
    return DocumentInfo(
        number="INV-1",
        operation=operation,
        business_entity_code=entity,
        lines=tuple(DocumentLine(item_code=i) for i in items),
    )


class TestScenario:
    """Document-level tax applied by an operation-only rule."""

    def test_document_tax_found_for_matching_operation(self):
        t1 = _tax("T1", TaxApplicationLevel.DOCUMENT)
        rule = TaxRuleInfo(tax_code="T1", document_operation="Invoice", priority=1)
        evaluator = TaxRuleEvaluator([rule], [t1], [])
        doc = _invoice(operation="Invoice")

        assert evaluator.get_applicable_document_taxes(doc) == [t1]

    def test_line_query_does_not_return_document_tax(self):
        t1 = _tax("T1", TaxApplicationLevel.DOCUMENT)
        rule = TaxRuleInfo(tax_code="T1", document_operation="Invoice", priority=1)
        evaluator = TaxRuleEvaluator([rule], [t1], [])
        doc = _invoice(operation="Invoice")

        assert evaluator.get_applicable_line_taxes(doc, doc.lines[0]) == []


class TestFilters:
    """Each filter left unset matches anything."""

    def test_operation_mismatch_excludes_rule(self):
        vat = _tax("VAT")
        evaluator = TaxRuleEvaluator(
            [TaxRuleInfo(tax_code="VAT", document_operation="PurchaseInvoice")], [vat], []
        )
        doc = _invoice(operation="SalesInvoice")
        assert evaluator.get_applicable_line_taxes(doc, doc.lines[0]) == []

    def test_operation_override_argument(self):
        vat = _tax("VAT")
        evaluator = TaxRuleEvaluator(
            [TaxRuleInfo(tax_code="VAT", document_operation="PurchaseInvoice")], [vat], []
        )
        doc = _invoice(operation="SalesInvoice")
        assert evaluator.get_applicable_line_taxes(
            doc, doc.lines[0], operation="PurchaseInvoice"
        ) == [vat]

    def test_operation_enum_and_string_match(self):
        vat = _tax("VAT")
        evaluator = TaxRuleEvaluator(
            [TaxRuleInfo(tax_code="VAT", document_operation=DocumentOperation.SALES_INVOICE)],
            [vat],
            [],
        )
        doc = _invoice(operation="SalesInvoice")
        assert evaluator.get_applicable_line_taxes(doc, doc.lines[0]) == [vat]
        assert evaluator.get_applicable_line_taxes(
            doc, doc.lines[0], operation=DocumentOperation.SALES_INVOICE
        ) == [vat]

    def test_entity_group_membership_required(self):
        vat = _tax("VAT")
        rule = TaxRuleInfo(tax_code="VAT", business_entity_group="EU")
        evaluator = TaxRuleEvaluator([rule], [vat], [_entity_member("EU", "C001")])

        member_doc = _invoice(entity="C001")
        other_doc = _invoice(entity="C002")
        assert evaluator.get_applicable_line_taxes(member_doc, member_doc.lines[0]) == [vat]
        assert evaluator.get_applicable_line_taxes(other_doc, other_doc.lines[0]) == []

    def test_item_membership_does_not_count_as_entity_membership(self):
        vat = _tax("VAT")
        rule = TaxRuleInfo(tax_code="VAT", business_entity_group="EU")
        # Same code, wrong namespace
        evaluator = TaxRuleEvaluator([rule], [vat], [_item_member("EU", "C001")])
        doc = _invoice(entity="C001")
        assert evaluator.get_applicable_line_taxes(doc, doc.lines[0]) == []

    def test_item_group_filter(self):
        excise = _tax("EXC")
        rule = TaxRuleInfo(tax_code="EXC", item_group="ALCOHOL")
        evaluator = TaxRuleEvaluator([rule], [excise], [_item_member("ALCOHOL", "WINE")])
        doc = _invoice(items=("WINE", "BREAD"))

        assert evaluator.get_applicable_line_taxes(doc, doc.lines[0]) == [excise]
        assert evaluator.get_applicable_line_taxes(doc, doc.lines[1]) == []

    def test_item_group_rule_never_matches_document_level(self):
        doc_tax = _tax("ENV", TaxApplicationLevel.DOCUMENT)
        rule = TaxRuleInfo(tax_code="ENV", item_group="ALCOHOL")
        evaluator = TaxRuleEvaluator([rule], [doc_tax], [_item_member("ALCOHOL", "WINE")])
        doc = _invoice(items=("WINE",))
        assert evaluator.get_applicable_document_taxes(doc) == []

    def test_entity_in_several_groups(self):
        a, b = _tax("A"), _tax("B")
        rules = [
            TaxRuleInfo(tax_code="A", business_entity_group="G1"),
            TaxRuleInfo(tax_code="B", business_entity_group="G2"),
        ]
        members = [_entity_member("G1", "C001"), _entity_member("G2", "C001")]
        evaluator = TaxRuleEvaluator(rules, [a, b], members)
        doc = _invoice()
        assert evaluator.get_applicable_line_taxes(doc, doc.lines[0]) == [a, b]

    def test_blank_item_group_matches_any_item(self):
        t = _tax("T")
        rule = TaxRuleInfo(tax_code="T", document_operation="Invoice", item_group="")
        evaluator = TaxRuleEvaluator([rule], [t], [])
        doc = _invoice(operation="Invoice")

        assert rule.item_group is None
        assert not rule.has_item_group_filter
        assert evaluator.get_applicable_line_taxes(doc, doc.lines[0]) == [t]

    def test_blank_entity_group_matches_any_entity(self):
        t = _tax("T", TaxApplicationLevel.DOCUMENT)
        rule = TaxRuleInfo(tax_code="T", document_operation="Invoice", business_entity_group="  ")
        evaluator = TaxRuleEvaluator([rule], [t], [])
        doc = _invoice(operation="Invoice")

        assert rule.business_entity_group is None
        assert evaluator.get_applicable_document_taxes(doc) == [t]

    def test_blank_item_group_does_not_override_earlier_decision(self):
        vat = _tax("VAT")
        rules = [
            TaxRuleInfo(tax_code="VAT", document_operation="SalesInvoice", priority=1),
            TaxRuleInfo(tax_code="VAT", document_operation="SalesInvoice", item_group="", priority=2, is_enabled=False),
        ]
        evaluator = TaxRuleEvaluator(rules, [vat], [])
        doc = _invoice()
        assert evaluator.get_applicable_line_taxes(doc, doc.lines[0]) == [vat]


class TestPriorityAndOverride:
    """Lowest priority decides first; item-group rules always overwrite."""

    def test_first_rule_by_priority_wins_without_item_group(self):
        vat = _tax("VAT")
        rules = [
            TaxRuleInfo(tax_code="VAT", document_operation="SalesInvoice", priority=2, is_enabled=True),
            TaxRuleInfo(tax_code="VAT", document_operation="SalesInvoice", priority=1, is_enabled=False),
        ]
        evaluator = TaxRuleEvaluator(rules, [vat], [])
        doc = _invoice()
        assert evaluator.get_applicable_line_taxes(doc, doc.lines[0]) == []

    def test_item_group_rule_overrides_earlier_decision(self):
        vat = _tax("VAT")
        rules = [
            TaxRuleInfo(tax_code="VAT", document_operation="SalesInvoice", priority=1, is_enabled=False),
            TaxRuleInfo(tax_code="VAT", item_group="FOOD", priority=2, is_enabled=True),
        ]
        evaluator = TaxRuleEvaluator(rules, [vat], [_item_member("FOOD", "I001")])
        doc = _invoice()
        assert evaluator.get_applicable_line_taxes(doc, doc.lines[0]) == [vat]

    def test_item_group_rule_can_switch_tax_off(self):
        vat = _tax("VAT")
        rules = [
            TaxRuleInfo(tax_code="VAT", document_operation="SalesInvoice", priority=1, is_enabled=True),
            TaxRuleInfo(tax_code="VAT", item_group="EXEMPT", priority=5, is_enabled=False),
        ]
        evaluator = TaxRuleEvaluator(rules, [vat], [_item_member("EXEMPT", "I001")])
        doc = _invoice(items=("I001", "I002"))
        assert evaluator.get_applicable_line_taxes(doc, doc.lines[0]) == []
        assert evaluator.get_applicable_line_taxes(doc, doc.lines[1]) == [vat]

    def test_equal_priority_keeps_supplied_order(self):
        vat = _tax("VAT")
        rules = [
            TaxRuleInfo(tax_code="VAT", document_operation="SalesInvoice", priority=1, is_enabled=False),
            TaxRuleInfo(tax_code="VAT", business_entity_group="EU", priority=1, is_enabled=True),
        ]
        evaluator = TaxRuleEvaluator(rules, [vat], [_entity_member("EU", "C001")])
        doc = _invoice()
        assert evaluator.get_applicable_line_taxes(doc, doc.lines[0]) == []

    def test_tax_without_any_rule_is_not_applied(self):
        vat, other = _tax("VAT"), _tax("OTHER")
        evaluator = TaxRuleEvaluator(
            [TaxRuleInfo(tax_code="VAT", document_operation="SalesInvoice")], [vat, other], []
        )
        doc = _invoice()
        assert evaluator.get_applicable_line_taxes(doc, doc.lines[0]) == [vat]

    def test_results_follow_catalog_order(self):
        a, b, c = _tax("A"), _tax("B"), _tax("C")
        rules = [
            TaxRuleInfo(tax_code="C", document_operation="SalesInvoice", priority=0),
            TaxRuleInfo(tax_code="A", document_operation="SalesInvoice", priority=9),
            TaxRuleInfo(tax_code="B", document_operation="SalesInvoice", priority=3),
        ]
        evaluator = TaxRuleEvaluator(rules, [a, b, c], [])
        doc = _invoice()
        assert [t.code for t in evaluator.get_applicable_line_taxes(doc, doc.lines[0])] == [
            "A",
            "B",
            "C",
        ]


class TestDisabledTaxes:
    def test_catalog_disabled_tax_never_returned(self):
        vat = _tax("VAT", enabled=False)
        rules = [
            TaxRuleInfo(tax_code="VAT", document_operation="SalesInvoice", priority=1),
            TaxRuleInfo(tax_code="VAT", item_group="FOOD", priority=2),
        ]
        evaluator = TaxRuleEvaluator(rules, [vat], [_item_member("FOOD", "I001")])
        doc = _invoice()
        assert evaluator.get_applicable_line_taxes(doc, doc.lines[0]) == []


class TestMissingReferences:
    def test_document_without_entity_returns_empty(self):
        t1 = _tax("T1", TaxApplicationLevel.DOCUMENT)
        evaluator = TaxRuleEvaluator(
            [TaxRuleInfo(tax_code="T1", document_operation="SalesInvoice")], [t1], []
        )
        doc = _invoice(entity=None)
        assert evaluator.get_applicable_document_taxes(doc) == []

    def test_line_without_entity_returns_empty(self):
        vat = _tax("VAT")
        evaluator = TaxRuleEvaluator(
            [TaxRuleInfo(tax_code="VAT", document_operation="SalesInvoice")], [vat], []
        )
        doc = _invoice(entity=None)
        assert evaluator.get_applicable_line_taxes(doc, doc.lines[0]) == []

    def test_line_without_item_returns_empty(self):
        vat = _tax("VAT")
        evaluator = TaxRuleEvaluator(
            [TaxRuleInfo(tax_code="VAT", document_operation="SalesInvoice")], [vat], []
        )
        doc = _invoice()
        assert evaluator.get_applicable_line_taxes(doc, DocumentLine(item_code=None)) == []

    def test_entity_without_memberships_matches_only_ungrouped_rules(self):
        vat = _tax("VAT")
        evaluator = TaxRuleEvaluator(
            [TaxRuleInfo(tax_code="VAT", business_entity_group="EU")],
            [vat],
            [_entity_member("EU", "SOMEONE_ELSE")],
        )
        doc = _invoice(entity="C001")
        assert evaluator.get_applicable_line_taxes(doc, doc.lines[0]) == []


class TestArgumentErrors:
    def test_null_document_for_document_taxes(self):
        evaluator = TaxRuleEvaluator([], [], [])
        with pytest.raises(InvalidArgumentError) as exc_info:
            evaluator.get_applicable_document_taxes(None)
        assert exc_info.value.argument == "document"
        assert exc_info.value.code == "INVALID_ARGUMENT"

    def test_null_document_for_line_taxes(self):
        evaluator = TaxRuleEvaluator([], [], [])
        with pytest.raises(InvalidArgumentError):
            evaluator.get_applicable_line_taxes(None, DocumentLine(item_code="I001"))

    def test_null_line(self):
        evaluator = TaxRuleEvaluator([], [], [])
        with pytest.raises(InvalidArgumentError) as exc_info:
            evaluator.get_applicable_line_taxes(_invoice(), None)
        assert exc_info.value.argument == "line"


class TestConstruction:
    def test_from_catalog(self):
        vat = _tax("VAT")
        catalog = TaxCatalog(
            taxes=(vat,),
            memberships=(_entity_member("EU", "C001"),),
            rules=(TaxRuleInfo(tax_code="VAT", business_entity_group="EU"),),
        )
        evaluator = TaxRuleEvaluator.from_catalog(catalog)
        doc = _invoice()
        assert evaluator.get_applicable_line_taxes(doc, doc.lines[0]) == [vat]

    def test_inputs_are_snapshotted(self):
        rules = [TaxRuleInfo(tax_code="VAT", document_operation="SalesInvoice")]
        taxes = [_tax("VAT")]
        evaluator = TaxRuleEvaluator(rules, taxes, [])
        rules.clear()
        taxes.clear()
        doc = _invoice()
        assert [t.code for t in evaluator.get_applicable_line_taxes(doc, doc.lines[0])] == ["VAT"]

    def test_groups_for(self):
        evaluator = TaxRuleEvaluator(
            [],
            [],
            [_entity_member("EU", "C001"), _entity_member("VIP", "C001"), _item_member("EU", "C001")],
        )
        assert evaluator.groups_for("C001", GroupType.BUSINESS_ENTITY) == frozenset({"EU", "VIP"})
        assert evaluator.groups_for("C001", GroupType.ITEM) == frozenset({"EU"})
        assert evaluator.groups_for("NOBODY", GroupType.ITEM) == frozenset()


class TestLogging:
    def test_resolution_logged(self, captured_logs):
        vat = _tax("VAT")
        evaluator = TaxRuleEvaluator(
            [TaxRuleInfo(tax_code="VAT", document_operation="SalesInvoice")], [vat], []
        )
        doc = _invoice()
        evaluator.get_applicable_line_taxes(doc, doc.lines[0])

        records = [r for r in captured_logs() if r["message"] == "line_taxes_resolved"]
        assert len(records) == 1
        assert records[0]["tax_codes"] == ["VAT"]
        assert records[0]["document_no"] == "INV-1"


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------

priorities = st.integers(min_value=0, max_value=1000)
decisions = st.booleans()
group_codes = st.sampled_from(["G1", "G2", "G3"])


class TestEvaluatorProperties:
    @given(p1=priorities, gap=st.integers(min_value=1, max_value=100))
    def test_item_group_rule_beats_lower_priority_generic_rule(self, p1, gap):
        vat = _tax("VAT")
        rules = [
            TaxRuleInfo(tax_code="VAT", document_operation="SalesInvoice", priority=p1, is_enabled=False),
            TaxRuleInfo(tax_code="VAT", item_group="FOOD", priority=p1 + gap, is_enabled=True),
        ]
        evaluator = TaxRuleEvaluator(rules, [vat], [_item_member("FOOD", "I001")])
        doc = _invoice()
        assert evaluator.get_applicable_line_taxes(doc, doc.lines[0]) == [vat]

    @given(
        rule_groups=st.lists(group_codes, min_size=1, max_size=6),
        rule_decisions=st.lists(decisions, min_size=6, max_size=6),
    )
    def test_entity_without_memberships_gets_nothing_from_group_rules(
        self, rule_groups, rule_decisions
    ):
        taxes = [_tax(f"T{i}") for i in range(len(rule_groups))]
        rules = [
            TaxRuleInfo(tax_code=f"T{i}", business_entity_group=g, is_enabled=rule_decisions[i])
            for i, g in enumerate(rule_groups)
        ]
        evaluator = TaxRuleEvaluator(rules, taxes, [_entity_member("G1", "OTHER")])
        doc = _invoice(entity="C001")
        assert evaluator.get_applicable_line_taxes(doc, doc.lines[0]) == []
        assert evaluator.get_applicable_document_taxes(doc) == []

    @given(
        specs=st.lists(
            st.tuples(priorities, decisions, st.booleans(), st.booleans()),
            min_size=1,
            max_size=8,
        ),
    )
    @settings(max_examples=50)
    def test_disabled_tax_never_returned(self, specs):
        taxes = [
            TaxInfo(code=f"T{i}", name="t", is_enabled=enabled, application_level=TaxApplicationLevel.LINE)
            for i, (_, _, enabled, _) in enumerate(specs)
        ]
        rules = [
            TaxRuleInfo(
                tax_code=f"T{i}",
                document_operation="SalesInvoice",
                item_group="FOOD" if use_item else None,
                priority=priority,
                is_enabled=decision,
            )
            for i, (priority, decision, _, use_item) in enumerate(specs)
        ]
        evaluator = TaxRuleEvaluator(rules, taxes, [_item_member("FOOD", "I001")])
        doc = _invoice()
        result = evaluator.get_applicable_line_taxes(doc, doc.lines[0])
        assert all(t.is_enabled for t in result)

    @given(
        specs=st.lists(st.tuples(priorities, decisions), min_size=1, max_size=8),
    )
    def test_results_are_subsequence_of_catalog(self, specs):
        taxes = [_tax(f"T{i}") for i in range(len(specs))]
        rules = [
            TaxRuleInfo(tax_code=f"T{i}", document_operation="SalesInvoice", priority=p, is_enabled=d)
            for i, (p, d) in enumerate(specs)
        ]
        evaluator = TaxRuleEvaluator(list(reversed(rules)), taxes, [])
        doc = _invoice()
        codes = [t.code for t in evaluator.get_applicable_line_taxes(doc, doc.lines[0])]
        expected = [f"T{i}" for i, (_, d) in enumerate(specs) if d]
        assert codes == expected
