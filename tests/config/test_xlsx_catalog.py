"""Tests for the XLSX catalog workbook."""

from decimal import Decimal

import openpyxl
import pytest

from erp_config.xlsx_catalog import export_catalog_workbook, import_catalog_workbook
from erp_kernel.domain.dtos import (
    GroupMembershipInfo,
    GroupType,
    TaxCatalog,
    TaxInfo,
    TaxKind,
    TaxRuleInfo,
)
from erp_kernel.exceptions import ConfigError

CATALOG = TaxCatalog(
    taxes=(
        TaxInfo(code="VAT20", name="VAT 20%", percentage=Decimal("20")),
        TaxInfo(code="ECO", name="Eco fee", kind=TaxKind.AMOUNT_PER_UNIT, amount=Decimal("0.25")),
    ),
    memberships=(
        GroupMembershipInfo(group_code="BOTTLED", entity_code="WATER", group_type=GroupType.ITEM),
    ),
    rules=(
        TaxRuleInfo(tax_code="VAT20", document_operation="SalesInvoice"),
        TaxRuleInfo(tax_code="ECO", item_group="BOTTLED", priority=2),
    ),
)


def _write_workbook(path, sheets):
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        sheet = wb.create_sheet(title=title)
        for row in rows:
            sheet.append(row)
    wb.save(path)


class TestWorkbook:
    def test_export_then_import(self, tmp_path):
        path = tmp_path / "catalog.xlsx"
        counts = export_catalog_workbook(CATALOG, path)
        assert counts == {"taxes": 2, "rules": 2, "memberships": 1}

        result = import_catalog_workbook(path)

        assert result.ok
        assert result.taxes.records == CATALOG.taxes
        assert result.rules.records == CATALOG.rules
        assert result.memberships.records == CATALOG.memberships

    def test_numeric_cells(self, tmp_path):
        path = tmp_path / "numbers.xlsx"
        _write_workbook(
            path,
            {
                "taxes": [
                    ["code", "name", "kind", "application_level", "amount", "percentage",
                     "is_enabled", "is_included_in_price"],
                    ["VAT", "VAT", "percentage", "line", 0, 17.5, True, False],
                ],
                "rules": [
                    ["tax_code", "document_operation", "business_entity_group", "item_group",
                     "priority", "is_enabled"],
                    ["VAT", "Quotation", None, None, 2.0, None],
                    [None, None, None, None, None, None],
                ],
                "memberships": [["group_code", "entity_code", "group_type"]],
            },
        )

        result = import_catalog_workbook(path)

        assert result.taxes.records[0].percentage == Decimal("17.5")
        rule = result.rules.records[0]
        assert rule.priority == 2
        assert rule.item_group is None
        assert len(result.rules.records) == 1
        assert result.memberships.records == ()

    def test_row_errors_per_sheet(self, tmp_path):
        path = tmp_path / "errors.xlsx"
        _write_workbook(
            path,
            {
                "taxes": [
                    ["code", "name", "kind", "application_level", "amount", "percentage",
                     "is_enabled", "is_included_in_price"],
                ],
                "rules": [
                    ["tax_code", "document_operation", "business_entity_group", "item_group",
                     "priority", "is_enabled"],
                    ["VAT", None, None, None, 1, True],
                ],
                "memberships": [
                    ["group_code", "entity_code", "group_type"],
                    ["FOOD", "BREAD", "item"],
                    ["FOOD", None, "item"],
                ],
            },
        )

        result = import_catalog_workbook(path)

        assert not result.ok
        assert result.rules.errors[0].codes == ("NO_FILTER",)
        assert len(result.memberships.records) == 1
        assert result.memberships.errors[0].row == 3

    def test_missing_sheet(self, tmp_path):
        path = tmp_path / "partial.xlsx"
        _write_workbook(path, {"taxes": [["code"]]})
        with pytest.raises(ConfigError) as exc_info:
            import_catalog_workbook(path)
        assert "rules" in exc_info.value.reason

    def test_missing_column(self, tmp_path):
        path = tmp_path / "columns.xlsx"
        _write_workbook(
            path,
            {
                "taxes": [["code", "name"]],
                "rules": [["tax_code"]],
                "memberships": [["group_code"]],
            },
        )
        with pytest.raises(ConfigError):
            import_catalog_workbook(path)
