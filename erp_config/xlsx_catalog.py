"""
XLSX workbook import/export of a tax catalog.

One workbook, three sheets named ``taxes``, ``rules`` and ``memberships``,
each with the same header row as the matching CSV file (see
erp_config.csv_catalog).  Row errors are collected per sheet exactly as the
CSV importer does.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

from erp_config.csv_catalog import (
    MEMBERSHIP_COLUMNS,
    RULE_COLUMNS,
    TAX_COLUMNS,
    ImportResult,
    check_columns,
    import_rows,
    membership_row,
    rule_row,
    tax_row,
)
from erp_config.loader import parse_membership, parse_rule, parse_tax
from erp_kernel.domain.dtos import GroupMembershipInfo, TaxCatalog, TaxInfo, TaxRuleInfo
from erp_kernel.domain.validation import (
    validate_group_membership,
    validate_tax,
    validate_tax_rule,
)
from erp_kernel.exceptions import ConfigError
from erp_kernel.logging_config import get_logger

logger = get_logger("config.xlsx")

SHEETS = {
    "taxes": TAX_COLUMNS,
    "rules": RULE_COLUMNS,
    "memberships": MEMBERSHIP_COLUMNS,
}


@dataclass(frozen=True)
class WorkbookImport:
    taxes: ImportResult[TaxInfo]
    rules: ImportResult[TaxRuleInfo]
    memberships: ImportResult[GroupMembershipInfo]

    @property
    def ok(self) -> bool:
        return self.taxes.ok and self.rules.ok and self.memberships.ok


def _openpyxl():
    try:
        import openpyxl
    except ImportError as e:
        raise ImportError("XLSX support requires openpyxl. Install with: pip install openpyxl") from e
    return openpyxl


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value == int(value):
        return str(int(value))
    return str(value).strip()


def export_catalog_workbook(catalog: TaxCatalog, path: Path) -> dict[str, int]:
    """Write taxes, rules and memberships to ``path``.  Returns rows per sheet."""
    openpyxl = _openpyxl()
    wb = openpyxl.Workbook()
    wb.remove(wb.active)

    sources = {
        "taxes": [tax_row(t) for t in catalog.taxes],
        "rules": [rule_row(r) for r in catalog.rules],
        "memberships": [membership_row(m) for m in catalog.memberships],
    }
    counts: dict[str, int] = {}
    for name, columns in SHEETS.items():
        sheet = wb.create_sheet(title=name)
        sheet.append(list(columns))
        for row in sources[name]:
            sheet.append([row[c] for c in columns])
        counts[name] = len(sources[name])

    wb.save(path)
    logger.info("xlsx_exported", extra={"path": str(path), **counts})
    return counts


def _sheet_rows(source: str, sheet: Any, columns: tuple[str, ...]) -> Iterator[tuple[int, dict[str, str]]]:
    rows = sheet.iter_rows(values_only=True)
    header_values = next(rows, None)
    if header_values is None:
        raise ConfigError(source, f"sheet '{sheet.title}' is empty")
    header = [_cell_text(v) for v in header_values]
    check_columns(f"{source}:{sheet.title}", header, columns)

    for row_no, values in enumerate(rows, start=2):
        if values is None or all(v in (None, "") for v in values):
            continue
        yield row_no, {h: _cell_text(v) for h, v in zip(header, values) if h}


def import_catalog_workbook(path: Path) -> WorkbookImport:
    """
    Raises:
        ConfigError: If a sheet is missing, empty or lacks a column.
    """
    openpyxl = _openpyxl()
    source = str(path)
    wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        missing = [name for name in SHEETS if name not in wb.sheetnames]
        if missing:
            raise ConfigError(source, f"missing sheets: {', '.join(missing)}")

        result = WorkbookImport(
            taxes=import_rows(
                _sheet_rows(source, wb["taxes"], TAX_COLUMNS), parse_tax, validate_tax
            ),
            rules=import_rows(
                _sheet_rows(source, wb["rules"], RULE_COLUMNS), parse_rule, validate_tax_rule
            ),
            memberships=import_rows(
                _sheet_rows(source, wb["memberships"], MEMBERSHIP_COLUMNS),
                parse_membership,
                validate_group_membership,
            ),
        )
    finally:
        wb.close()

    logger.info(
        "xlsx_imported",
        extra={
            "path": source,
            "tax_count": len(result.taxes.records),
            "rule_count": len(result.rules.records),
            "membership_count": len(result.memberships.records),
            "ok": result.ok,
        },
    )
    return result
