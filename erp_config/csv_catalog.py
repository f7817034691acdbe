"""
CSV import/export for taxes, tax rules, group memberships and the chart of
accounts.

Uses csv.DictReader / csv.DictWriter.  Reads as utf-8-sig so a BOM written
by spreadsheet tools is stripped.  Imports never raise on a bad row: the
row becomes a RowError (1-based line number, header is line 1) and the
remaining rows are still read.

Headers:
    taxes        code,name,kind,application_level,amount,percentage,
                 is_enabled,is_included_in_price
    rules        tax_code,document_operation,business_entity_group,
                 item_group,priority,is_enabled
    memberships  group_code,entity_code,group_type
    accounts     code,name,account_type,parent_code,is_archived
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generic, Iterable, TypeVar

from erp_config.loader import (
    optional_str,
    parse_bool,
    parse_membership,
    parse_rule,
    parse_tax,
)
from erp_kernel.domain.dtos import (
    AccountInfo,
    AccountType,
    GroupMembershipInfo,
    TaxInfo,
    TaxRuleInfo,
    ValidationResult,
)
from erp_kernel.domain.validation import (
    validate_account,
    validate_group_membership,
    validate_tax,
    validate_tax_rule,
)
from erp_kernel.exceptions import ConfigError
from erp_kernel.logging_config import get_logger

logger = get_logger("config.csv")

TAX_COLUMNS = (
    "code",
    "name",
    "kind",
    "application_level",
    "amount",
    "percentage",
    "is_enabled",
    "is_included_in_price",
)
RULE_COLUMNS = (
    "tax_code",
    "document_operation",
    "business_entity_group",
    "item_group",
    "priority",
    "is_enabled",
)
MEMBERSHIP_COLUMNS = ("group_code", "entity_code", "group_type")
ACCOUNT_COLUMNS = ("code", "name", "account_type", "parent_code", "is_archived")

T = TypeVar("T")


@dataclass(frozen=True)
class RowError:
    row: int
    message: str
    codes: tuple[str, ...] = ()


@dataclass(frozen=True)
class ImportResult(Generic[T]):
    records: tuple[T, ...]
    errors: tuple[RowError, ...]

    @property
    def ok(self) -> bool:
        return not self.errors


def _bool_text(value: bool) -> str:
    return "true" if value else "false"


def _write(path: Path, columns: tuple[str, ...], rows: Iterable[dict[str, Any]]) -> int:
    count = 0
    with Path(path).open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
            count += 1
    logger.info("csv_exported", extra={"path": str(path), "row_count": count})
    return count


def check_columns(source: str, header: Iterable[str], columns: tuple[str, ...]) -> None:
    """
    Raises:
        ConfigError: If any of ``columns`` is absent from ``header``.
    """
    present = set(header)
    missing = [c for c in columns if c not in present]
    if missing:
        raise ConfigError(source, f"missing columns: {', '.join(missing)}")


def import_rows(
    rows: Iterable[tuple[int, dict[str, Any]]],
    parser: Callable[[dict[str, Any]], T],
    validator: Callable[[T], ValidationResult],
) -> ImportResult[T]:
    """Parse and validate ``(row_number, row)`` pairs into an ImportResult."""
    records: list[T] = []
    errors: list[RowError] = []

    for row_no, row in rows:
        try:
            record = parser(row)
        except (KeyError, TypeError, ValueError) as exc:
            errors.append(RowError(row=row_no, message=str(exc)))
            continue
        result = validator(record)
        if not result:
            errors.append(
                RowError(
                    row=row_no,
                    message="; ".join(e.message for e in result.errors),
                    codes=result.error_codes,
                )
            )
            continue
        records.append(record)

    return ImportResult(records=tuple(records), errors=tuple(errors))


def _read(
    path: Path,
    columns: tuple[str, ...],
    parser: Callable[[dict[str, Any]], T],
    validator: Callable[[T], ValidationResult],
) -> ImportResult[T]:
    path = Path(path)
    with path.open("r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        check_columns(str(path), reader.fieldnames or (), columns)
        result = import_rows(enumerate(reader, start=2), parser, validator)

    logger.info(
        "csv_imported",
        extra={
            "path": str(path),
            "record_count": len(result.records),
            "error_count": len(result.errors),
        },
    )
    return result


# ---------------------------------------------------------------------------
# Taxes
# ---------------------------------------------------------------------------


def tax_row(tax: TaxInfo) -> dict[str, str]:
    return {
        "code": tax.code,
        "name": tax.name,
        "kind": tax.kind.value,
        "application_level": tax.application_level.value,
        "amount": str(tax.amount),
        "percentage": str(tax.percentage),
        "is_enabled": _bool_text(tax.is_enabled),
        "is_included_in_price": _bool_text(tax.is_included_in_price),
    }


def export_taxes(taxes: Iterable[TaxInfo], path: Path) -> int:
    """Write taxes to ``path``.  Returns the number of data rows."""
    return _write(path, TAX_COLUMNS, (tax_row(t) for t in taxes))


def import_taxes(path: Path) -> ImportResult[TaxInfo]:
    return _read(path, TAX_COLUMNS, parse_tax, validate_tax)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def rule_row(rule: TaxRuleInfo) -> dict[str, str]:
    # blank cell means "no filter"
    return {
        "tax_code": rule.tax_code,
        "document_operation": rule.document_operation or "",
        "business_entity_group": rule.business_entity_group or "",
        "item_group": rule.item_group or "",
        "priority": str(rule.priority),
        "is_enabled": _bool_text(rule.is_enabled),
    }


def export_rules(rules: Iterable[TaxRuleInfo], path: Path) -> int:
    """Write rules in the given order, which import preserves."""
    return _write(path, RULE_COLUMNS, (rule_row(r) for r in rules))


def import_rules(path: Path) -> ImportResult[TaxRuleInfo]:
    return _read(path, RULE_COLUMNS, parse_rule, validate_tax_rule)


# ---------------------------------------------------------------------------
# Memberships
# ---------------------------------------------------------------------------


def membership_row(membership: GroupMembershipInfo) -> dict[str, str]:
    return {
        "group_code": membership.group_code,
        "entity_code": membership.entity_code,
        "group_type": membership.group_type.value,
    }


def export_memberships(memberships: Iterable[GroupMembershipInfo], path: Path) -> int:
    return _write(path, MEMBERSHIP_COLUMNS, (membership_row(m) for m in memberships))


def import_memberships(path: Path) -> ImportResult[GroupMembershipInfo]:
    return _read(path, MEMBERSHIP_COLUMNS, parse_membership, validate_group_membership)


# ---------------------------------------------------------------------------
# Chart of accounts
# ---------------------------------------------------------------------------


def parse_account(data: dict[str, Any]) -> AccountInfo:
    """Account types are matched case-insensitively ("Asset", "ASSET")."""
    return AccountInfo(
        code=str(data["code"]).strip(),
        name=str(data["name"]).strip(),
        account_type=AccountType(str(data["account_type"]).strip().lower()),
        parent_code=optional_str(data.get("parent_code")),
        is_archived=parse_bool(data.get("is_archived"), False),
    )


def account_row(account: AccountInfo) -> dict[str, str]:
    return {
        "code": account.code,
        "name": account.name,
        "account_type": account.account_type.value,
        "parent_code": account.parent_code or "",
        "is_archived": _bool_text(account.is_archived),
    }


def export_accounts(accounts: Iterable[AccountInfo], path: Path) -> int:
    return _write(path, ACCOUNT_COLUMNS, (account_row(a) for a in accounts))


def import_accounts(path: Path) -> ImportResult[AccountInfo]:
    """
    Read a chart of accounts.  Rows failing validate_account (bad code
    prefix, non-numeric code, missing name) become RowErrors.
    """
    return _read(path, ACCOUNT_COLUMNS[:3], parse_account, validate_account)
