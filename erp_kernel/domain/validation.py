"""Pure field validation for catalog and master-data records."""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal

from erp_kernel.domain.dtos import (
    AccountInfo,
    AccountType,
    BusinessEntityInfo,
    FiscalPeriodInfo,
    GroupMembershipInfo,
    ItemInfo,
    TaxInfo,
    TaxKind,
    TaxRuleInfo,
    ValidationError,
    ValidationResult,
)
from erp_kernel.logging_config import get_logger

logger = get_logger("domain.validation")

TAX_CODE_MAX_LENGTH = 20
TAX_NAME_MAX_LENGTH = 100
PERIOD_NAME_MAX_LENGTH = 100
PERIOD_DESCRIPTION_MAX_LENGTH = 500
MAX_PERIOD_DAYS = 730
MIN_CODE_LENGTH = 2

# First digit of an account code for each account type
ACCOUNT_CODE_PREFIXES: dict[AccountType, str] = {
    AccountType.ASSET: "1",
    AccountType.LIABILITY: "2",
    AccountType.EQUITY: "3",
    AccountType.REVENUE: "4",
    AccountType.EXPENSE: "6",
}

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _required(value: str | None, field: str, label: str) -> list[ValidationError]:
    if value is None or not value.strip():
        return [
            ValidationError(
                code="REQUIRED",
                message=f"{label} is required",
                field=field,
            )
        ]
    return []


def _max_length(
    value: str | None, limit: int, field: str, label: str
) -> list[ValidationError]:
    if value is not None and len(value) > limit:
        return [
            ValidationError(
                code="TOO_LONG",
                message=f"{label} cannot exceed {limit} characters",
                field=field,
                details={"max_length": limit, "length": len(value)},
            )
        ]
    return []


def _min_length(
    value: str | None, limit: int, field: str, label: str
) -> list[ValidationError]:
    if value is None or len(value.strip()) < limit:
        return [
            ValidationError(
                code="TOO_SHORT",
                message=f"{label} must be at least {limit} characters",
                field=field,
                details={"min_length": limit},
            )
        ]
    return []


def _finish(entity: str, errors: list[ValidationError]) -> ValidationResult:
    if errors:
        logger.debug(
            "validation_failed",
            extra={
                "entity": entity,
                "error_count": len(errors),
                "error_codes": [e.code for e in errors],
            },
        )
    return ValidationResult.from_errors(errors)


# ---------------------------------------------------------------------------
# Tax catalog
# ---------------------------------------------------------------------------


def validate_tax(tax: TaxInfo) -> ValidationResult:
    """Code and name are required and bounded; the rate must suit the kind."""
    errors: list[ValidationError] = []
    errors.extend(_required(tax.code, "code", "Tax code"))
    errors.extend(_max_length(tax.code, TAX_CODE_MAX_LENGTH, "code", "Tax code"))
    errors.extend(_required(tax.name, "name", "Tax name"))
    errors.extend(_max_length(tax.name, TAX_NAME_MAX_LENGTH, "name", "Tax name"))

    if tax.kind == TaxKind.PERCENTAGE:
        if not Decimal("0") <= tax.percentage <= Decimal("100"):
            errors.append(
                ValidationError(
                    code="PERCENTAGE_OUT_OF_RANGE",
                    message="Percentage must be between 0 and 100",
                    field="percentage",
                    details={"percentage": str(tax.percentage)},
                )
            )
    elif tax.amount < 0:
        errors.append(
            ValidationError(
                code="NEGATIVE_AMOUNT",
                message="Amount must be non-negative",
                field="amount",
                details={"amount": str(tax.amount)},
            )
        )

    return _finish("tax", errors)


def validate_tax_rule(rule: TaxRuleInfo) -> ValidationResult:
    """A rule needs a tax, a non-negative priority and at least one filter."""
    errors: list[ValidationError] = []
    errors.extend(_required(rule.tax_code, "tax_code", "Tax"))

    if rule.priority < 0:
        errors.append(
            ValidationError(
                code="NEGATIVE_PRIORITY",
                message="Priority must be a non-negative number",
                field="priority",
            )
        )

    if not rule.has_any_filter:
        errors.append(
            ValidationError(
                code="NO_FILTER",
                message=(
                    "At least one of document operation, business entity group "
                    "or item group must be specified"
                ),
            )
        )

    return _finish("tax_rule", errors)


def validate_group_membership(membership: GroupMembershipInfo) -> ValidationResult:
    errors: list[ValidationError] = []
    errors.extend(_required(membership.group_code, "group_code", "Group"))
    errors.extend(_required(membership.entity_code, "entity_code", "Entity"))
    return _finish("group_membership", errors)


# ---------------------------------------------------------------------------
# Master data
# ---------------------------------------------------------------------------


def validate_account(account: AccountInfo) -> ValidationResult:
    """
    Name and code are required; the code must be numeric and start with the
    digit assigned to its account type.  Settlement accounts may use any
    numeric code.
    """
    errors: list[ValidationError] = []
    errors.extend(_required(account.name, "name", "Account name"))
    errors.extend(_required(account.code, "code", "Account code"))

    code = (account.code or "").strip()
    if code:
        if not code.isdigit():
            errors.append(
                ValidationError(
                    code="NON_NUMERIC_CODE",
                    message="Account code must be numeric",
                    field="code",
                )
            )
        else:
            prefix = ACCOUNT_CODE_PREFIXES.get(account.account_type)
            if prefix is not None and not code.startswith(prefix):
                errors.append(
                    ValidationError(
                        code="ACCOUNT_CODE_PREFIX",
                        message=(
                            f"{account.account_type.value.capitalize()} account "
                            f"codes must start with {prefix}"
                        ),
                        field="code",
                        details={"expected_prefix": prefix},
                    )
                )

    return _finish("account", errors)


def validate_business_entity(entity: BusinessEntityInfo) -> ValidationResult:
    errors: list[ValidationError] = []
    errors.extend(_min_length(entity.code, MIN_CODE_LENGTH, "code", "Code"))
    errors.extend(_required(entity.name, "name", "Name"))
    if entity.email and not _EMAIL_RE.match(entity.email):
        errors.append(
            ValidationError(
                code="INVALID_EMAIL",
                message="Invalid email address",
                field="email",
            )
        )
    return _finish("business_entity", errors)


def validate_item(item: ItemInfo) -> ValidationResult:
    errors: list[ValidationError] = []
    errors.extend(_min_length(item.code, MIN_CODE_LENGTH, "code", "Code"))
    errors.extend(_required(item.description, "description", "Description"))
    errors.extend(_required(item.item_type, "item_type", "Type"))
    if item.base_price < 0:
        errors.append(
            ValidationError(
                code="NEGATIVE_AMOUNT",
                message="Base price must be non-negative",
                field="base_price",
            )
        )
    return _finish("item", errors)


# ---------------------------------------------------------------------------
# Fiscal periods
# ---------------------------------------------------------------------------


def periods_overlap(
    start_a: date, end_a: date, start_b: date, end_b: date
) -> bool:
    """Inclusive date ranges overlap when each starts before the other ends."""
    return start_a <= end_b and start_b <= end_a


def validate_fiscal_period(period: FiscalPeriodInfo) -> ValidationResult:
    """Field checks only; overlap with stored periods is the service's job."""
    errors: list[ValidationError] = []
    errors.extend(_required(period.code, "code", "Period code"))
    errors.extend(_required(period.name, "name", "Period name"))
    errors.extend(
        _max_length(period.name, PERIOD_NAME_MAX_LENGTH, "name", "Period name")
    )
    errors.extend(
        _max_length(
            period.description,
            PERIOD_DESCRIPTION_MAX_LENGTH,
            "description",
            "Description",
        )
    )

    if period.end_date < period.start_date:
        errors.append(
            ValidationError(
                code="END_BEFORE_START",
                message="End date must be on or after start date",
                field="end_date",
            )
        )
    elif (period.end_date - period.start_date).days > MAX_PERIOD_DAYS:
        errors.append(
            ValidationError(
                code="PERIOD_TOO_LONG",
                message=f"Fiscal period cannot exceed {MAX_PERIOD_DAYS} days",
                field="end_date",
                details={"days": (period.end_date - period.start_date).days},
            )
        )

    return _finish("fiscal_period", errors)
