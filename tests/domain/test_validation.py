"""Tests for the pure field validators in erp_kernel.domain.validation."""

from datetime import date
from decimal import Decimal

import pytest

from erp_kernel.domain.dtos import (
    AccountInfo,
    AccountType,
    FiscalPeriodInfo,
    GroupMembershipInfo,
    GroupType,
    TaxInfo,
    TaxKind,
    TaxRuleInfo,
    ValidationResult,
)
from erp_kernel.domain.validation import (
    MAX_PERIOD_DAYS,
    TAX_CODE_MAX_LENGTH,
    periods_overlap,
    validate_account,
    validate_fiscal_period,
    validate_group_membership,
    validate_tax,
    validate_tax_rule,
)


class TestValidationResult:
    def test_success_is_truthy(self):
        assert ValidationResult.success()
        assert ValidationResult.from_errors([]).is_valid

    def test_failure_is_falsy(self):
        result = validate_tax(TaxInfo(code="", name=""))
        assert not result
        assert result.error_codes == ("REQUIRED", "REQUIRED")


class TestTaxValidation:
    def test_valid_percentage_tax(self):
        assert validate_tax(TaxInfo(code="VAT", name="VAT", percentage=Decimal("100")))

    def test_code_too_long(self):
        result = validate_tax(TaxInfo(code="X" * (TAX_CODE_MAX_LENGTH + 1), name="Long"))
        assert result.error_codes == ("TOO_LONG",)
        assert result.errors[0].details["max_length"] == TAX_CODE_MAX_LENGTH

    @pytest.mark.parametrize("percentage", ["-0.01", "100.01"])
    def test_percentage_range(self, percentage):
        result = validate_tax(TaxInfo(code="T", name="T", percentage=Decimal(percentage)))
        assert result.error_codes == ("PERCENTAGE_OUT_OF_RANGE",)

    def test_amount_ignored_for_percentage_kind(self):
        assert validate_tax(TaxInfo(code="T", name="T", amount=Decimal("-5")))

    def test_percentage_ignored_for_amount_kinds(self):
        tax = TaxInfo(code="T", name="T", kind=TaxKind.FIXED_AMOUNT, percentage=Decimal("500"))
        assert validate_tax(tax)


class TestTaxRuleValidation:
    @pytest.mark.parametrize(
        "filters",
        [
            {"document_operation": "SalesInvoice"},
            {"business_entity_group": "EU"},
            {"item_group": "FOOD"},
        ],
    )
    def test_any_single_filter_is_enough(self, filters):
        assert validate_tax_rule(TaxRuleInfo(tax_code="VAT", **filters))

    def test_all_errors_reported(self):
        result = validate_tax_rule(TaxRuleInfo(tax_code=" ", priority=-1))
        assert result.error_codes == ("REQUIRED", "NEGATIVE_PRIORITY", "NO_FILTER")

    def test_blank_filters_count_as_unset(self):
        rule = TaxRuleInfo(tax_code="VAT", document_operation="", business_entity_group=" ", item_group="")
        assert validate_tax_rule(rule).error_codes == ("NO_FILTER",)

    def test_zero_priority_allowed(self):
        assert validate_tax_rule(TaxRuleInfo(tax_code="VAT", item_group="G", priority=0))


class TestMembershipValidation:
    def test_blank_codes(self):
        result = validate_group_membership(
            GroupMembershipInfo(group_code="", entity_code="", group_type=GroupType.ITEM)
        )
        assert [e.field for e in result.errors] == ["group_code", "entity_code"]


class TestAccountValidation:
    @pytest.mark.parametrize(
        "account_type, code",
        [
            (AccountType.ASSET, "1000"),
            (AccountType.LIABILITY, "2100"),
            (AccountType.EQUITY, "3000"),
            (AccountType.REVENUE, "4000"),
            (AccountType.EXPENSE, "6100"),
            (AccountType.SETTLEMENT, "5000"),
        ],
    )
    def test_prefixes(self, account_type, code):
        assert validate_account(AccountInfo(code=code, name="A", account_type=account_type))

    def test_wrong_prefix_details(self):
        result = validate_account(AccountInfo(code="4000", name="A", account_type=AccountType.ASSET))
        assert result.errors[0].details == {"expected_prefix": "1"}


class TestFiscalPeriodValidation:
    def test_single_day_period(self):
        period = FiscalPeriodInfo(
            code="D", name="Day", start_date=date(2024, 1, 1), end_date=date(2024, 1, 1)
        )
        assert validate_fiscal_period(period)

    def test_too_long(self):
        start = date(2024, 1, 1)
        period = FiscalPeriodInfo(
            code="L",
            name="Long",
            start_date=start,
            end_date=date.fromordinal(start.toordinal() + MAX_PERIOD_DAYS + 1),
        )
        assert validate_fiscal_period(period).error_codes == ("PERIOD_TOO_LONG",)

    def test_description_limit(self):
        period = FiscalPeriodInfo(
            code="P",
            name="P",
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 31),
            description="x" * 501,
        )
        assert validate_fiscal_period(period).error_codes == ("TOO_LONG",)

    @pytest.mark.parametrize(
        "a, b, expected",
        [
            ((date(2024, 1, 1), date(2024, 1, 31)), (date(2024, 1, 31), date(2024, 2, 28)), True),
            ((date(2024, 1, 1), date(2024, 1, 31)), (date(2024, 2, 1), date(2024, 2, 28)), False),
            ((date(2024, 1, 1), date(2024, 12, 31)), (date(2024, 6, 1), date(2024, 6, 30)), True),
        ],
    )
    def test_periods_overlap(self, a, b, expected):
        assert periods_overlap(*a, *b) is expected
        assert periods_overlap(*b, *a) is expected
