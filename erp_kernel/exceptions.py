"""
Typed Exception Hierarchy for the ERP Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers must be able to react to a failure without parsing its message:
  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        transactions.post_transaction("TX-0001")
    except ClosedPeriodError as e:
        api_response(code=e.code, period=e.period_code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ErpKernelError:

    ErpKernelError (base)
    |
    +-- InvalidArgumentError
    +-- ValidationFailedError
    +-- DuplicateCodeError
    +-- ConfigError
    |
    +-- NotFoundError
    |   +-- AccountNotFoundError
    |   +-- PeriodNotFoundError
    |   +-- BusinessEntityNotFoundError
    |   +-- ItemNotFoundError
    |   +-- TaxNotFoundError
    |   +-- TaxGroupNotFoundError
    |   +-- TaxRuleNotFoundError
    |   +-- TransactionNotFoundError
    |
    +-- PeriodError
    |   +-- ClosedPeriodError
    |   +-- PeriodAlreadyClosedError
    |   +-- PeriodNotClosedError
    |   +-- PeriodOverlapError
    |
    +-- AccountError
    |   +-- AccountArchivedError
    |
    +-- TransactionError
        +-- UnbalancedTransactionError
        +-- TransactionAlreadyPostedError
        +-- TransactionNotPostedError
        +-- DocumentNotPostableError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
General         | INVALID_ARGUMENT            | Required document/line reference is None
                | VALIDATION_FAILED           | Field validation rejected an input
                | DUPLICATE_CODE              | Business code already in use
                | CONFIG_ERROR                | Malformed YAML / CSV catalog content
----------------|-----------------------------|-----------------------------------------
Lookup          | ACCOUNT_NOT_FOUND           | Account code doesn't exist
                | PERIOD_NOT_FOUND            | No period with code / covering date
                | BUSINESS_ENTITY_NOT_FOUND   | Business entity code doesn't exist
                | ITEM_NOT_FOUND              | Item code doesn't exist
                | TAX_NOT_FOUND               | Tax code doesn't exist
                | TAX_GROUP_NOT_FOUND         | Tax group code doesn't exist
                | TAX_RULE_NOT_FOUND          | Tax rule id doesn't exist
                | TRANSACTION_NOT_FOUND       | Transaction number doesn't exist
----------------|-----------------------------|-----------------------------------------
Period          | CLOSED_PERIOD               | Posting to a closed period
                | PERIOD_ALREADY_CLOSED       | Closing a closed period
                | PERIOD_NOT_CLOSED           | Reopening an open period
                | PERIOD_OVERLAP              | Date range conflicts
----------------|-----------------------------|-----------------------------------------
Account         | ACCOUNT_ARCHIVED            | Transacting against an archived account
----------------|-----------------------------|-----------------------------------------
Transaction     | UNBALANCED_TRANSACTION      | Debits != Credits
                | TRANSACTION_ALREADY_POSTED  | Posting / editing a posted transaction
                | TRANSACTION_NOT_POSTED      | Unposting a draft transaction
                | DOCUMENT_NOT_POSTABLE       | Taxed document cannot form a transaction

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Inherit from Exception, not ValueError: domain errors are catchable as a
   group and stay distinct from programming errors.

2. `code` is a class attribute: static per type, available without
   instantiation.

3. All context is stored as attributes so that the structured log formatter
   can serialize it (see logging_config.StructuredFormatter).
"""


class ErpKernelError(Exception):
    """
    Base exception for all ERP kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "ERP_KERNEL_ERROR"


class InvalidArgumentError(ErpKernelError):
    """A required argument was None."""

    code: str = "INVALID_ARGUMENT"

    def __init__(self, argument: str, operation: str = ""):
        self.argument = argument
        self.operation = operation
        where = f" in {operation}" if operation else ""
        super().__init__(f"Argument '{argument}' must not be None{where}")


class ValidationFailedError(ErpKernelError):
    """Field validation rejected the input.

    Carries the full ValidationResult so callers can report every failing
    field at once.
    """

    code: str = "VALIDATION_FAILED"

    def __init__(self, entity: str, result):
        self.entity = entity
        self.result = result
        self.error_codes = [e.code for e in result.errors]
        messages = "; ".join(e.message for e in result.errors)
        super().__init__(f"Invalid {entity}: {messages}")


class DuplicateCodeError(ErpKernelError):
    """A record with the same business code already exists."""

    code: str = "DUPLICATE_CODE"

    def __init__(self, entity: str, record_code: str):
        self.entity = entity
        self.record_code = record_code
        super().__init__(f"{entity} with code {record_code} already exists")


class ConfigError(ErpKernelError):
    """Configuration content could not be parsed."""

    code: str = "CONFIG_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid configuration in {source}: {reason}")


# Lookup exceptions


class NotFoundError(ErpKernelError):
    """Base exception for lookups that matched nothing."""

    code: str = "NOT_FOUND"


class AccountNotFoundError(NotFoundError):
    """Account was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account not found: {account_code}")


class PeriodNotFoundError(NotFoundError):
    """No period found for the given code or date."""

    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"No fiscal period found for: {reference}")


class BusinessEntityNotFoundError(NotFoundError):
    """Business entity was not found."""

    code: str = "BUSINESS_ENTITY_NOT_FOUND"

    def __init__(self, entity_code: str):
        self.entity_code = entity_code
        super().__init__(f"Business entity not found: {entity_code}")


class ItemNotFoundError(NotFoundError):
    """Item was not found."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_code: str):
        self.item_code = item_code
        super().__init__(f"Item not found: {item_code}")


class TaxNotFoundError(NotFoundError):
    """Tax was not found."""

    code: str = "TAX_NOT_FOUND"

    def __init__(self, tax_code: str):
        self.tax_code = tax_code
        super().__init__(f"Tax not found: {tax_code}")


class TaxGroupNotFoundError(NotFoundError):
    """Tax group was not found."""

    code: str = "TAX_GROUP_NOT_FOUND"

    def __init__(self, group_code: str):
        self.group_code = group_code
        super().__init__(f"Tax group not found: {group_code}")


class TaxRuleNotFoundError(NotFoundError):
    """Tax rule was not found."""

    code: str = "TAX_RULE_NOT_FOUND"

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(f"Tax rule not found: {rule_id}")


class TransactionNotFoundError(NotFoundError):
    """Transaction was not found."""

    code: str = "TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_number: str):
        self.transaction_number = transaction_number
        super().__init__(f"Transaction not found: {transaction_number}")


# Period-related exceptions


class PeriodError(ErpKernelError):
    """Base exception for period-related errors."""

    code: str = "PERIOD_ERROR"


class ClosedPeriodError(PeriodError):
    """Attempted to post to a closed period."""

    code: str = "CLOSED_PERIOD"

    def __init__(self, period_code: str, effective_date: str):
        self.period_code = period_code
        self.effective_date = effective_date
        super().__init__(
            f"Cannot post to closed period {period_code} "
            f"(effective_date: {effective_date})"
        )


class PeriodAlreadyClosedError(PeriodError):
    """Period is already closed."""

    code: str = "PERIOD_ALREADY_CLOSED"

    def __init__(self, period_code: str):
        self.period_code = period_code
        super().__init__(f"Period {period_code} is already closed")


class PeriodNotClosedError(PeriodError):
    """Period is open and cannot be reopened."""

    code: str = "PERIOD_NOT_CLOSED"

    def __init__(self, period_code: str):
        self.period_code = period_code
        super().__init__(f"Period {period_code} is not closed")


class PeriodOverlapError(PeriodError):
    """New period date range overlaps with an existing period."""

    code: str = "PERIOD_OVERLAP"

    def __init__(
        self,
        new_period_code: str,
        existing_period_code: str,
        overlap_start: str,
        overlap_end: str,
    ):
        self.new_period_code = new_period_code
        self.existing_period_code = existing_period_code
        self.overlap_start = overlap_start
        self.overlap_end = overlap_end
        super().__init__(
            f"Period {new_period_code} overlaps with {existing_period_code} "
            f"({overlap_start} to {overlap_end})"
        )


# Account-related exceptions


class AccountError(ErpKernelError):
    """Base exception for account-related errors."""

    code: str = "ACCOUNT_ERROR"


class AccountArchivedError(AccountError):
    """Account is archived and cannot receive entries."""

    code: str = "ACCOUNT_ARCHIVED"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account is archived: {account_code}")


# Transaction-related exceptions


class TransactionError(ErpKernelError):
    """Base exception for ledger transaction errors."""

    code: str = "TRANSACTION_ERROR"


class UnbalancedTransactionError(TransactionError):
    """Debits do not equal credits."""

    code: str = "UNBALANCED_TRANSACTION"

    def __init__(self, debits: str, credits: str):
        self.debits = debits
        self.credits = credits
        super().__init__(
            f"Transaction is unbalanced: debits={debits}, credits={credits}"
        )


class TransactionAlreadyPostedError(TransactionError):
    """Transaction is already posted."""

    code: str = "TRANSACTION_ALREADY_POSTED"

    def __init__(self, transaction_number: str):
        self.transaction_number = transaction_number
        super().__init__(f"Transaction {transaction_number} is already posted")


class TransactionNotPostedError(TransactionError):
    """Transaction has not been posted."""

    code: str = "TRANSACTION_NOT_POSTED"

    def __init__(self, transaction_number: str):
        self.transaction_number = transaction_number
        super().__init__(f"Transaction {transaction_number} is not posted")


class DocumentNotPostableError(TransactionError):
    """A taxed document cannot be turned into a ledger transaction."""

    code: str = "DOCUMENT_NOT_POSTABLE"

    def __init__(self, document_number: str, reason: str):
        self.document_number = document_number
        self.reason = reason
        super().__init__(f"Document {document_number} cannot be posted: {reason}")
