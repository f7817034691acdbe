"""
Service layer for the chart of accounts.

Returns AccountInfo DTOs instead of ORM entities.  Account codes are
validated against their type prefix before insert.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from erp_kernel.domain.dtos import AccountInfo, AccountType
from erp_kernel.domain.validation import validate_account
from erp_kernel.exceptions import AccountNotFoundError, DuplicateCodeError
from erp_kernel.logging_config import get_logger
from erp_kernel.models.account import Account
from erp_kernel.services.base import BaseService

logger = get_logger("services.account")


class AccountService(BaseService[Account]):
    """
    Service for managing accounts.

    Archiving hides an account from new transactions but keeps its history;
    accounts are never deleted.
    """

    def _get_by_code(self, code: str) -> Account:
        """Get account by code, raising if not found."""
        account = self.session.execute(
            select(Account).where(Account.code == code)
        ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(code)
        return account

    def get_by_code(self, code: str) -> AccountInfo:
        """
        Get account by code.

        Raises:
            AccountNotFoundError: If account doesn't exist.
        """
        return AccountInfo.from_model(self._get_by_code(code))

    def find_by_code(self, code: str) -> AccountInfo | None:
        account = self.session.execute(
            select(Account).where(Account.code == code)
        ).scalar_one_or_none()
        return AccountInfo.from_model(account) if account else None

    def list_accounts(
        self,
        account_type: AccountType | None = None,
        include_archived: bool = False,
    ) -> list[AccountInfo]:
        """
        List accounts ordered by code.

        Args:
            account_type: Restrict to one account type.
            include_archived: If False, archived accounts are skipped.
        """
        stmt = select(Account)
        if account_type is not None:
            stmt = stmt.where(Account.account_type == AccountType(account_type).value)
        if not include_archived:
            stmt = stmt.where(Account.is_archived == False)  # noqa: E712
        stmt = stmt.order_by(Account.code)

        accounts = self.session.execute(stmt).scalars().all()
        return [AccountInfo.from_model(a) for a in accounts]

    def children_of(self, parent_code: str) -> list[AccountInfo]:
        stmt = (
            select(Account)
            .where(Account.parent_code == parent_code)
            .order_by(Account.code)
        )
        return [AccountInfo.from_model(a) for a in self.session.execute(stmt).scalars()]

    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType,
        actor_id: UUID,
        parent_code: str | None = None,
    ) -> AccountInfo:
        """
        Create a new account.

        Raises:
            ValidationFailedError: If name/code/prefix checks fail.
            DuplicateCodeError: If the code is taken.
            AccountNotFoundError: If parent_code names no account.
        """
        account_type = AccountType(account_type)
        candidate = AccountInfo(
            code=code, name=name, account_type=account_type, parent_code=parent_code
        )
        self._require_valid("account", validate_account(candidate))

        if self.find_by_code(code) is not None:
            raise DuplicateCodeError("Account", code)
        if parent_code is not None:
            self._get_by_code(parent_code)

        account = Account(
            code=code,
            name=name,
            account_type=account_type.value,
            parent_code=parent_code,
            created_by_id=actor_id,
        )
        self.session.add(account)
        self.session.flush()

        logger.info(
            "account_created",
            extra={
                "account_code": code,
                "account_type": account_type.value,
                "actor_id": str(actor_id),
            },
        )
        return AccountInfo.from_model(account)

    def rename_account(self, code: str, name: str, actor_id: UUID) -> AccountInfo:
        account = self._get_by_code(code)
        candidate = AccountInfo.from_model(account)
        self._require_valid(
            "account",
            validate_account(
                AccountInfo(
                    code=candidate.code,
                    name=name,
                    account_type=candidate.account_type,
                )
            ),
        )
        account.name = name
        account.updated_by_id = actor_id
        self.session.flush()
        return AccountInfo.from_model(account)

    def archive_account(self, code: str, actor_id: UUID) -> AccountInfo:
        """Archive an account so it accepts no new ledger entries."""
        account = self._get_by_code(code)
        account.is_archived = True
        account.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "account_archived",
            extra={"account_code": code, "actor_id": str(actor_id)},
        )
        return AccountInfo.from_model(account)

    def restore_account(self, code: str, actor_id: UUID) -> AccountInfo:
        account = self._get_by_code(code)
        account.is_archived = False
        account.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "account_restored",
            extra={"account_code": code, "actor_id": str(actor_id)},
        )
        return AccountInfo.from_model(account)
