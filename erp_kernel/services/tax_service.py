"""
TaxCatalogService -- persistence of taxes, tax groups, memberships and rules.

Responsibility:
    CRUD over the tax catalog tables.  Inputs arrive as frozen DTOs, are
    checked with the pure validators in ``erp_kernel.domain.validation``,
    and are stored against their ORM models.  Everything returned is a DTO.

Architecture position:
    Kernel > Services -- imperative shell.  The evaluator never reads these
    tables directly; ReferenceDataLoader snapshots them into a TaxCatalog.

Invariants enforced:
    - Tax codes and group codes are unique.
    - Rule and membership group references must name an existing group.
    - Rules receive a monotonically increasing ``sequence``; list_rules()
      returns them in that order so equal priorities resolve the same way
      every time.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - ValidationFailedError on invalid tax / rule / membership fields.
    - DuplicateCodeError on a reused tax or group code, or a repeated
      membership.
    - TaxNotFoundError, TaxGroupNotFoundError, TaxRuleNotFoundError.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select

from erp_kernel.domain.dtos import (
    GroupMembershipInfo,
    GroupType,
    TaxAccountingInfo,
    TaxGroupInfo,
    TaxInfo,
    TaxRuleInfo,
)
from erp_kernel.domain.validation import (
    validate_group_membership,
    validate_tax,
    validate_tax_rule,
)
from erp_kernel.exceptions import (
    DuplicateCodeError,
    TaxGroupNotFoundError,
    TaxNotFoundError,
    TaxRuleNotFoundError,
)
from erp_kernel.logging_config import get_logger
from erp_kernel.models.tax import (
    GroupMembershipModel,
    TaxAccountingModel,
    TaxGroupModel,
    TaxModel,
    TaxRuleModel,
)
from erp_kernel.services.base import BaseService

logger = get_logger("services.tax_catalog")


class TaxCatalogService(BaseService[TaxModel]):
    """Service for maintaining the tax catalog."""

    # =========================================================================
    # Taxes
    # =========================================================================

    def _get_tax(self, code: str) -> TaxModel:
        tax = self.session.execute(
            select(TaxModel).where(TaxModel.code == code)
        ).scalar_one_or_none()
        if tax is None:
            raise TaxNotFoundError(code)
        return tax

    def get_tax(self, code: str) -> TaxInfo:
        return TaxInfo.from_model(self._get_tax(code))

    def find_tax(self, code: str) -> TaxInfo | None:
        tax = self.session.execute(
            select(TaxModel).where(TaxModel.code == code)
        ).scalar_one_or_none()
        return TaxInfo.from_model(tax) if tax else None

    def list_taxes(self, enabled_only: bool = False) -> list[TaxInfo]:
        """Taxes in catalog order (by code)."""
        stmt = select(TaxModel)
        if enabled_only:
            stmt = stmt.where(TaxModel.is_enabled == True)  # noqa: E712
        stmt = stmt.order_by(TaxModel.code)
        return [TaxInfo.from_model(t) for t in self.session.execute(stmt).scalars().all()]

    def create_tax(self, tax: TaxInfo, actor_id: UUID) -> TaxInfo:
        """
        Raises:
            ValidationFailedError: If code/name/rate checks fail.
            DuplicateCodeError: If the code is taken.
        """
        self._require_valid("tax", validate_tax(tax))
        if self.find_tax(tax.code) is not None:
            raise DuplicateCodeError("Tax", tax.code)

        model = TaxModel(
            code=tax.code,
            name=tax.name,
            kind=tax.kind.value,
            application_level=tax.application_level.value,
            amount=tax.amount,
            percentage=tax.percentage,
            is_enabled=tax.is_enabled,
            is_included_in_price=tax.is_included_in_price,
            created_by_id=actor_id,
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "tax_created",
            extra={
                "tax_code": tax.code,
                "kind": tax.kind.value,
                "application_level": tax.application_level.value,
                "actor_id": str(actor_id),
            },
        )
        return TaxInfo.from_model(model)

    def update_tax(self, tax: TaxInfo, actor_id: UUID) -> TaxInfo:
        """
        Replace every mutable attribute of the tax with ``tax``'s values.
        The code identifies the tax and cannot change.
        """
        self._require_valid("tax", validate_tax(tax))
        model = self._get_tax(tax.code)

        model.name = tax.name
        model.kind = tax.kind.value
        model.application_level = tax.application_level.value
        model.amount = tax.amount
        model.percentage = tax.percentage
        model.is_enabled = tax.is_enabled
        model.is_included_in_price = tax.is_included_in_price
        model.updated_by_id = actor_id
        self.session.flush()

        logger.info("tax_updated", extra={"tax_code": tax.code, "actor_id": str(actor_id)})
        return TaxInfo.from_model(model)

    def _set_tax_enabled(self, code: str, enabled: bool, actor_id: UUID) -> TaxInfo:
        model = self._get_tax(code)
        model.is_enabled = enabled
        model.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "tax_enabled" if enabled else "tax_disabled",
            extra={"tax_code": code, "actor_id": str(actor_id)},
        )
        return TaxInfo.from_model(model)

    def enable_tax(self, code: str, actor_id: UUID) -> TaxInfo:
        return self._set_tax_enabled(code, True, actor_id)

    def disable_tax(self, code: str, actor_id: UUID) -> TaxInfo:
        """A disabled tax is never applied, whatever its rules decide."""
        return self._set_tax_enabled(code, False, actor_id)

    # =========================================================================
    # Groups and memberships
    # =========================================================================

    def _get_group(self, code: str) -> TaxGroupModel:
        group = self.session.execute(
            select(TaxGroupModel).where(TaxGroupModel.code == code)
        ).scalar_one_or_none()
        if group is None:
            raise TaxGroupNotFoundError(code)
        return group

    def get_group(self, code: str) -> TaxGroupInfo:
        return TaxGroupInfo.from_model(self._get_group(code))

    def list_groups(self) -> list[TaxGroupInfo]:
        stmt = select(TaxGroupModel).order_by(TaxGroupModel.code)
        return [TaxGroupInfo.from_model(g) for g in self.session.execute(stmt).scalars().all()]

    def create_group(self, group: TaxGroupInfo, actor_id: UUID) -> TaxGroupInfo:
        exists = self.session.execute(
            select(TaxGroupModel.id).where(TaxGroupModel.code == group.code)
        ).first()
        if exists is not None:
            raise DuplicateCodeError("TaxGroup", group.code)

        model = TaxGroupModel(
            code=group.code,
            name=group.name,
            description=group.description or None,
            is_enabled=group.is_enabled,
            created_by_id=actor_id,
        )
        self.session.add(model)
        self.session.flush()
        logger.info("tax_group_created", extra={"group_code": group.code})
        return TaxGroupInfo.from_model(model)

    def _find_membership(
        self, group: TaxGroupModel, entity_code: str, group_type: GroupType
    ) -> GroupMembershipModel | None:
        return self.session.execute(
            select(GroupMembershipModel).where(
                GroupMembershipModel.group_id == group.id,
                GroupMembershipModel.entity_code == entity_code,
                GroupMembershipModel.group_type == GroupType(group_type).value,
            )
        ).scalar_one_or_none()

    def add_member(
        self,
        group_code: str,
        entity_code: str,
        group_type: GroupType,
        actor_id: UUID,
    ) -> GroupMembershipInfo:
        """
        Put an entity (business entity or item code) into a group.

        Raises:
            ValidationFailedError: If group or entity code is blank.
            TaxGroupNotFoundError: If the group doesn't exist.
            DuplicateCodeError: If the membership already exists.
        """
        group_type = GroupType(group_type)
        candidate = GroupMembershipInfo(
            group_code=group_code, entity_code=entity_code, group_type=group_type
        )
        self._require_valid("group_membership", validate_group_membership(candidate))

        group = self._get_group(group_code)
        if self._find_membership(group, entity_code, group_type) is not None:
            raise DuplicateCodeError("GroupMembership", f"{group_code}/{entity_code}")

        model = GroupMembershipModel(
            group=group,
            entity_code=entity_code,
            group_type=group_type.value,
            created_by_id=actor_id,
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "group_member_added",
            extra={
                "group_code": group_code,
                "entity_code": entity_code,
                "group_type": group_type.value,
            },
        )
        return GroupMembershipInfo.from_model(model)

    def remove_member(
        self, group_code: str, entity_code: str, group_type: GroupType
    ) -> bool:
        """Remove a membership.  Returns False when there was none."""
        group = self._get_group(group_code)
        model = self._find_membership(group, entity_code, group_type)
        if model is None:
            return False
        group.memberships.remove(model)
        self.session.flush()
        logger.info(
            "group_member_removed",
            extra={"group_code": group_code, "entity_code": entity_code},
        )
        return True

    def list_memberships(self, group_code: str | None = None) -> list[GroupMembershipInfo]:
        stmt = select(GroupMembershipModel).join(GroupMembershipModel.group)
        if group_code is not None:
            stmt = stmt.where(TaxGroupModel.code == group_code)
        stmt = stmt.order_by(TaxGroupModel.code, GroupMembershipModel.entity_code)
        return [
            GroupMembershipInfo.from_model(m)
            for m in self.session.execute(stmt).scalars().all()
        ]

    def groups_for_entity(self, entity_code: str, group_type: GroupType) -> list[str]:
        """Codes of the groups ``entity_code`` belongs to, sorted."""
        stmt = (
            select(TaxGroupModel.code)
            .join(GroupMembershipModel, GroupMembershipModel.group_id == TaxGroupModel.id)
            .where(
                GroupMembershipModel.entity_code == entity_code,
                GroupMembershipModel.group_type == GroupType(group_type).value,
            )
            .order_by(TaxGroupModel.code)
        )
        return list(self.session.execute(stmt).scalars().all())

    # =========================================================================
    # Rules
    # =========================================================================

    def _get_rule(self, rule_id: UUID) -> TaxRuleModel:
        rule = self.session.get(TaxRuleModel, rule_id)
        if rule is None:
            raise TaxRuleNotFoundError(str(rule_id))
        return rule

    def _next_rule_sequence(self) -> int:
        current = self.session.execute(select(func.max(TaxRuleModel.sequence))).scalar()
        return (current or 0) + 1

    def create_rule(self, rule: TaxRuleInfo, actor_id: UUID) -> TaxRuleInfo:
        """
        Store a tax rule at the end of the rule order.

        Raises:
            ValidationFailedError: If the rule has no tax, a negative
                priority or no filter.
            TaxNotFoundError / TaxGroupNotFoundError: Unknown references.
        """
        self._require_valid("tax_rule", validate_tax_rule(rule))

        model = TaxRuleModel(
            tax=self._get_tax(rule.tax_code),
            document_operation=rule.document_operation,
            business_entity_group=(
                self._get_group(rule.business_entity_group)
                if rule.business_entity_group is not None
                else None
            ),
            item_group=(
                self._get_group(rule.item_group) if rule.item_group is not None else None
            ),
            priority=rule.priority,
            is_enabled=rule.is_enabled,
            sequence=self._next_rule_sequence(),
            created_by_id=actor_id,
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "tax_rule_created",
            extra={
                "tax_code": rule.tax_code,
                "document_operation": rule.document_operation,
                "business_entity_group": rule.business_entity_group,
                "item_group": rule.item_group,
                "priority": rule.priority,
                "decision": rule.is_enabled,
            },
        )
        return TaxRuleInfo.from_model(model)

    def list_rules(self, tax_code: str | None = None) -> list[TaxRuleInfo]:
        """Rules in insertion order."""
        stmt = select(TaxRuleModel)
        if tax_code is not None:
            stmt = stmt.join(TaxRuleModel.tax).where(TaxModel.code == tax_code)
        stmt = stmt.order_by(TaxRuleModel.sequence)
        return [
            TaxRuleInfo.from_model(r)
            for r in self.session.execute(stmt).unique().scalars().all()
        ]

    def set_rule_enabled(self, rule_id: UUID, enabled: bool, actor_id: UUID) -> TaxRuleInfo:
        model = self._get_rule(rule_id)
        model.is_enabled = enabled
        model.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "tax_rule_updated",
            extra={"rule_id": str(rule_id), "decision": enabled},
        )
        return TaxRuleInfo.from_model(model)

    def delete_rule(self, rule_id: UUID) -> None:
        model = self._get_rule(rule_id)
        self.session.delete(model)
        self.session.flush()
        logger.info("tax_rule_deleted", extra={"rule_id": str(rule_id)})

    # =========================================================================
    # Accounting profiles
    # =========================================================================

    def set_accounting_profile(
        self, profile: TaxAccountingInfo, actor_id: UUID
    ) -> TaxAccountingInfo:
        """Create or replace the profile for (operation, tax)."""
        tax = self._get_tax(profile.tax_code)
        model = self.session.execute(
            select(TaxAccountingModel).where(
                TaxAccountingModel.document_operation == profile.document_operation,
                TaxAccountingModel.tax_id == tax.id,
            )
        ).scalar_one_or_none()

        if model is None:
            model = TaxAccountingModel(
                document_operation=profile.document_operation,
                tax=tax,
                created_by_id=actor_id,
            )
            self.session.add(model)
        else:
            model.updated_by_id = actor_id

        model.debit_account_code = profile.debit_account_code
        model.credit_account_code = profile.credit_account_code
        model.include_in_transaction = profile.include_in_transaction
        self.session.flush()
        return TaxAccountingInfo.from_model(model)

    def list_accounting_profiles(self) -> list[TaxAccountingInfo]:
        stmt = (
            select(TaxAccountingModel)
            .join(TaxAccountingModel.tax)
            .order_by(TaxAccountingModel.document_operation, TaxModel.code)
        )
        return [
            TaxAccountingInfo.from_model(p)
            for p in self.session.execute(stmt).unique().scalars().all()
        ]
