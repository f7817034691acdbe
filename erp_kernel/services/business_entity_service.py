"""
Service layer for business entities (customers, suppliers).

Returns BusinessEntityInfo DTOs.  Tax group memberships refer to entities
by code, so codes cannot change after creation.
"""

from __future__ import annotations

from dataclasses import replace
from uuid import UUID

from sqlalchemy import select

from erp_kernel.domain.dtos import BusinessEntityInfo
from erp_kernel.domain.validation import validate_business_entity
from erp_kernel.exceptions import BusinessEntityNotFoundError, DuplicateCodeError
from erp_kernel.logging_config import get_logger
from erp_kernel.models.business_entity import BusinessEntity
from erp_kernel.services.base import BaseService

logger = get_logger("services.business_entity")

_UPDATABLE_FIELDS = (
    "name",
    "address",
    "city",
    "state",
    "zip_code",
    "country",
    "phone_number",
    "email",
)


class BusinessEntityService(BaseService[BusinessEntity]):
    """CRUD for business entities."""

    def _get_by_code(self, code: str) -> BusinessEntity:
        entity = self.session.execute(
            select(BusinessEntity).where(BusinessEntity.code == code)
        ).scalar_one_or_none()
        if entity is None:
            raise BusinessEntityNotFoundError(code)
        return entity

    def get_by_code(self, code: str) -> BusinessEntityInfo:
        """
        Raises:
            BusinessEntityNotFoundError: If the entity doesn't exist.
        """
        return BusinessEntityInfo.from_model(self._get_by_code(code))

    def find_by_code(self, code: str) -> BusinessEntityInfo | None:
        entity = self.session.execute(
            select(BusinessEntity).where(BusinessEntity.code == code)
        ).scalar_one_or_none()
        return BusinessEntityInfo.from_model(entity) if entity else None

    def list_entities(self, active_only: bool = True) -> list[BusinessEntityInfo]:
        stmt = select(BusinessEntity)
        if active_only:
            stmt = stmt.where(BusinessEntity.is_active == True)  # noqa: E712
        stmt = stmt.order_by(BusinessEntity.code)
        return [
            BusinessEntityInfo.from_model(e)
            for e in self.session.execute(stmt).scalars().all()
        ]

    def create_entity(self, entity: BusinessEntityInfo, actor_id: UUID) -> BusinessEntityInfo:
        """
        Create a business entity from a DTO.

        Raises:
            ValidationFailedError: If code/name/email checks fail.
            DuplicateCodeError: If the code is taken.
        """
        self._require_valid("business_entity", validate_business_entity(entity))
        if self.find_by_code(entity.code) is not None:
            raise DuplicateCodeError("BusinessEntity", entity.code)

        model = BusinessEntity(
            code=entity.code,
            name=entity.name,
            address=entity.address or None,
            city=entity.city or None,
            state=entity.state or None,
            zip_code=entity.zip_code or None,
            country=entity.country or None,
            phone_number=entity.phone_number,
            email=entity.email,
            is_active=entity.is_active,
            created_by_id=actor_id,
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "business_entity_created",
            extra={"entity_code": entity.code, "actor_id": str(actor_id)},
        )
        return BusinessEntityInfo.from_model(model)

    def update_entity(self, code: str, actor_id: UUID, /, **changes) -> BusinessEntityInfo:
        """
        Update contact details.  Only name and address/contact fields may
        change; None values are ignored.
        """
        unknown = set(changes) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        model = self._get_by_code(code)
        changes = {k: v for k, v in changes.items() if v is not None}
        updated = replace(BusinessEntityInfo.from_model(model), **changes)
        self._require_valid("business_entity", validate_business_entity(updated))

        for key, value in changes.items():
            setattr(model, key, value)
        model.updated_by_id = actor_id
        self.session.flush()
        return BusinessEntityInfo.from_model(model)

    def deactivate_entity(self, code: str, actor_id: UUID) -> BusinessEntityInfo:
        model = self._get_by_code(code)
        model.is_active = False
        model.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "business_entity_deactivated",
            extra={"entity_code": code, "actor_id": str(actor_id)},
        )
        return BusinessEntityInfo.from_model(model)
