"""Service layer for items."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from erp_kernel.domain.dtos import ItemInfo
from erp_kernel.domain.validation import validate_item
from erp_kernel.exceptions import DuplicateCodeError, ItemNotFoundError
from erp_kernel.logging_config import get_logger
from erp_kernel.models.item import Item
from erp_kernel.services.base import BaseService

logger = get_logger("services.item")


class ItemService(BaseService[Item]):
    """CRUD for items.  Item codes are referenced by tax group memberships."""

    def _get_by_code(self, code: str) -> Item:
        item = self.session.execute(
            select(Item).where(Item.code == code)
        ).scalar_one_or_none()
        if item is None:
            raise ItemNotFoundError(code)
        return item

    def get_by_code(self, code: str) -> ItemInfo:
        return ItemInfo.from_model(self._get_by_code(code))

    def find_by_code(self, code: str) -> ItemInfo | None:
        item = self.session.execute(
            select(Item).where(Item.code == code)
        ).scalar_one_or_none()
        return ItemInfo.from_model(item) if item else None

    def list_items(
        self, item_type: str | None = None, active_only: bool = True
    ) -> list[ItemInfo]:
        stmt = select(Item)
        if item_type is not None:
            stmt = stmt.where(Item.item_type == item_type)
        if active_only:
            stmt = stmt.where(Item.is_active == True)  # noqa: E712
        stmt = stmt.order_by(Item.code)
        return [ItemInfo.from_model(i) for i in self.session.execute(stmt).scalars().all()]

    def create_item(self, item: ItemInfo, actor_id: UUID) -> ItemInfo:
        """
        Raises:
            ValidationFailedError: If code/description/type/price checks fail.
            DuplicateCodeError: If the code is taken.
        """
        self._require_valid("item", validate_item(item))
        if self.find_by_code(item.code) is not None:
            raise DuplicateCodeError("Item", item.code)

        model = Item(
            code=item.code,
            description=item.description,
            item_type=item.item_type,
            base_price=item.base_price,
            is_active=item.is_active,
            created_by_id=actor_id,
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "item_created",
            extra={"item_code": item.code, "actor_id": str(actor_id)},
        )
        return ItemInfo.from_model(model)

    def update_item(
        self,
        code: str,
        actor_id: UUID,
        description: str | None = None,
        item_type: str | None = None,
        base_price: Decimal | None = None,
    ) -> ItemInfo:
        model = self._get_by_code(code)
        changes = {
            k: v
            for k, v in (
                ("description", description),
                ("item_type", item_type),
                ("base_price", base_price),
            )
            if v is not None
        }
        self._require_valid(
            "item", validate_item(replace(ItemInfo.from_model(model), **changes))
        )
        for key, value in changes.items():
            setattr(model, key, value)
        model.updated_by_id = actor_id
        self.session.flush()
        return ItemInfo.from_model(model)

    def deactivate_item(self, code: str, actor_id: UUID) -> ItemInfo:
        model = self._get_by_code(code)
        model.is_active = False
        model.updated_by_id = actor_id
        self.session.flush()
        return ItemInfo.from_model(model)
