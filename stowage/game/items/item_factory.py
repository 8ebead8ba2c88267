"""Item factory for creating runtime items from registered item types."""

from __future__ import annotations

from stowage.game.items.item_instance import Item
from stowage.game.items.item_type_registry import ItemTypeRegistry, ItemTypeRegistryError
from stowage.structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class ItemFactoryError(Exception):
    """Raised when the factory cannot produce a valid item."""


class ItemFactory:  # pylint: disable=too-few-public-methods  # Reason: Factory class with focused responsibility, minimal public interface
    """Factory responsible for instantiating runtime items."""

    def __init__(self, registry: ItemTypeRegistry):
        self._registry = registry

    def create_item(
        self,
        type_id: str,
        *,
        charges: int | None = None,
        variables: dict[str, str] | None = None,
        temperature: float | None = None,
    ) -> Item:
        """Create an item of the given type.

        Args:
            type_id: Registered item type id
            charges: Starting charges; only valid for charge-counted types
            variables: Stack-relevant item variables
            temperature: Starting temperature (ambient when omitted)

        Raises:
            ItemFactoryError: If the type is unknown or the charges are invalid
        """
        try:
            item_type = self._registry.get(type_id)
        except ItemTypeRegistryError as exc:
            logger.error("Item factory failed item type lookup", type_id=type_id, error=str(exc))
            raise ItemFactoryError(f"Item type '{type_id}' not found.") from exc

        if charges is not None:
            if not item_type.count_by_charges:
                raise ItemFactoryError(f"Item type '{type_id}' is not counted by charges.")
            if charges <= 0:
                raise ItemFactoryError("Charges must be a positive integer.")

        item = Item(item_type, charges=charges, variables=variables, temperature=temperature)
        logger.debug(
            "Item created",
            item_instance_id=item.item_instance_id,
            type_id=type_id,
            charges=item.charges,
        )
        return item
