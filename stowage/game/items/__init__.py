"""Item storage package.

This module exposes the pocket model: validated pocket templates and item
types, runtime items, pockets and the container trees that own them.
"""

from .constants import AcceptCode, Phase, PocketKind
from .container_tree import ContainerTree
from .item_factory import ItemFactory, ItemFactoryError
from .item_instance import AmbientConditions, Item
from .item_type_registry import ItemTypeRegistry, ItemTypeRegistryError
from .models import ItemType, PocketTemplate, load_pocket_templates
from .pocket import Pocket
from .results import ContainResult, MigrationRecord, SpilledItem
from .visitation import ContentLocation, EditPlan, VisitResponse

__all__ = [
    "AcceptCode",
    "AmbientConditions",
    "ContainResult",
    "ContainerTree",
    "ContentLocation",
    "EditPlan",
    "Item",
    "ItemFactory",
    "ItemFactoryError",
    "ItemType",
    "ItemTypeRegistry",
    "ItemTypeRegistryError",
    "MigrationRecord",
    "Phase",
    "Pocket",
    "PocketKind",
    "PocketTemplate",
    "SpilledItem",
    "VisitResponse",
    "load_pocket_templates",
]
