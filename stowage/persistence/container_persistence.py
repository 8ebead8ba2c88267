"""
Container persistence: nested items to and from plain documents.

The document shape is intentionally plain JSON-compatible data so a host can
store it wherever it likes:

    tree    = {"pockets": [pocket, ...]}
    pocket  = {"saved_kind": "container", "sealed": false, "disturbed": false, "contents": [item, ...]}
    item    = {"type_id": ..., "item_instance_id": ..., "charges": ..., "temperature": ...,
               "rot": ..., "variables": {...}, "contents": tree}

An item record's ``contents`` may also be a flat list of item records; that
is the legacy pocketless format and is consolidated into the item's pockets.

Loading is complete-or-fail per item: a broken nested item is dropped and
reported in ``LoadResult.failures`` while its siblings keep loading.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..exceptions import DataIntegrityError, create_error_context, handle_exception
from ..game.items.constants import PocketKind
from ..game.items.container_tree import ContainerTree
from ..game.items.item_instance import Item
from ..game.items.item_type_registry import ItemTypeRegistry
from ..game.items.legacy import from_legacy_items
from ..game.items.models import ItemType, PocketTemplate
from ..game.items.pocket import Pocket
from ..game.items.results import MigrationRecord
from ..structured_logging.enhanced_logging_config import get_logger
from ..structured_logging.logging_context import bind_operation_context, clear_operation_context

logger = get_logger(__name__)

MigrationHook = Callable[[str], ItemType | None]


def serialize_item(item: Item) -> dict[str, Any]:
    """Convert an item, and everything inside it, to a record."""
    record: dict[str, Any] = {
        "type_id": item.item_type.type_id,
        "item_instance_id": item.item_instance_id,
        "charges": item.charges,
        "temperature": item.temperature(),
        "rot": item.rot,
        "variables": dict(item.variables),
    }
    if item.contents is not None:
        record["contents"] = serialize_tree(item.contents)
    return record


def serialize_pocket(pocket: Pocket) -> dict[str, Any]:
    return {
        "saved_kind": pocket.saved_kind.value,
        "sealed": pocket.sealed(),
        "disturbed": pocket.disturbed(),
        "contents": [serialize_item(item) for item in pocket.items()],
    }


def serialize_tree(tree: ContainerTree) -> dict[str, Any]:
    return {"pockets": [serialize_pocket(pocket) for pocket in tree.pockets()]}


@dataclass(frozen=True)
class LoadFailure:
    """One nested item that could not be restored."""

    record_path: str
    error: DataIntegrityError


@dataclass
class LoadResult:
    tree: ContainerTree
    failures: list[LoadFailure] = field(default_factory=list)
    migrated: list[MigrationRecord] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class ContainerTreeLoader:
    """
    Rebuilds container trees from documents written by ``serialize_tree``.

    Item types come from the registry. A type id the registry no longer knows
    is passed to the migration hook (the registry's own migrations by
    default); if that yields nothing the item fails to load.
    """

    def __init__(self, registry: ItemTypeRegistry, migration_hook: MigrationHook | None = None):
        self._registry = registry
        self._migration_hook = migration_hook or registry.migration_for

    def load_tree(self, document: Mapping[str, Any], templates: Sequence[PocketTemplate]) -> LoadResult:
        """
        Restore the tree of an item whose pockets are ``templates``.

        Raises:
            DataIntegrityError: If the document's pockets disagree with ``templates``.
        """
        bind_operation_context("load_tree")
        try:
            failures: list[LoadFailure] = []
            migrated: list[MigrationRecord] = []
            tree = self._load_tree(document, tuple(templates), "", failures, migrated)
        finally:
            clear_operation_context()

        if failures:
            logger.warning(
                "Container tree loaded with failures",
                failures=len(failures),
                record_paths=[failure.record_path for failure in failures],
            )
        return LoadResult(tree, failures, migrated)

    def load_item(self, record: Mapping[str, Any], failures: list[LoadFailure] | None = None) -> Item:
        """
        Restore a single item record.

        Nested failures are appended to ``failures`` when given, and logged.

        Raises:
            DataIntegrityError: If the item itself cannot be restored.
        """
        sink: list[LoadFailure] = [] if failures is None else failures
        return self._load_item(record, "", sink, [])

    # --- internals ---------------------------------------------------------

    def _resolve_type(self, type_id: str, path: str) -> tuple[ItemType, bool]:
        if type_id in self._registry:
            return self._registry.get(type_id), False
        replacement = self._migration_hook(type_id)
        if replacement is None:
            raise DataIntegrityError(
                f"Unknown item type '{type_id}' with no migration",
                create_error_context(operation="load_item", item_type_id=type_id),
                record_path=path or "<root>",
                type_id=type_id,
            )
        logger.info("Migrating obsolete item type", old_type_id=type_id, new_type_id=replacement.type_id)
        return replacement, True

    def _load_item(
        self,
        record: Mapping[str, Any],
        path: str,
        failures: list[LoadFailure],
        migrated: list[MigrationRecord],
    ) -> Item:
        context = create_error_context(operation="load_item")
        try:
            type_id = str(record["type_id"])
            context.item_type_id = type_id
            context.item_instance_id = record.get("item_instance_id")
            item_type, was_migrated = self._resolve_type(type_id, path)
            item = Item(
                item_type,
                charges=record.get("charges") if item_type.count_by_charges else None,
                temperature=float(record["temperature"]) if record.get("temperature") is not None else None,
                rot=float(record.get("rot", 0.0)),
                variables={str(key): str(value) for key, value in dict(record.get("variables") or {}).items()},
                item_instance_id=record.get("item_instance_id"),
            )
            if item_type.count_by_charges and not isinstance(item.charges, int):
                raise ValueError(f"charges must be an integer, got {item.charges!r}")
        except DataIntegrityError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise DataIntegrityError(
                f"Malformed item record: {exc}",
                context,
                record_path=path or "<root>",
                details={"original_type": type(exc).__name__},
            ) from exc

        contents = record.get("contents")
        if contents is not None:
            item.contents = self._load_contents(item, contents, was_migrated, path, failures, migrated)

        if was_migrated:
            migrated.append(MigrationRecord(item, type_id, item_type.type_id))
        return item

    def _load_contents(  # pylint: disable=too-many-arguments,too-many-positional-arguments  # Reason: recursion carries the shared failure and migration sinks
        self,
        item: Item,
        contents: Any,
        was_migrated: bool,
        path: str,
        failures: list[LoadFailure],
        migrated: list[MigrationRecord],
    ) -> ContainerTree | None:
        templates = item.item_type.pockets
        contents_path = f"{path}.contents" if path else "contents"
        if not templates:
            if contents:
                raise DataIntegrityError(
                    f"Item type '{item.item_type.type_id}' has no pockets but the record has contents",
                    create_error_context(
                        operation="load_item",
                        item_type_id=item.item_type.type_id,
                        item_instance_id=item.item_instance_id,
                    ),
                    record_path=contents_path,
                    type_id=item.item_type.type_id,
                )
            return None

        if isinstance(contents, list):
            children = self._load_children(contents, contents_path, failures, migrated)
            return from_legacy_items(templates, children)

        if was_migrated and not self._layout_matches(contents, templates):
            flattened: list[Item] = []
            for index, pocket_record in enumerate(self._pocket_records(contents, contents_path)):
                pocket_path = f"{contents_path}.pockets[{index}].contents"
                flattened.extend(
                    self._load_children(pocket_record.get("contents", []), pocket_path, failures, migrated)
                )
            logger.info(
                "Rebuilding migrated item contents", item=item, children=len(flattened), record_path=contents_path
            )
            return from_legacy_items(templates, flattened)

        return self._load_tree(contents, templates, contents_path, failures, migrated)

    @staticmethod
    def _pocket_records(document: Any, path: str) -> list[Mapping[str, Any]]:
        if not isinstance(document, Mapping) or not isinstance(document.get("pockets"), list):
            raise DataIntegrityError(
                "Container document must be a mapping with a 'pockets' list",
                create_error_context(operation="load_tree"),
                record_path=path or "<root>",
            )
        return document["pockets"]

    @staticmethod
    def _saved_kind(pocket_record: Mapping[str, Any], path: str) -> PocketKind:
        try:
            return PocketKind(pocket_record["saved_kind"])
        except (KeyError, TypeError, ValueError) as exc:
            raise DataIntegrityError(
                f"Unrecognized saved pocket kind: {pocket_record.get('saved_kind')!r}",
                create_error_context(operation="load_tree"),
                record_path=path,
            ) from exc

    def _layout_matches(self, document: Any, templates: Sequence[PocketTemplate]) -> bool:
        if not isinstance(document, Mapping) or not isinstance(document.get("pockets"), list):
            return False
        records = document["pockets"]
        if len(records) != len(templates):
            return False
        return all(
            isinstance(record, Mapping) and record.get("saved_kind") == template.kind.value
            for record, template in zip(records, templates)
        )

    def _load_tree(
        self,
        document: Any,
        templates: tuple[PocketTemplate, ...],
        path: str,
        failures: list[LoadFailure],
        migrated: list[MigrationRecord],
    ) -> ContainerTree:
        records = self._pocket_records(document, path)
        if len(records) != len(templates):
            raise DataIntegrityError(
                f"Saved tree has {len(records)} pockets but the item type defines {len(templates)}",
                create_error_context(operation="load_tree"),
                record_path=path or "<root>",
            )

        pockets: list[Pocket] = []
        for index, (pocket_record, template) in enumerate(zip(records, templates)):
            pocket_path = f"{path}.pockets[{index}]" if path else f"pockets[{index}]"
            if not isinstance(pocket_record, Mapping):
                raise DataIntegrityError(
                    "Pocket record must be a mapping",
                    create_error_context(operation="load_tree", pocket_index=index),
                    record_path=pocket_path,
                )
            saved_kind = self._saved_kind(pocket_record, pocket_path)
            if saved_kind is not template.kind:
                raise DataIntegrityError(
                    f"Saved pocket kind '{saved_kind.value}' does not match template kind '{template.kind.value}'",
                    create_error_context(operation="load_tree", pocket_index=index),
                    record_path=pocket_path,
                )
            pocket = Pocket(
                template,
                saved_kind=saved_kind,
                sealed=bool(pocket_record.get("sealed", False)),
                disturbed=bool(pocket_record.get("disturbed", False)),
            )
            for child in self._load_children(
                pocket_record.get("contents", []), f"{pocket_path}.contents", failures, migrated
            ):
                pocket.add(child)
            pockets.append(pocket)
        return ContainerTree.from_pockets(pockets)

    def _load_children(
        self,
        records: Any,
        path: str,
        failures: list[LoadFailure],
        migrated: list[MigrationRecord],
    ) -> list[Item]:
        if not isinstance(records, list):
            raise DataIntegrityError(
                "Pocket contents must be a list",
                create_error_context(operation="load_tree"),
                record_path=path,
            )
        children: list[Item] = []
        for index, record in enumerate(records):
            record_path = f"{path}[{index}]"
            try:
                if not isinstance(record, Mapping):
                    raise handle_exception(
                        TypeError(f"item record must be a mapping, got {type(record).__name__}"),
                        create_error_context(operation="load_item"),
                    )
                children.append(self._load_item(record, record_path, failures, migrated))
            except DataIntegrityError as exc:
                logger.warning("Dropping unloadable item", record_path=record_path, error=exc.message)
                failures.append(LoadFailure(record_path, exc))
        return children
