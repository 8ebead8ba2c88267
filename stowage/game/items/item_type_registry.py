from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from stowage.exceptions import ConfigError
from stowage.game.items.models import ItemType
from stowage.structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

MIGRATIONS_FILE = "migrations.json"


class ItemTypeRegistryError(Exception):
    """Raised when item type registry lookups fail."""


class ItemTypeRegistry:
    """In-memory registry for validated item types, plus obsolete-id migrations."""

    def __init__(
        self,
        item_types: dict[str, ItemType],
        invalid_entries: list[dict],
        migrations: dict[str, str] | None = None,
    ):
        self._item_types = item_types
        self._invalid_entries = invalid_entries
        self._migrations = dict(migrations or {})

    @classmethod
    def from_payloads(
        cls,
        payloads: Iterable[Mapping[str, Any]],
        migrations: Mapping[str, str] | None = None,
        *,
        source: str = "<memory>",
    ) -> ItemTypeRegistry:
        """
        Validate item type payloads, skipping (and recording) the broken ones.

        A malformed pocket list only costs that one item type.
        """
        item_types: dict[str, ItemType] = {}
        invalid_entries: list[dict] = []
        for payload in payloads:
            type_id = payload.get("type_id") if isinstance(payload, Mapping) else None
            try:
                item_type = ItemType.model_validate(payload)
            except ValidationError as exc:
                errors = exc.errors(include_url=False, include_context=False, include_input=False)
                logger.warning("invalid item type payload", type_id=type_id, source=source, errors=errors)
                invalid_entries.append({"type_id": type_id, "source": source, "errors": errors})
                continue
            except ConfigError as exc:
                logger.warning("invalid pocket templates", type_id=type_id, source=source, error=exc.message)
                invalid_entries.append({"type_id": type_id, "source": source, "errors": [exc.to_dict()]})
                continue

            if item_type.type_id in item_types:
                logger.warning("duplicate item type id", type_id=item_type.type_id, source=source)
            item_types[item_type.type_id] = item_type

        return cls(item_types, invalid_entries, dict(migrations or {}))

    @classmethod
    def load_from_path(cls, directory: Path | str) -> ItemTypeRegistry:
        """
        Load every ``*.json`` file in ``directory``.

        A file holds one item type object or a list of them. The optional
        ``migrations.json`` maps obsolete type ids to their replacements.
        """
        directory_path = Path(directory)
        if not directory_path.exists():
            raise ItemTypeRegistryError(f"Item type directory not found: {directory_path}")

        registry = cls({}, [], {})
        for json_file in sorted(directory_path.glob("*.json")):
            try:
                payload = json.loads(json_file.read_text(encoding="utf-8"))
            except json.JSONDecodeError as exc:
                logger.warning(
                    "invalid item type payload",
                    type_id=json_file.stem,
                    file_path=str(json_file),
                    error=str(exc),
                )
                registry._invalid_entries.append(
                    {"type_id": json_file.stem, "source": str(json_file), "errors": [{"msg": str(exc)}]}
                )
                continue

            if json_file.name == MIGRATIONS_FILE:
                if not isinstance(payload, dict):
                    logger.warning("invalid migrations file", file_path=str(json_file))
                    continue
                registry._migrations.update({str(old): str(new) for old, new in payload.items()})
                continue

            entries = payload if isinstance(payload, list) else [payload]
            loaded = cls.from_payloads(entries, source=str(json_file))
            registry._item_types.update(loaded._item_types)
            registry._invalid_entries.extend(loaded._invalid_entries)

        logger.info(
            "Item type registry loaded",
            directory=str(directory_path),
            item_types=len(registry._item_types),
            invalid=len(registry._invalid_entries),
            migrations=len(registry._migrations),
        )
        return registry

    def get(self, type_id: str) -> ItemType:
        try:
            return self._item_types[type_id]
        except KeyError as exc:
            raise ItemTypeRegistryError(f"Item type not found: {type_id}") from exc

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._item_types

    def find_by_tag(self, tag: str) -> list[ItemType]:
        return [item_type for item_type in self._item_types.values() if tag in item_type.tags]

    def all(self) -> Iterable[ItemType]:
        return self._item_types.values()

    def invalid_entries(self) -> list[dict]:
        return list(self._invalid_entries)

    def migrations(self) -> dict[str, str]:
        return dict(self._migrations)

    def migration_for(self, type_id: str) -> ItemType | None:
        """Current replacement for an obsolete type id, following chained renames."""
        seen: set[str] = set()
        current = type_id
        while current in self._migrations and current not in seen:
            seen.add(current)
            current = self._migrations[current]
        if current == type_id:
            return None
        return self._item_types.get(current)

    def migration_map(self) -> dict[str, ItemType]:
        """Obsolete type id to replacement type, for ``ContainerTree.migrate_item``."""
        resolved: dict[str, ItemType] = {}
        for old_id in self._migrations:
            replacement = self.migration_for(old_id)
            if replacement is not None:
                resolved[old_id] = replacement
        return resolved
