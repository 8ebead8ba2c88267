"""Validated pocket templates and item type definitions.

Both models are immutable once loaded and compare structurally, so two
pockets cut from the same pattern have equal templates. Loading goes through
pydantic; any validation failure surfaces as ``ConfigError`` so the caller
only has to handle one exception type per item type definition.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from stowage.exceptions import ConfigError, create_error_context
from stowage.game.items.constants import (
    AMMO_RESTRICTABLE_KINDS,
    DEFAULT_MOVE_COST,
    SINGULAR_KINDS,
    Phase,
    PocketKind,
)
from stowage.game.items.units import parse_mass, parse_volume
from stowage.structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


def _normalise_tags(value: Any) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        raise ValueError("expected a list of strings, not a single string")
    tags: set[str] = set()
    for entry in value:
        if not isinstance(entry, str) or not entry.strip():
            raise ValueError("entries must be non-empty strings")
        tags.add(entry.strip())
    return frozenset(tags)


def _validation_summary(exc: ValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": ".".join(str(part) for part in error["loc"]), "msg": error["msg"]}
        for error in exc.errors(include_url=False, include_context=False, include_input=False)
    ]


class ItemCountOverride(BaseModel):
    """Absolute cap on how many items (or stacks) a pocket may hold."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    num_items: int = Field(ge=1)
    # when true the cap counts stacks, otherwise total charges
    item_stacks: bool = True


class PocketTemplate(BaseModel):
    """Immutable capacity and rule descriptor for one pocket shape."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: PocketKind = PocketKind.CONTAINER
    max_volume: int
    min_item_volume: int = 0
    max_weight: int
    spoil_multiplier: float = Field(default=1.0, ge=0)
    weight_multiplier: float = Field(default=1.0, ge=0)
    # volume the contents may take up before the owning item starts to grow
    magazine_well: int = 0
    base_move_cost: int = Field(default=DEFAULT_MOVE_COST, ge=0)
    fire_protection: bool = False
    watertight: bool = False
    gastight: bool = False
    open_container: bool = False
    resealable: bool = True
    rigid: bool = False
    flag_restriction: frozenset[str] = Field(default_factory=frozenset)
    ammo_restriction: frozenset[str] = Field(default_factory=frozenset)
    item_count_override: ItemCountOverride | None = None

    @field_validator("kind", mode="before")
    @classmethod
    def validate_kind(cls, value: Any) -> PocketKind:
        if isinstance(value, PocketKind):
            return value
        if isinstance(value, str):
            try:
                return PocketKind(value.lower())
            except ValueError as err:
                raise ValueError(f"kind must be one of: {[kind.value for kind in PocketKind]}") from err
        raise ValueError(f"Invalid kind type: {type(value).__name__}")

    @field_validator("max_volume", "min_item_volume", "magazine_well", mode="before")
    @classmethod
    def validate_volume(cls, value: Any) -> int:
        return parse_volume(value)

    @field_validator("max_weight", mode="before")
    @classmethod
    def validate_weight(cls, value: Any) -> int:
        return parse_mass(value)

    @field_validator("flag_restriction", "ammo_restriction", mode="before")
    @classmethod
    def validate_restriction(cls, value: Any) -> frozenset[str]:
        return _normalise_tags(value)

    @model_validator(mode="after")
    def validate_rule_combinations(self) -> PocketTemplate:
        if self.kind == PocketKind.CONTAINER and self.max_volume == 0:
            raise ValueError("container pockets need a positive max_volume")
        if self.min_item_volume > self.max_volume:
            raise ValueError("min_item_volume exceeds max_volume; nothing could ever fit")
        if self.magazine_well > self.max_volume:
            raise ValueError("magazine_well exceeds max_volume")
        if self.gastight and not self.watertight:
            raise ValueError("gastight pockets must also be watertight")
        if self.ammo_restriction and self.kind not in AMMO_RESTRICTABLE_KINDS:
            raise ValueError(f"ammo_restriction is not allowed on {self.kind.value} pockets")
        if self.flag_restriction and self.kind == PocketKind.SOFTWARE_SLOT:
            raise ValueError("flag_restriction is not allowed on software_slot pockets")
        return self

    @classmethod
    def load(cls, config: Mapping[str, Any]) -> PocketTemplate:
        """
        Build a template from an already-parsed configuration mapping.

        Raises:
            ConfigError: On malformed units, negative capacities, unknown fields
                or contradictory restriction combinations.
        """
        if not isinstance(config, Mapping):
            raise ConfigError(
                f"Pocket template must be a mapping, got {type(config).__name__}",
                create_error_context(operation="load_pocket_template"),
            )
        try:
            return cls.model_validate(dict(config))
        except ValidationError as exc:
            errors = _validation_summary(exc)
            raise ConfigError(
                f"Invalid pocket template: {errors[0]['loc'] or 'template'}: {errors[0]['msg']}",
                create_error_context(operation="load_pocket_template"),
                config_key=errors[0]["loc"] or None,
                details={"errors": errors},
            ) from exc


def load_pocket_templates(configs: Iterable[PocketTemplate | Mapping[str, Any]]) -> tuple[PocketTemplate, ...]:
    """
    Load an ordered pocket list for one item type.

    Singular kinds (magazine, mod slot, corpse cavity, software slot) may
    appear at most once; insertion by kind would otherwise be ambiguous.

    Raises:
        ConfigError: If any template is invalid or a singular kind repeats.
    """
    templates: list[PocketTemplate] = []
    seen_singular: set[PocketKind] = set()
    for index, config in enumerate(configs):
        template = config if isinstance(config, PocketTemplate) else PocketTemplate.load(config)
        if template.kind in SINGULAR_KINDS:
            if template.kind in seen_singular:
                raise ConfigError(
                    f"Pocket kind '{template.kind.value}' may appear only once per item",
                    create_error_context(operation="load_pocket_templates", pocket_index=index),
                    config_key="kind",
                )
            seen_singular.add(template.kind)
        templates.append(template)
    return tuple(templates)


class ItemType(BaseModel):
    """Static definition shared by every item of one type.

    ``volume`` and ``weight`` describe ``stack_size`` charges for items counted
    by charges (so partial stacks round their volume up), and a single item
    otherwise.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    type_id: str = Field(min_length=1, max_length=120)
    name: str = Field(min_length=1, max_length=120)
    volume: int
    weight: int
    stack_size: int = Field(default=1, ge=1)
    phase: Phase = Phase.SOLID
    tags: frozenset[str] = Field(default_factory=frozenset)
    ammo_type: str | None = None
    count_by_charges: bool = False
    initial_charges: int | None = Field(default=None, ge=1)
    is_mod: bool = False
    # turns until the item is rotten; None means it never spoils
    spoils_in: int | None = Field(default=None, gt=0)
    rots_away: bool = False
    explodes_in_fire: bool = False
    pockets: tuple[PocketTemplate, ...] = ()

    @field_validator("volume", mode="before")
    @classmethod
    def validate_volume(cls, value: Any) -> int:
        return parse_volume(value)

    @field_validator("weight", mode="before")
    @classmethod
    def validate_weight(cls, value: Any) -> int:
        return parse_mass(value)

    @field_validator("phase", mode="before")
    @classmethod
    def validate_phase(cls, value: Any) -> Phase:
        if isinstance(value, str):
            try:
                return Phase(value.lower())
            except ValueError as err:
                raise ValueError(f"phase must be one of: {[phase.value for phase in Phase]}") from err
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, value: Any) -> frozenset[str]:
        return _normalise_tags(value)

    @field_validator("pockets", mode="before")
    @classmethod
    def validate_pockets(cls, value: Any) -> tuple[PocketTemplate, ...]:
        if value is None:
            return ()
        return load_pocket_templates(value)

    @model_validator(mode="after")
    def validate_charges(self) -> ItemType:
        if self.initial_charges is not None and not self.count_by_charges:
            raise ValueError("initial_charges requires count_by_charges")
        if self.rots_away and self.spoils_in is None:
            raise ValueError("rots_away requires spoils_in")
        return self

    @property
    def default_charges(self) -> int:
        """Charges a freshly created item of this type starts with."""
        if not self.count_by_charges:
            return 0
        return self.initial_charges or self.stack_size

    @property
    def is_container(self) -> bool:
        return bool(self.pockets)

