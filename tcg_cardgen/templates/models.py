"""Cardstyle template data model.

Templates are YAML documents describing the output canvas and an ordered
list of layers. Layers are painted in list order, so later layers end up on
top. The dataclasses here only hold data; discovery, inheritance and merging
live in the resolver.
"""

import copy
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from ..errors import TemplateParseError

# Layer fields an `overrides` entry is allowed to change
OVERRIDABLE_FIELDS = ("source", "content", "condition", "fit_mode")


class LayerType(str, Enum):
    IMAGE = "image"
    TEXT = "text"


class FitMode(str, Enum):
    FILL = "fill"
    FIT = "fit"
    STRETCH = "stretch"
    CENTER = "center"


class Align(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


def _as_mapping(value: Any, what: str, source: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise TemplateParseError(source, f"{what} must be a mapping")
    return value


def _as_list(value: Any, what: str, source: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise TemplateParseError(source, f"{what} must be a list")
    return value


def _as_int(value: Any, what: str, source: str) -> int:
    if value is None or value == "":
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        raise TemplateParseError(source, f"{what} must be an integer, got {value!r}")


def _as_str(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(frozen=True)
class Region:
    """Axis-aligned pixel rectangle in canvas space."""

    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    @classmethod
    def from_dict(cls, data: Any, source: str = "<template>") -> "Region":
        data = _as_mapping(data, "region", source)
        region = cls(
            x=_as_int(data.get("x"), "region.x", source),
            y=_as_int(data.get("y"), "region.y", source),
            width=_as_int(data.get("width"), "region.width", source),
            height=_as_int(data.get("height"), "region.height", source),
        )
        if region.width < 0 or region.height < 0:
            raise TemplateParseError(source, f"region size must be non-negative, got {region}")
        return region


@dataclass(frozen=True)
class Dimensions:
    width: int = 0
    height: int = 0
    dpi: int = 0

    @classmethod
    def from_dict(cls, data: Any, source: str = "<template>") -> "Dimensions":
        data = _as_mapping(data, "dimensions", source)
        return cls(
            width=_as_int(data.get("width"), "dimensions.width", source),
            height=_as_int(data.get("height"), "dimensions.height", source),
            dpi=_as_int(data.get("dpi"), "dimensions.dpi", source),
        )


@dataclass(frozen=True)
class Font:
    """Text styling. `size` may be a number or a templated string."""

    family: str = ""
    size: Union[int, float, str, None] = None
    weight: str = ""
    style: str = ""
    color: str = ""

    @classmethod
    def from_dict(cls, data: Any, source: str = "<template>") -> Optional["Font"]:
        if data is None:
            return None
        data = _as_mapping(data, "font", source)
        return cls(
            family=_as_str(data.get("family")),
            size=data.get("size"),
            weight=_as_str(data.get("weight")),
            style=_as_str(data.get("style")),
            color=_as_str(data.get("color")),
        )


@dataclass(frozen=True)
class Layer:
    """One positioned image or text element of a template."""

    name: str
    type: str
    region: Region = field(default_factory=Region)
    role: str = ""
    # image layers
    source: str = ""
    fallback: str = ""
    fit_mode: str = ""
    # text layers
    content: str = ""
    font: Optional[Font] = None
    align: str = ""
    strip_headers: bool = False
    icon_replace: bool = False
    condition: str = ""

    @classmethod
    def from_dict(cls, data: Any, source: str = "<template>") -> "Layer":
        data = _as_mapping(data, "layer", source)
        name = _as_str(data.get("name")).strip()
        if not name:
            raise TemplateParseError(source, "every layer needs a name")
        where = f"{source} (layer '{name}')"
        return cls(
            name=name,
            type=_as_str(data.get("type")).strip().lower(),
            region=Region.from_dict(data.get("region"), where),
            role=_as_str(data.get("role")),
            source=_as_str(data.get("source")),
            fallback=_as_str(data.get("fallback")),
            fit_mode=_as_str(data.get("fit_mode")),
            content=_as_str(data.get("content")),
            font=Font.from_dict(data.get("font"), where),
            align=_as_str(data.get("align")).lower(),
            strip_headers=bool(data.get("strip_headers", False)),
            icon_replace=bool(data.get("icon_replace", False)),
            condition=_as_str(data.get("condition")),
        )

    def with_overrides(self, updates: dict[str, Any]) -> "Layer":
        """Return a copy with the overridable string fields replaced."""
        changes = {
            key: value
            for key, value in updates.items()
            if key in OVERRIDABLE_FIELDS and isinstance(value, str)
        }
        return replace(self, **changes) if changes else self


@dataclass(frozen=True)
class LayerOverride:
    """Field updates applied to a named base layer during a merge."""

    layer: str
    updates: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any, source: str = "<template>") -> "LayerOverride":
        data = dict(_as_mapping(data, "override", source))
        target = _as_str(data.pop("layer", "")).strip()
        if not target:
            raise TemplateParseError(source, "override entries need a 'layer' name")
        return cls(layer=target, updates=data)


@dataclass
class Template:
    """A cardstyle definition, either as loaded or fully resolved."""

    name: str = ""
    tcg: str = ""
    version: str = ""
    description: str = ""
    extends: str = ""
    dimensions: Dimensions = field(default_factory=Dimensions)
    layers: list[Layer] = field(default_factory=list)
    required: list[str] = field(default_factory=list)
    optional: dict[str, Any] = field(default_factory=dict)
    icons: dict[str, str] = field(default_factory=dict)
    style_tokens: dict[str, str] = field(default_factory=dict)
    overrides: list[LayerOverride] = field(default_factory=list)
    additional_layers: list[Layer] = field(default_factory=list)

    # Runtime info
    template_dir: Path = field(default_factory=Path)
    source_path: Optional[Path] = None
    source_tier: str = ""
    base_chain: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any, source: str = "<template>") -> "Template":
        """Build an unresolved template from a parsed YAML document."""
        if not isinstance(data, dict):
            raise TemplateParseError(source, "document root must be a mapping")

        required = _as_list(data.get("required_fields"), "required_fields", source)
        return cls(
            name=_as_str(data.get("name")),
            tcg=_as_str(data.get("tcg")),
            version=_as_str(data.get("version")),
            description=_as_str(data.get("description")),
            extends=_as_str(data.get("extends")).strip(),
            dimensions=Dimensions.from_dict(data.get("dimensions"), source),
            layers=[
                Layer.from_dict(item, source)
                for item in _as_list(data.get("layers"), "layers", source)
            ],
            required=[str(item) for item in required],
            optional={
                str(k): v
                for k, v in _as_mapping(data.get("optional_fields"), "optional_fields", source).items()
            },
            icons={
                str(k): _as_str(v)
                for k, v in _as_mapping(data.get("icons"), "icons", source).items()
            },
            style_tokens={
                str(k): _as_str(v)
                for k, v in _as_mapping(data.get("style_tokens"), "style_tokens", source).items()
            },
            overrides=[
                LayerOverride.from_dict(item, source)
                for item in _as_list(data.get("overrides"), "overrides", source)
            ],
            additional_layers=[
                Layer.from_dict(item, source)
                for item in _as_list(data.get("additional_layers"), "additional_layers", source)
            ],
        )

    def copy(self) -> "Template":
        return copy.deepcopy(self)

    def layer(self, name: str) -> Optional[Layer]:
        return next((layer for layer in self.layers if layer.name == name), None)


@dataclass
class CardStyleInfo:
    """Summary of a discoverable cardstyle, used by the listing mode."""

    tcg: str
    name: str
    display_name: str = ""
    description: str = ""
    version: str = ""
    source: str = ""
    path: str = ""
    extends: str = ""
