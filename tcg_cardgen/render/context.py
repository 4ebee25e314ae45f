"""Flattened variable namespace for one card render."""

import math
from decimal import Decimal
from typing import Any

from ..card import Card
from ..templates.models import Template
from .expressions import split_footer


def format_float(value: float) -> str:
    """Shortest round-trippable decimal, never in exponent notation."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def to_namespace_value(value: Any) -> str:
    """
    Convert an arbitrary metadata value to its namespace string.

    Callers skip None before calling; every other value has a string form.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return format_float(value)
    if isinstance(value, (list, tuple)):
        return ", ".join(to_namespace_value(item) for item in value if item is not None)
    return str(value)


def _inject_artwork(namespace: dict[str, str], artwork: Any) -> None:
    if isinstance(artwork, dict):
        url = artwork.get("url")
        fit = artwork.get("fit")
        if url is not None:
            namespace["card.artwork"] = to_namespace_value(url)
        if fit is not None:
            namespace["card.artwork.fit"] = to_namespace_value(fit)
    elif artwork is not None:
        namespace["card.artwork"] = to_namespace_value(artwork)


def build_context(card: Card, template: Template) -> dict[str, str]:
    """
    Build the flat `dotted.path -> string` namespace for a render.

    Later steps overwrite earlier keys, except optional template fields,
    which only fill keys that are still missing.
    """
    namespace: dict[str, str] = {
        "card.tcg": card.tcg,
        "card.cardstyle": card.cardstyle,
        "card.title": card.title,
        "card.type": card.type,
        "card.rarity": card.rarity,
        "card.set": card.set,
        "card.artist": card.artist,
        "card.print_this": str(card.print_this),
        "card.print_total": str(card.print_total),
        "card.rules_text": card.rules_text,
        "card.flavor_text": card.flavor_text,
        "card.mana_cost": card.mana_cost,
    }

    body, footer = split_footer(card.rules_text or card.body)
    if not footer and card.flavor_text:
        footer = card.flavor_text
    namespace["card.body"] = body
    namespace["card.footer"] = footer

    for key, value in card.metadata.items():
        if isinstance(value, dict):
            for nested_key, nested_value in value.items():
                if key == "card" and nested_key == "artwork":
                    _inject_artwork(namespace, nested_value)
                elif nested_value is not None:
                    namespace[f"{key}.{nested_key}"] = to_namespace_value(nested_value)
        elif key == "card.artwork":
            _inject_artwork(namespace, value)
        elif value is not None:
            namespace[key] = to_namespace_value(value)

    for key, value in template.style_tokens.items():
        namespace[f"style_tokens.{key}"] = value

    for key, value in template.optional.items():
        if value is not None and key not in namespace:
            namespace[key] = to_namespace_value(value)

    namespace["template_dir"] = str(template.template_dir)
    namespace["icon_dir"] = str(template.template_dir / "icons")

    return namespace
