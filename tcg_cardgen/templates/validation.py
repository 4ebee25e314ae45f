"""Card-versus-cardstyle validation."""

from typing import Any

from ..card import Card
from ..errors import MissingFieldError, TCGMismatchError
from .models import Template

# Required paths answered by typed Card attributes before the metadata bag
TYPED_FIELD_PATHS = {
    "card.tcg": "tcg",
    "card.cardstyle": "cardstyle",
    "card.title": "title",
    "card.type": "type",
    "card.rarity": "rarity",
    "card.set": "set",
    "card.artist": "artist",
    "card.body": "body",
    "card.rules_text": "rules_text",
    "card.flavor_text": "flavor_text",
    "card.mana_cost": "mana_cost",
}


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, dict)):
        return len(value) > 0
    return True


def has_field(card: Card, path: str) -> bool:
    """
    Check whether `path` resolves to a non-empty value on the card.

    Typed card fields are consulted first, then a flat metadata key, then a
    two-segment `section.key` lookup one level into the metadata.
    """
    attribute = TYPED_FIELD_PATHS.get(path)
    if attribute and _is_present(getattr(card, attribute)):
        return True

    if _is_present(card.metadata.get(path)):
        return True

    parts = path.split(".")
    if len(parts) == 2:
        return _is_present(card.get_nested(parts[0], parts[1]))
    return False


def validate_card(card: Card, template: Template) -> None:
    """
    Validate a card against a resolved cardstyle.

    Raises:
        TCGMismatchError: The card's tcg differs from the cardstyle's
        MissingFieldError: A required field is absent or empty
    """
    if card.tcg != template.tcg:
        raise TCGMismatchError(card.tcg, template.tcg)

    for path in template.required:
        if not has_field(card, path):
            raise MissingFieldError(path)
