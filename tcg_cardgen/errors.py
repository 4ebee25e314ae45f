"""Exception hierarchy for card generation.

Template, validation, parse and layer errors are fatal for the card being
processed. Asset errors are recovered inside the compositor and never reach
the batch driver.
"""

from pathlib import Path
from typing import Sequence, Union


class CardGenError(Exception):
    """Base exception for all card generation failures."""

    pass


class CardParseError(CardGenError):
    """Raised when a card source file cannot be parsed."""

    def __init__(self, path: Union[str, Path], reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Failed to parse {self.path}: {reason}")


# =============================================================================
# TEMPLATE RESOLUTION
# =============================================================================


class TemplateError(CardGenError):
    """Base exception for cardstyle resolution failures."""

    pass


class TemplateNotFoundError(TemplateError):
    """Raised when no search tier provides the requested cardstyle."""

    def __init__(self, tcg: str, style: str, searched: Sequence[str] = ()) -> None:
        self.tcg = tcg
        self.style = style
        self.searched = list(searched)
        super().__init__(f"cardstyle {tcg}/{style} not found")


class BaseTemplateNotFoundError(TemplateError):
    """Raised when an `extends` reference cannot be resolved."""

    def __init__(self, extends: str, referenced_from: str) -> None:
        self.extends = extends
        self.referenced_from = referenced_from
        super().__init__(
            f"base template '{extends}' not found (referenced from {referenced_from})"
        )


class CyclicTemplateError(TemplateError):
    """Raised when an `extends` chain loops or exceeds the depth limit."""

    def __init__(self, chain: Sequence[str], reason: str = "extends cycle detected") -> None:
        self.chain = list(chain)
        super().__init__(f"{reason}: {' -> '.join(self.chain)}")


class TemplateParseError(TemplateError):
    """Raised when a cardstyle file is malformed or violates a template invariant."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid cardstyle {source}: {reason}")


# =============================================================================
# VALIDATION
# =============================================================================


class CardValidationError(CardGenError):
    """Base exception for card-versus-template validation failures."""

    pass


class MissingFieldError(CardValidationError):
    """Raised when a required field is absent or empty."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"required field '{field}' is missing")


class TCGMismatchError(CardValidationError):
    """Raised when the card and the cardstyle belong to different TCGs."""

    def __init__(self, card_tcg: str, template_tcg: str) -> None:
        self.card_tcg = card_tcg
        self.template_tcg = template_tcg
        super().__init__(
            f"card TCG '{card_tcg}' doesn't match template TCG '{template_tcg}'"
            f" - use a {card_tcg} cardstyle for {card_tcg} cards"
        )


# =============================================================================
# RENDERING
# =============================================================================


class LayerRenderError(CardGenError):
    """Raised when a layer cannot be rendered. Aborts the card."""

    def __init__(self, layer_name: str, reason: str) -> None:
        self.layer_name = layer_name
        self.reason = reason
        super().__init__(f"error rendering layer '{layer_name}': {reason}")


class AssetLoadError(CardGenError):
    """Raised when an image cannot be loaded, fetched or decoded."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot load image {source}: {reason}")
