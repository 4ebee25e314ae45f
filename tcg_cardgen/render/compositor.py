"""Layer compositor: paints a card onto a canvas, one layer at a time."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional, Union

from PIL import Image, ImageColor, ImageDraw

from ..card import Card
from ..config import settings
from ..errors import AssetLoadError, LayerRenderError
from ..templates.models import Layer, LayerType, Region, Template
from ..utils import get_logger
from .context import build_context
from .expressions import evaluate_condition, replace_icons, strip_headers, substitute
from .fonts import FontBook, base_style, resolve_font_color, resolve_font_size
from .image_fit import fit_image, resolve_fit_mode
from .image_loader import ImageLoader
from .markdown import parse_markdown
from .text_layout import TextLayoutEngine

logger = get_logger(__name__)

# Placeholder styling for missing artwork
PLACEHOLDER_FILL = (200, 200, 200, 255)
PLACEHOLDER_BORDER = (100, 100, 100, 255)
PLACEHOLDER_BORDER_WIDTH = 2
PLACEHOLDER_TEXT = (50, 50, 50, 255)


class LayerStatus(str, Enum):
    SKIPPED = "skipped"
    TEXT = "text"
    IMAGE = "image"
    PLACEHOLDER = "placeholder"
    EMPTY = "empty"


@dataclass
class LayerOutcome:
    """What happened to one layer during a render."""

    layer: str
    status: LayerStatus
    detail: str = ""


@dataclass
class RenderResult:
    """A rendered canvas plus the per-layer record of how it was built."""

    image: Image.Image
    outcomes: list[LayerOutcome] = field(default_factory=list)

    def count(self, status: LayerStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def placeholders(self) -> list[LayerOutcome]:
        return [o for o in self.outcomes if o.status == LayerStatus.PLACEHOLDER]


def _blit(canvas: Image.Image, image: Image.Image, x: int, y: int) -> None:
    """Alpha-composite `image` at (x, y), cropping whatever lies left of or above the canvas."""
    if x < 0 or y < 0:
        left, top = max(0, -x), max(0, -y)
        if left >= image.width or top >= image.height:
            return
        image = image.crop((left, top, image.width, image.height))
        x, y = max(0, x), max(0, y)
    if x >= canvas.width or y >= canvas.height:
        return
    canvas.alpha_composite(image, (x, y))


class CardRenderer:
    """
    Renders a card against a resolved template.

    Layers are processed in template order in a single pass. A layer whose
    condition is false is skipped. An image that cannot be loaded from its
    source or fallback becomes a labelled placeholder. Any other layer
    failure aborts the card with a LayerRenderError.
    """

    def __init__(
        self,
        fonts: Optional[FontBook] = None,
        images: Optional[ImageLoader] = None,
        background_color: Optional[str] = None,
        default_font_size: Optional[float] = None,
    ):
        self.fonts = fonts or FontBook()
        self.images = images or ImageLoader()
        self.layout = TextLayoutEngine(self.fonts)
        self.background = ImageColor.getcolor(
            background_color or settings.background_color, "RGBA"
        )
        self.default_font_size = default_font_size or settings.default_font_size

    def render(self, card: Card, template: Template) -> RenderResult:
        """
        Render all layers of `template` for `card`.

        Raises:
            LayerRenderError: A layer has an unknown type or failed to draw
        """
        namespace = build_context(card, template)
        size = (template.dimensions.width, template.dimensions.height)
        result = RenderResult(image=Image.new("RGBA", size, self.background))
        base_dir = card.source_file.parent if card.source_file else None

        for layer in template.layers:
            if layer.condition and not evaluate_condition(layer.condition, namespace):
                result.outcomes.append(LayerOutcome(layer.name, LayerStatus.SKIPPED, layer.condition))
                continue

            try:
                if layer.type == LayerType.IMAGE:
                    outcome = self._render_image(result.image, layer, namespace, base_dir)
                elif layer.type == LayerType.TEXT:
                    outcome = self._render_text(result.image, layer, namespace, template)
                else:
                    raise LayerRenderError(layer.name, f"unknown layer type: {layer.type or '<empty>'}")
            except LayerRenderError:
                raise
            except Exception as e:
                raise LayerRenderError(layer.name, str(e)) from e

            logger.debug(f"Layer '{layer.name}': {outcome.status.value} {outcome.detail}".rstrip())
            result.outcomes.append(outcome)

        return result

    # ------------------------------------------------------------------
    # Image layers
    # ------------------------------------------------------------------

    def _render_image(
        self,
        canvas: Image.Image,
        layer: Layer,
        namespace: Mapping[str, str],
        base_dir: Optional[Path],
    ) -> LayerOutcome:
        source = substitute(layer.source, namespace).strip()
        fallback = substitute(layer.fallback, namespace).strip()

        candidates = [source] if source else []
        if fallback and fallback != source:
            candidates.append(fallback)

        image = None
        used = ""
        for candidate in candidates:
            try:
                image = self.images.load(candidate, base_dir)
                used = candidate
                break
            except AssetLoadError as e:
                logger.warning(f"Layer '{layer.name}': {e}")

        region = layer.region
        if region.width <= 0 or region.height <= 0:
            return LayerOutcome(layer.name, LayerStatus.EMPTY, "region has no area")

        if image is None:
            missing = source or fallback or layer.name
            self._draw_placeholder(canvas, region, f"Missing: {Path(missing).name or missing}")
            return LayerOutcome(layer.name, LayerStatus.PLACEHOLDER, missing)

        mode = resolve_fit_mode(namespace, layer.fit_mode)
        fitted = fit_image(image, region.width, region.height, mode)
        _blit(canvas, fitted, region.x, region.y)
        return LayerOutcome(layer.name, LayerStatus.IMAGE, f"{used} ({mode.value})")

    def _draw_placeholder(self, canvas: Image.Image, region: Region, caption: str) -> None:
        draw = ImageDraw.Draw(canvas)
        draw.rectangle(
            [region.x, region.y, region.x + region.width - 1, region.y + region.height - 1],
            fill=PLACEHOLDER_FILL,
            outline=PLACEHOLDER_BORDER,
            width=PLACEHOLDER_BORDER_WIDTH,
        )

        font = self.fonts.get("", self.default_font_size)
        left, top, right, bottom = draw.textbbox((0, 0), caption, font=font)
        x = region.x + (region.width - (right - left)) / 2 - left
        y = region.y + (region.height - (bottom - top)) / 2 - top
        draw.text((x, y), caption, font=font, fill=PLACEHOLDER_TEXT)

    # ------------------------------------------------------------------
    # Text layers
    # ------------------------------------------------------------------

    def _render_text(
        self,
        canvas: Image.Image,
        layer: Layer,
        namespace: Mapping[str, str],
        template: Template,
    ) -> LayerOutcome:
        content = layer.content
        if layer.icon_replace:
            # Icons in the layer content itself, before unknown keys are blanked
            content = replace_icons(content, template.icons)
        content = substitute(content, namespace)
        if layer.strip_headers:
            content = strip_headers(content)
        if layer.icon_replace:
            content = replace_icons(content, template.icons)

        if not content.strip():
            return LayerOutcome(layer.name, LayerStatus.EMPTY, "no content")

        bold, italic = base_style(layer.font)
        layout = self.layout.draw(
            ImageDraw.Draw(canvas),
            parse_markdown(content),
            layer.region,
            align=layer.align,
            family=substitute(layer.font.family, namespace).strip() if layer.font else "",
            base_size=resolve_font_size(layer.font, namespace, self.default_font_size),
            color=resolve_font_color(layer.font, namespace),
            bold=bold,
            italic=italic,
        )

        if layout.draw_calls == 0:
            return LayerOutcome(layer.name, LayerStatus.EMPTY, "nothing to draw")
        return LayerOutcome(
            layer.name,
            LayerStatus.TEXT,
            f"{layout.draw_calls} draws, {layout.total_height:.0f}px tall",
        )


def save(result: RenderResult, path: Union[str, Path], dpi: int = 0) -> Path:
    """Write a render result as PNG, creating parent directories as needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if dpi > 0:
        result.image.save(path, "PNG", dpi=(dpi, dpi))
    else:
        result.image.save(path, "PNG")
    return path
