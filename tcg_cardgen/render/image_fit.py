"""Mapping a source image onto a fixed region."""

import math
from dataclasses import dataclass
from typing import Mapping, Optional

from PIL import Image

from ..templates.models import FitMode

ARTWORK_FIT_KEY = "card.artwork.fit"


@dataclass(frozen=True)
class Box:
    """Placement of the scaled image relative to the region's top-left corner."""

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height


def parse_fit_mode(value: Optional[str]) -> FitMode:
    """Parse a fit mode name. Unknown or empty names mean fill."""
    try:
        return FitMode((value or "").strip().lower())
    except ValueError:
        return FitMode.FILL


def resolve_fit_mode(namespace: Mapping[str, str], layer_fit_mode: str = "") -> FitMode:
    """Per-card `card.artwork.fit` beats the layer's fit_mode, which beats fill."""
    card_fit = namespace.get(ARTWORK_FIT_KEY, "").strip()
    if card_fit:
        return parse_fit_mode(card_fit)
    return parse_fit_mode(layer_fit_mode)


def _scaled(length: int, scale: float, rounding) -> int:
    # Rounded first so 100 * 3.0000000000000004 does not ceil to 301
    return max(1, int(rounding(round(length * scale, 6))))


def fitted_box(src_size: tuple[int, int], dst_size: tuple[int, int], mode: FitMode) -> Box:
    """
    Compute where the source lands inside the destination.

    Args:
        src_size: (width, height) of the source image
        dst_size: (width, height) of the region
        mode: How to map one onto the other

    Returns:
        The scaled size and offset. Offsets are negative where the image
        overhangs the region (fill, center).
    """
    src_w, src_h = src_size
    dst_w, dst_h = dst_size
    if src_w <= 0 or src_h <= 0:
        raise ValueError(f"source image has no area: {src_w}x{src_h}")

    if mode == FitMode.STRETCH:
        return Box(0, 0, dst_w, dst_h)

    if mode == FitMode.CENTER:
        width, height = src_w, src_h
    elif mode == FitMode.FIT:
        scale = min(dst_w / src_w, dst_h / src_h)
        width = _scaled(src_w, scale, math.floor)
        height = _scaled(src_h, scale, math.floor)
    else:
        scale = max(dst_w / src_w, dst_h / src_h)
        width = _scaled(src_w, scale, math.ceil)
        height = _scaled(src_h, scale, math.ceil)

    return Box((dst_w - width) // 2, (dst_h - height) // 2, width, height)


def fit_image(image: Image.Image, width: int, height: int, mode: FitMode) -> Image.Image:
    """
    Return an RGBA image of exactly `width` x `height` holding `image`
    mapped with `mode`. Uncovered margins are transparent.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"target region has no area: {width}x{height}")

    source = image.convert("RGBA") if image.mode != "RGBA" else image
    box = fitted_box(source.size, (width, height), parse_fit_mode(mode))

    if (box.width, box.height) != source.size:
        source = source.resize((box.width, box.height), Image.Resampling.LANCZOS)

    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    # paste clips whatever falls outside the canvas
    canvas.paste(source, (box.x, box.y))
    return canvas
