"""Font lookup and caching for text layers."""

from pathlib import Path
from typing import Mapping, Optional, Union

from PIL import ImageColor, ImageFont

from ..config import settings
from ..templates.models import Font
from ..utils import get_logger
from .expressions import substitute

logger = get_logger(__name__)

DEFAULT_FONT_SIZE = 12.0
DEFAULT_COLOR = (0, 0, 0, 255)

STYLE_SUFFIXES = {
    (False, False): "Regular",
    (True, False): "Bold",
    (False, True): "Italic",
    (True, True): "BoldItalic",
}

# System fallback, resolved through FreeType's own search path
DEJAVU_FILES = {
    (False, False): "DejaVuSans.ttf",
    (True, False): "DejaVuSans-Bold.ttf",
    (False, True): "DejaVuSans-Oblique.ttf",
    (True, True): "DejaVuSans-BoldOblique.ttf",
}

PILFont = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]


def resolve_font_size(font: Optional[Font], namespace: Mapping[str, str], default: float = DEFAULT_FONT_SIZE) -> float:
    """Numeric size of a layer font; templated sizes are substituted first."""
    if font is None or font.size is None or isinstance(font.size, bool):
        return default
    if isinstance(font.size, (int, float)):
        return float(font.size) if font.size > 0 else default
    try:
        size = float(substitute(str(font.size), namespace).strip())
    except ValueError:
        logger.debug(f"Unparsable font size {font.size!r}, using {default}")
        return default
    return size if size > 0 else default


def resolve_font_color(font: Optional[Font], namespace: Mapping[str, str]) -> tuple[int, ...]:
    """RGBA colour of a layer font, black when missing or invalid."""
    if font is None or not font.color:
        return DEFAULT_COLOR
    value = substitute(font.color, namespace).strip()
    if not value:
        return DEFAULT_COLOR
    try:
        return ImageColor.getcolor(value, "RGBA")
    except ValueError:
        logger.warning(f"Invalid font color {value!r}, using black")
        return DEFAULT_COLOR


def base_style(font: Optional[Font]) -> tuple[bool, bool]:
    """(bold, italic) declared by a layer font."""
    if font is None:
        return False, False
    return font.weight.strip().lower() == "bold", font.style.strip().lower() == "italic"


class FontBook:
    """
    Loads TrueType fonts by family and style.

    Lookup order: `<fonts_dir>/<Family>-<Style>.ttf`, then the DejaVu
    family, then Pillow's built-in font at the requested size. Loaded fonts
    are cached per (family, size, bold, italic).
    """

    def __init__(self, fonts_dir: Optional[Path] = None, default_family: Optional[str] = None):
        fonts = fonts_dir or settings.fonts_dir
        self.fonts_dir = Path(fonts) if fonts else None
        self.default_family = default_family or settings.default_font_family
        self._cache: dict[tuple[str, int, bool, bool], PILFont] = {}

    def get(self, family: str, size: float, bold: bool = False, italic: bool = False) -> PILFont:
        family = family or self.default_family
        pixel_size = max(1, round(size))
        key = (family, pixel_size, bold, italic)

        font = self._cache.get(key)
        if font is None:
            font = self._load(family, pixel_size, bold, italic)
            font = self._cache.setdefault(key, font)
        return font

    def _candidates(self, family: str, bold: bool, italic: bool) -> list[str]:
        candidates = []
        if self.fonts_dir:
            suffix = STYLE_SUFFIXES[(bold, italic)]
            candidates.append(str(self.fonts_dir / f"{family}-{suffix}.ttf"))
            if (bold, italic) == (False, False):
                candidates.append(str(self.fonts_dir / f"{family}.ttf"))
        candidates.append(DEJAVU_FILES[(bold, italic)])
        return candidates

    def _load(self, family: str, size: int, bold: bool, italic: bool) -> PILFont:
        for candidate in self._candidates(family, bold, italic):
            try:
                return ImageFont.truetype(candidate, size)
            except OSError:
                continue

        logger.debug(f"No TrueType font for {family} (bold={bold}, italic={italic}), using Pillow default")
        return ImageFont.load_default(size)


def text_width(font: PILFont, text: str) -> float:
    """Advance width of `text` in pixels."""
    if not text:
        return 0.0
    return float(font.getlength(text))
