"""Text layout: word wrap, vertical centering and styled drawing.

Layout is two passes over the parsed lines. The first pass measures the
block height and the second draws it centred in the layer region. Normal
lines are wrapped once, up front, and both passes use the same wrapped line
count, so the measured height is exactly the drawn height.
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from PIL import ImageDraw

from ..templates.models import Align, Region
from .fonts import FontBook, text_width
from .markdown import Line, LineKind, Run

# measure(text, bold, italic) -> width in pixels
Measure = Callable[[str, bool, bool], float]

LINE_HEIGHT_FACTOR = 1.2
WRAPPED_LINE_ADVANCE = 1.5
HEADER_SLOT_FACTOR = 1.4
RULE_SLOT_FACTOR = 0.5
RULE_COLOR = (128, 128, 128, 255)


@dataclass(frozen=True)
class Fragment:
    """Same-style text on one wrapped line, with its leading space if any."""

    text: str
    bold: bool
    italic: bool
    width: float


@dataclass
class WrappedLine:
    fragments: list[Fragment] = field(default_factory=list)
    width: float = 0.0

    @property
    def text(self) -> str:
        return "".join(fragment.text for fragment in self.fragments)

    def append(self, text: str, bold: bool, italic: bool, width: float) -> None:
        last = self.fragments[-1] if self.fragments else None
        if last is not None and (last.bold, last.italic) == (bold, italic):
            self.fragments[-1] = Fragment(last.text + text, bold, italic, last.width + width)
        else:
            self.fragments.append(Fragment(text, bold, italic, width))
        self.width += width


@dataclass
class TextLayout:
    """Summary of one `draw` call."""

    total_height: float = 0.0
    wrapped_lines: int = 0
    draw_calls: int = 0


def _words(runs: Iterable[Run]) -> list[tuple[str, bool, bool, bool]]:
    """Flatten runs into (word, bold, italic, space_before) tuples."""
    words = []
    pending_space = False
    for run in runs:
        content = run.content
        if not content:
            continue
        if content[0].isspace():
            pending_space = True
        for index, word in enumerate(content.split()):
            words.append((word, run.bold, run.italic, pending_space or index > 0))
            pending_space = False
        if content[-1].isspace():
            pending_space = True
    return words


def wrap_runs(runs: Iterable[Run], max_width: float, measure: Measure) -> list[WrappedLine]:
    """
    Greedy word wrap over styled runs.

    A word joins the current line unless that would exceed `max_width` and
    the line already holds something. Words inside a run are separated by a
    single space. Between runs a space is kept only where the source text
    had whitespace, so `**bold**.` stays glued together.
    """
    lines: list[WrappedLine] = []
    current = WrappedLine()

    for word, bold, italic, space_before in _words(runs):
        piece = f" {word}" if space_before and current.fragments else word
        width = measure(piece, bold, italic)

        if current.fragments and current.width + width > max_width:
            lines.append(current)
            current = WrappedLine()
            piece = word
            width = measure(piece, bold, italic)

        current.append(piece, bold, italic, width)

    if current.fragments:
        lines.append(current)
    return lines


def header_size(base_size: float, level: int) -> float:
    """Header font size: 1.8x the base for level 1 down to 0.8x for level 6."""
    return base_size * (2.0 - level * 0.2)


def align_offset(align: str, region_width: float, line_width: float) -> float:
    if align == Align.CENTER:
        return (region_width - line_width) / 2
    if align == Align.RIGHT:
        return region_width - line_width
    return 0.0


class TextLayoutEngine:
    """Draws parsed Markdown lines into a fixed region."""

    def __init__(self, fonts: Optional[FontBook] = None):
        self.fonts = fonts or FontBook()

    def layout(
        self,
        lines: list[Line],
        width: float,
        base_size: float,
        measure: Measure,
    ) -> tuple[list[Optional[list[WrappedLine]]], float]:
        """
        Measure pass.

        Returns the wrapped output for each normal line (None for other
        kinds) and the total block height.
        """
        line_height = base_size * LINE_HEIGHT_FACTOR
        wrapped: list[Optional[list[WrappedLine]]] = []
        total = 0.0

        for line in lines:
            if line.kind == LineKind.HEADER:
                wrapped.append(None)
                total += header_size(base_size, line.level) * HEADER_SLOT_FACTOR
            elif line.kind == LineKind.HR:
                wrapped.append(None)
                total += base_size * RULE_SLOT_FACTOR
            elif not line.runs:
                wrapped.append(None)
                total += line_height * 0.5
            else:
                output = wrap_runs(line.runs, width, measure)
                wrapped.append(output)
                total += len(output) * base_size * WRAPPED_LINE_ADVANCE

        return wrapped, total

    def draw(
        self,
        draw: ImageDraw.ImageDraw,
        lines: list[Line],
        region: Region,
        align: str = Align.LEFT,
        family: str = "",
        base_size: float = 12.0,
        color: tuple[int, ...] = (0, 0, 0, 255),
        bold: bool = False,
        italic: bool = False,
    ) -> TextLayout:
        """
        Draw `lines` vertically centred in `region`.

        `bold` and `italic` give the layer's base style, which inline
        formatting adds to. Never raises for empty input; nothing is drawn.
        """
        result = TextLayout()
        if not lines:
            return result

        def measure(text: str, run_bold: bool, run_italic: bool) -> float:
            font = self.fonts.get(family, base_size, bold or run_bold, italic or run_italic)
            return text_width(font, text)

        wrapped, total = self.layout(lines, region.width, base_size, measure)
        result.total_height = total

        x, w = region.x, region.width
        y = region.y + (region.height - total) / 2

        for line, output in zip(lines, wrapped):
            if line.kind == LineKind.HEADER:
                size = header_size(base_size, line.level)
                text = line.text
                if text:
                    font = self.fonts.get(family, size, True, italic)
                    offset = align_offset(align, w, text_width(font, text))
                    draw.text((x + offset, y), text, font=font, fill=color)
                    result.draw_calls += 1
                y += size * HEADER_SLOT_FACTOR

            elif line.kind == LineKind.HR:
                rule_y = y + base_size * 0.25
                draw.line([(x + w * 0.1, rule_y), (x + w * 0.9, rule_y)], fill=RULE_COLOR, width=1)
                result.draw_calls += 1
                y += base_size * RULE_SLOT_FACTOR

            elif output is None:
                y += base_size * LINE_HEIGHT_FACTOR * 0.5

            else:
                for wrapped_line in output:
                    cursor = x + align_offset(align, w, wrapped_line.width)
                    for fragment in wrapped_line.fragments:
                        font = self.fonts.get(
                            family, base_size, bold or fragment.bold, italic or fragment.italic
                        )
                        draw.text((cursor, y), fragment.text, font=font, fill=color)
                        result.draw_calls += 1
                        cursor += fragment.width
                    y += base_size * WRAPPED_LINE_ADVANCE
                result.wrapped_lines += len(output)

        return result

