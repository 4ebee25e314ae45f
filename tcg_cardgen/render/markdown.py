"""Markdown subset used for card text.

Supports headers (`#` to `######`), horizontal rules and the inline markers
`***bold italic***`, `**bold**` and `*italic*`. Markers are not nested: a
run is either plain or carries one combined style. `**bold *and italic***`
is not composed into mixed styles.
"""

import re
from dataclasses import dataclass, field
from enum import Enum

HEADER_PATTERN = re.compile(r"^(#{1,6}) (.*)$")

RULE_PREFIXES = ("---", "***")

# Highest priority first
INLINE_MARKERS = (
    ("***", True, True),
    ("**", True, False),
    ("*", False, True),
)


class LineKind(str, Enum):
    NORMAL = "normal"
    HEADER = "header"
    HR = "hr"


@dataclass(frozen=True)
class Run:
    """A stretch of text with a single style."""

    content: str
    bold: bool = False
    italic: bool = False


@dataclass(frozen=True)
class Line:
    kind: LineKind = LineKind.NORMAL
    level: int = 0
    runs: tuple[Run, ...] = field(default_factory=tuple)

    @property
    def text(self) -> str:
        return "".join(run.content for run in self.runs)


def parse_markdown(text: str) -> list[Line]:
    """
    Classify each line of `text` and split it into styled runs.

    Blank lines are kept as run-less normal lines so they still take up
    vertical space.
    """
    lines = []
    for raw in text.split("\n"):
        line = raw.strip()
        if not line:
            lines.append(Line())
        elif line.startswith(RULE_PREFIXES):
            lines.append(Line(kind=LineKind.HR))
        else:
            header = HEADER_PATTERN.match(line)
            if header:
                lines.append(Line(
                    kind=LineKind.HEADER,
                    level=len(header.group(1)),
                    runs=tuple(parse_inline(header.group(2))),
                ))
            else:
                lines.append(Line(runs=tuple(parse_inline(line))))
    return lines


def _match_marker(text: str, pos: int) -> tuple[str, bool, bool, int]:
    """Return (marker, bold, italic, close) for the first marker at `pos` that closes."""
    for marker, bold, italic in INLINE_MARKERS:
        if text.startswith(marker, pos):
            # The enclosed text must be non-empty
            close = text.find(marker, pos + len(marker) + 1)
            if close != -1:
                return marker, bold, italic, close
    return "", False, False, -1


def parse_inline(text: str, start: int = 0) -> list[Run]:
    """
    Split `text[start:]` into runs.

    Scans left to right. At the first `*` the longest marker that has a
    closing partner wins. An opening marker with no partner anywhere ends
    the scan: everything from the last emitted run onward becomes one
    literal plain run, marker characters included.
    """
    runs: list[Run] = []
    plain_start = start
    pos = start

    while True:
        pos = text.find("*", pos)
        if pos == -1:
            break

        marker, bold, italic, close = _match_marker(text, pos)
        if close == -1:
            break

        if pos > plain_start:
            runs.append(Run(text[plain_start:pos]))
        runs.append(Run(text[pos + len(marker):close], bold=bold, italic=italic))
        pos = plain_start = close + len(marker)

    if plain_start < len(text):
        runs.append(Run(text[plain_start:]))
    return runs
