"""Card model and parser for Markdown files with a YAML metadata block."""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .config import settings
from .errors import CardParseError
from .utils import get_logger

logger = get_logger(__name__)

FRONTMATTER_DELIMITER = "---"

# A line made only of three or more '-', '*' or '_' characters
RULE_PATTERN = re.compile(r"^(?:-{3,}|\*{3,}|_{3,})$")

# Single-asterisk italic line, e.g. *The spark of a new age.*
ITALIC_LINE_PATTERN = re.compile(r"^\*(?!\*)(.+?)(?<!\*)\*$")

# Bold blockquote content, e.g. **Creature - Goblin**
BOLD_PATTERN = re.compile(r"^\*\*(.+)\*\*$")

TYPED_FIELDS = ("tcg", "cardstyle", "title", "type", "rarity", "set", "artist")

# Marker some cards repeat at the top of the flavor section
FOOTER_HEADER = "## footer"


@dataclass(frozen=True)
class Card:
    """A parsed card source file. Immutable once constructed."""

    tcg: str
    title: str
    cardstyle: str = ""
    type: str = ""
    rarity: str = "common"
    set: str = "Unknown"
    artist: str = "Unknown Artist"
    print_this: int = 1
    print_total: int = 1
    body: str = ""
    rules_text: str = ""
    flavor_text: str = ""
    mana_cost: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    source_file: Optional[Path] = None

    def get_nested(self, section: str, key: str) -> Any:
        """Return metadata[section][key], or None when absent or not a mapping."""
        section_data = self.metadata.get(section)
        if isinstance(section_data, dict):
            return section_data.get(key)
        return None


@dataclass
class BodyParts:
    """Structural pieces derived from a card body."""

    rules_text: str = ""
    flavor_text: str = ""
    mana_cost: str = ""
    type_line: str = ""


def _title_from_filename(path: Path) -> str:
    words = path.stem.replace("_", " ").split(" ")
    return " ".join(word[:1].upper() + word[1:] for word in words)


def _trim_blank_lines(lines: list[str]) -> list[str]:
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]


def split_frontmatter(text: str) -> tuple[Optional[str], str]:
    """
    Split raw file content into (frontmatter, body).

    The block must start on the very first line with a line containing only
    `---` and end at the next such line. Without a block the whole text is
    the body and frontmatter is None.

    Raises:
        ValueError: If the block is opened but never closed
    """
    lines = text.splitlines()
    if not lines or lines[0].strip() != FRONTMATTER_DELIMITER:
        return None, text

    for index in range(1, len(lines)):
        if lines[index].strip() == FRONTMATTER_DELIMITER:
            frontmatter = "\n".join(lines[1:index])
            body = "\n".join(lines[index + 1:])
            return frontmatter, body

    raise ValueError("metadata block is not terminated by '---'")


def parse_body(body: str) -> BodyParts:
    """
    Derive rules text, flavor text, mana cost and type line from a card body.

    Leading blockquotes carry the mana cost (`> {2}{R}`) and the type line
    (`> **Instant**`). A horizontal rule separates rules text from the
    flavor section, where `*italic*` lines lose their asterisks.
    """
    parts = BodyParts()
    lines = body.splitlines()

    index = 0
    while index < len(lines) and not lines[index].strip():
        index += 1

    while index < len(lines) and lines[index].lstrip().startswith(">"):
        quoted = lines[index].lstrip()[1:].strip()
        bold = BOLD_PATTERN.match(quoted)
        if bold and not parts.type_line:
            parts.type_line = bold.group(1).strip()
        elif quoted and not parts.mana_cost:
            parts.mana_cost = quoted
        index += 1

    remaining = lines[index:]
    rule_index = next(
        (i for i, line in enumerate(remaining) if RULE_PATTERN.match(line.strip())),
        None,
    )

    if rule_index is None:
        parts.rules_text = "\n".join(_trim_blank_lines(remaining))
        return parts

    parts.rules_text = "\n".join(_trim_blank_lines(remaining[:rule_index]))

    flavor_lines = []
    for line in remaining[rule_index + 1:]:
        stripped = line.strip()
        if not stripped:
            continue
        if not flavor_lines and stripped.lower() == FOOTER_HEADER:
            continue
        italic = ITALIC_LINE_PATTERN.match(stripped)
        flavor_lines.append(italic.group(1).strip() if italic else stripped)
    parts.flavor_text = "\n".join(flavor_lines)

    return parts


class CardParser:
    """Parses card Markdown files into Card objects."""

    def __init__(
        self,
        default_tcg: Optional[str] = None,
        default_cardstyle: Optional[str] = None,
    ):
        self.default_tcg = default_tcg or settings.default_tcg
        self.default_cardstyle = default_cardstyle or settings.default_cardstyle

    def parse_file(self, path: Union[str, Path]) -> Card:
        """
        Parse a card file from disk.

        Args:
            path: Path to the Markdown source

        Returns:
            The parsed Card

        Raises:
            CardParseError: If the file cannot be read or its metadata is malformed
        """
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise CardParseError(path, f"cannot open file: {e}") from e
        return self.parse_text(text, source_file=path)

    def parse_text(self, text: str, source_file: Optional[Path] = None) -> Card:
        """Parse card source text. `source_file` provides the default title."""
        label = str(source_file) if source_file else "<text>"

        try:
            frontmatter, body = split_frontmatter(text)
        except ValueError as e:
            raise CardParseError(label, str(e)) from e

        metadata: dict[str, Any] = {}
        if frontmatter is not None and frontmatter.strip():
            try:
                loaded = yaml.safe_load(frontmatter)
            except yaml.YAMLError as e:
                raise CardParseError(label, f"error parsing YAML metadata: {e}") from e
            if loaded is not None and not isinstance(loaded, dict):
                raise CardParseError(label, "metadata block must be a mapping")
            metadata = {str(k): v for k, v in (loaded or {}).items()}

        typed = {name: self._typed_value(metadata, name) for name in TYPED_FIELDS}
        parts = parse_body(body)

        title = typed["title"]
        if not title:
            title = _title_from_filename(source_file) if source_file else "Untitled"

        card = Card(
            tcg=typed["tcg"] or self.default_tcg,
            cardstyle=typed["cardstyle"] or self.default_cardstyle,
            title=title,
            type=typed["type"] or parts.type_line,
            rarity=typed["rarity"] or "common",
            set=typed["set"] or "Unknown",
            artist=typed["artist"] or "Unknown Artist",
            print_this=self._int_value(metadata, "print_this", label),
            print_total=self._int_value(metadata, "print_total", label),
            body=body.strip(),
            rules_text=parts.rules_text,
            flavor_text=parts.flavor_text,
            mana_cost=parts.mana_cost,
            metadata=metadata,
            source_file=source_file,
        )
        logger.debug(
            f"Parsed card '{card.title}' (tcg={card.tcg}, cardstyle={card.cardstyle}) from {label}"
        )
        return card

    @staticmethod
    def _lookup(metadata: dict[str, Any], name: str) -> Any:
        section = metadata.get("card")
        if isinstance(section, dict) and section.get(name) is not None:
            return section[name]
        return metadata.get(f"card.{name}")

    def _typed_value(self, metadata: dict[str, Any], name: str) -> str:
        value = self._lookup(metadata, name)
        if value is None or isinstance(value, (dict, list)):
            return ""
        return str(value).strip()

    def _int_value(self, metadata: dict[str, Any], name: str, label: str) -> int:
        value = self._lookup(metadata, name)
        if value is None or value == "":
            return 1
        try:
            number = int(value)
        except (TypeError, ValueError) as e:
            raise CardParseError(label, f"card.{name} must be an integer, got {value!r}") from e
        return number if number != 0 else 1
