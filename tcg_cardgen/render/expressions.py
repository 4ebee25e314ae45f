"""Placeholder substitution and layer conditions.

Supports `{{path}}` placeholders and AND-only truthiness checks. Nothing
here evaluates arbitrary expressions.
"""

import re
from typing import Mapping

PLACEHOLDER_PATTERN = re.compile(r"\{\{([^{}]*)\}\}")

FOOTER_MARKER = "## footer"

# Values that make a condition operand falsy
FALSY_VALUES = ("", "null")


def substitute(text: str, namespace: Mapping[str, str]) -> str:
    """
    Replace every `{{key}}` in `text` with its namespace value.

    Substitution is a single pass: inserted values are never re-scanned, so
    a value that itself contains `{{...}}` is kept literally. Unknown keys
    resolve to an empty string.
    """
    if not text or "{{" not in text:
        return text or ""
    return PLACEHOLDER_PATTERN.sub(lambda m: namespace.get(m.group(1), ""), text)


def evaluate_condition(expression: str, namespace: Mapping[str, str]) -> bool:
    """
    Evaluate `a && b && ...` against the namespace.

    Each operand must exist with a value other than "" or "null". `{{`/`}}`
    decoration around operands is ignored. A blank expression is true.
    """
    expression = expression.replace("{{", "").replace("}}", "").strip()
    if not expression:
        return True

    for operand in expression.split("&&"):
        value = namespace.get(operand.strip())
        if value is None or value in FALSY_VALUES:
            return False
    return True


def replace_icons(text: str, icons: Mapping[str, str]) -> str:
    """Replace `{{icon}}` placeholders for declared icons with `[icon]` text."""
    for key in icons:
        text = text.replace("{{" + key + "}}", f"[{key}]")
    return text


def strip_headers(text: str) -> str:
    """Drop Markdown header lines."""
    return "\n".join(
        line for line in text.split("\n") if not line.strip().startswith("#")
    )


def split_footer(text: str) -> tuple[str, str]:
    """
    Split text at the first `## Footer` line (case-insensitive).

    Returns:
        (body, footer). The marker line itself is dropped and both sides
        lose their leading and trailing blank lines. Without a marker the
        text is returned unchanged with an empty footer.
    """
    lines = text.split("\n")
    marker = next(
        (i for i, line in enumerate(lines) if line.strip().lower() == FOOTER_MARKER),
        None,
    )
    if marker is None:
        return text, ""

    return _trim_blank(lines[:marker]), _trim_blank(lines[marker + 1:])


def _trim_blank(lines: list[str]) -> str:
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return "\n".join(lines[start:end])
