from pathlib import Path
from typing import Any, Callable

import pytest
import yaml
from PIL import Image

from tcg_cardgen.card import Card, CardParser
from tcg_cardgen.config import settings
from tcg_cardgen.templates import Template, TemplateResolver

BOLT_SOURCE = """---
card:
  tcg: mtg
  title: Bolt
---
# Bolt
Deals 3 damage.
## Footer
*flavor*
"""


def write_yaml(path: Path, data: dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


def text_layer(name: str, content: str, y: int = 10, height: int = 100, **extra: Any) -> dict[str, Any]:
    layer = {
        "name": name,
        "type": "text",
        "content": content,
        "region": {"x": 10, "y": y, "width": 280, "height": height},
        "font": {"size": 14, "color": "#000000"},
    }
    layer.update(extra)
    return layer


@pytest.fixture
def template_roots(tmp_path: Path) -> dict[str, Path]:
    """Empty workspace/user/legacy/builtin tiers under tmp_path."""
    roots = {name: tmp_path / name for name in ("workspace", "user", "legacy", "builtin")}
    for root in roots.values():
        root.mkdir()
    return roots


@pytest.fixture
def resolver(template_roots: dict[str, Path]) -> TemplateResolver:
    return TemplateResolver(
        workspace_dir=template_roots["workspace"],
        user_dir=template_roots["user"],
        legacy_dir=template_roots["legacy"],
        builtin_dir=template_roots["builtin"],
    )


@pytest.fixture
def builtin_resolver(tmp_path: Path) -> TemplateResolver:
    """Resolver that only sees the cardstyles shipped with the package."""
    return TemplateResolver(
        workspace_dir=tmp_path / "no-workspace",
        user_dir=tmp_path / "no-user",
        builtin_dir=settings.builtin_templates_dir,
    )


@pytest.fixture
def parser() -> CardParser:
    return CardParser(default_tcg="mtg", default_cardstyle="default")


@pytest.fixture
def bolt_card(parser: CardParser) -> Card:
    return parser.parse_text(BOLT_SOURCE)


@pytest.fixture
def bolt_template(tmp_path: Path) -> Template:
    """Minimal template: one text layer for the body, one for the footer."""
    template = Template.from_dict(
        {
            "name": "Bolt Test",
            "tcg": "mtg",
            "dimensions": {"width": 300, "height": 400, "dpi": 300},
            "required_fields": ["card.tcg", "card.title"],
            "layers": [
                text_layer("body", "{{card.body}}", y=10, height=200),
                text_layer("footer", "{{card.footer}}", y=250, height=100),
            ],
        }
    )
    template.template_dir = tmp_path
    return template


@pytest.fixture
def make_png(tmp_path: Path) -> Callable[..., Path]:
    def _make(name: str = "art.png", size: tuple[int, int] = (40, 20), color: tuple = (255, 0, 0, 255)) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGBA", size, color).save(path, "PNG")
        return path

    return _make
