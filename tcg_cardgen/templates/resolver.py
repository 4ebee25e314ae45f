"""Cardstyle discovery, inheritance and caching."""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import yaml

from ..config import settings
from ..errors import (
    BaseTemplateNotFoundError,
    CyclicTemplateError,
    TemplateNotFoundError,
    TemplateParseError,
)
from ..utils import get_logger
from .models import CardStyleInfo, Layer, Template

logger = get_logger(__name__)

TEMPLATE_SUFFIXES = (".yaml", ".yml")

TIER_WORKSPACE = "workspace"
TIER_USER = "user"
TIER_LEGACY = "legacy"
TIER_BUILTIN = "builtin"


@dataclass
class _Candidate:
    """A location that may hold the requested cardstyle."""

    stem: Path
    tier: str
    require_tcg: Optional[str] = None


def find_template_file(path: Path) -> Optional[Path]:
    """Return the template file for `path`, trying the YAML suffixes when needed."""
    if path.suffix in TEMPLATE_SUFFIXES and path.is_file():
        return path
    for suffix in TEMPLATE_SUFFIXES:
        candidate = path.with_name(path.name + suffix)
        if candidate.is_file():
            return candidate
    return None


def merge_templates(base: Template, extended: Template) -> Template:
    """
    Merge an extending template onto its resolved base.

    The result keeps the extending template's identity. Dimensions are
    inherited when the extension leaves width at zero, required fields are
    unioned, and optional fields, style tokens and icons are merged key-wise
    with the extension winning. Layers come out as: base layers (with the
    extension's overrides applied) in base order, then extension layers whose
    names are new, then `additional_layers`.
    """
    result = extended.copy()

    if result.dimensions.width == 0:
        result.dimensions = base.dimensions
    if not result.tcg:
        result.tcg = base.tcg

    required: list[str] = []
    for name in base.required + extended.required:
        if name not in required:
            required.append(name)
    result.required = required

    result.optional = {**base.optional, **extended.optional}
    result.style_tokens = {**base.style_tokens, **extended.style_tokens}
    result.icons = {**base.icons, **extended.icons}

    base_names = {layer.name for layer in base.layers}
    for override in extended.overrides:
        if override.layer not in base_names:
            logger.warning(
                f"Override in {extended.source_path or extended.name} targets unknown layer '{override.layer}'"
            )

    merged: list[Layer] = []
    names: set[str] = set()
    for layer in base.layers:
        for override in extended.overrides:
            if override.layer == layer.name:
                layer = layer.with_overrides(override.updates)
        merged.append(layer)
        names.add(layer.name)

    for layer in extended.layers:
        if layer.name not in names:
            merged.append(layer)
            names.add(layer.name)

    merged.extend(extended.additional_layers)

    result.layers = merged
    result.overrides = []
    result.additional_layers = []
    result.base_chain = [str(extended.source_path or extended.name)] + base.base_chain
    return result


class TemplateResolver:
    """
    Finds, loads and merges cardstyles.

    Search order, first hit wins:
        1. Workspace:  <workspace>/<tcg>/<style>.yaml
        2. User:       <user>/<tcg>/<style>.yaml, then <user>/<style>.yaml
                       when its declared tcg matches
        3. Legacy:     <custom template dir>/<tcg>/<style>.yaml
        4. Builtin:    templates shipped with the package

    One resolver is meant to live for a whole run. Resolved templates are
    cached by (tcg, style) and never invalidated. Cache reads take no lock;
    two threads missing the same key may both load it, and the first insert
    wins.
    """

    def __init__(
        self,
        workspace_dir: Optional[Path] = None,
        user_dir: Optional[Path] = None,
        legacy_dir: Optional[Path] = None,
        builtin_dir: Optional[Path] = None,
        max_depth: Optional[int] = None,
    ):
        self.workspace_dir = Path(workspace_dir or settings.workspace_templates_dir)
        self.user_dir = Path(user_dir or settings.user_cardstyles_dir)
        legacy = legacy_dir or settings.template_dir
        self.legacy_dir = Path(legacy) if legacy else None
        self.builtin_dir = Path(builtin_dir or settings.builtin_templates_dir)
        self.max_depth = max_depth or settings.max_extends_depth
        self._cache: dict[tuple[str, str], Template] = {}

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, tcg: str, style: str) -> Template:
        """
        Resolve a cardstyle with its full `extends` chain merged in.

        Raises:
            TemplateNotFoundError: No tier provides the cardstyle
            BaseTemplateNotFoundError: An `extends` reference is dangling
            CyclicTemplateError: The chain loops or is deeper than the limit
            TemplateParseError: A file in the chain is malformed
        """
        key = (tcg, style)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        template = self._find(tcg, style, chain=[])
        if template is None:
            searched = [str(c.stem) for c in self._candidates(tcg, style)]
            raise TemplateNotFoundError(tcg, style, searched)

        self._check_resolved(template)
        logger.debug(
            f"Resolved cardstyle {tcg}/{style} from {template.source_tier}: "
            f"{' -> '.join(template.base_chain)}"
        )
        return self._cache.setdefault(key, template)

    def _candidates(self, tcg: str, style: str) -> list[_Candidate]:
        candidates = [
            _Candidate(self.workspace_dir / tcg / style, TIER_WORKSPACE),
            _Candidate(self.user_dir / tcg / style, TIER_USER),
            _Candidate(self.user_dir / style, TIER_USER, require_tcg=tcg),
        ]
        if self.legacy_dir:
            candidates.append(_Candidate(self.legacy_dir / tcg / style, TIER_LEGACY))
        candidates.append(_Candidate(self.builtin_dir / tcg / style, TIER_BUILTIN))
        return candidates

    def _find(self, tcg: str, style: str, chain: list[str]) -> Optional[Template]:
        for candidate in self._candidates(tcg, style):
            path = find_template_file(candidate.stem)
            if path is None:
                continue

            template = self._read(path, candidate.tier)
            if candidate.require_tcg is not None and template.tcg != candidate.require_tcg:
                logger.debug(
                    f"Skipping {path}: declares tcg '{template.tcg}', wanted '{candidate.require_tcg}'"
                )
                continue

            return self._process(template, chain)
        return None

    def _load(self, path: Path, tier: str, chain: list[str]) -> Template:
        return self._process(self._read(path, tier), chain)

    def _process(self, template: Template, chain: list[str]) -> Template:
        """Merge a freshly read template with its (recursively resolved) base."""
        identity = str(template.source_path.resolve()) if template.source_path else template.name
        if identity in chain:
            raise CyclicTemplateError(chain + [identity])
        if len(chain) >= self.max_depth:
            raise CyclicTemplateError(
                chain + [identity], f"extends depth limit of {self.max_depth} exceeded"
            )
        chain = chain + [identity]

        base = self._resolve_base(template, chain) if template.extends else Template()
        return merge_templates(base, template)

    def _resolve_base(self, template: Template, chain: list[str]) -> Template:
        reference = template.extends
        ref_path = Path(reference).expanduser()
        if not ref_path.is_absolute():
            ref_path = template.template_dir / ref_path

        found = find_template_file(ref_path)
        if found is not None:
            return self._load(found, template.source_tier, chain)

        # Bare names fall back to a style lookup within the same tcg
        if "/" not in reference and "\\" not in reference and Path(reference).suffix not in TEMPLATE_SUFFIXES:
            base = self._find(template.tcg, reference, chain)
            if base is not None:
                return base

        raise BaseTemplateNotFoundError(reference, str(template.source_path))

    def _read(self, path: Path, tier: str) -> Template:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise TemplateParseError(str(path), f"cannot read file: {e}") from e

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise TemplateParseError(str(path), f"invalid YAML: {e}") from e

        template = Template.from_dict(data, str(path))
        template.template_dir = path.parent
        template.source_path = path
        template.source_tier = tier
        return template

    @staticmethod
    def _check_resolved(template: Template) -> None:
        source = str(template.source_path or template.name)
        if template.dimensions.width <= 0 or template.dimensions.height <= 0:
            raise TemplateParseError(
                source,
                f"dimensions must be positive, got {template.dimensions.width}x{template.dimensions.height}",
            )
        seen: set[str] = set()
        for layer in template.layers:
            if layer.name in seen:
                raise TemplateParseError(source, f"duplicate layer name '{layer.name}'")
            seen.add(layer.name)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def list_cardstyles(self) -> list[CardStyleInfo]:
        """List every discoverable cardstyle, highest-priority tier first."""
        tiers: list[tuple[str, Optional[Path]]] = [
            (TIER_WORKSPACE, self.workspace_dir),
            (TIER_USER, self.user_dir),
            (TIER_LEGACY, self.legacy_dir),
            (TIER_BUILTIN, self.builtin_dir),
        ]

        cardstyles: list[CardStyleInfo] = []
        seen: set[tuple[str, str]] = set()
        for tier, root in tiers:
            if root is None or not root.is_dir():
                continue
            for info in self._discover(root, tier):
                key = (info.tcg, info.name)
                if key not in seen:
                    seen.add(key)
                    cardstyles.append(info)
        return cardstyles

    def _discover(self, root: Path, tier: str) -> Iterator[CardStyleInfo]:
        for entry in sorted(root.iterdir()):
            if entry.is_dir():
                for file in sorted(entry.iterdir()):
                    if file.is_file() and file.suffix in TEMPLATE_SUFFIXES:
                        info = self._info(file, tier, tcg=entry.name)
                        if info:
                            yield info
            elif tier == TIER_USER and entry.suffix in TEMPLATE_SUFFIXES:
                # Root-level user cardstyles take their tcg from the file itself
                info = self._info(entry, tier, tcg=None)
                if info:
                    yield info

    def _info(self, path: Path, tier: str, tcg: Optional[str]) -> Optional[CardStyleInfo]:
        try:
            template = self._read(path, tier)
        except TemplateParseError as e:
            logger.warning(f"Skipping unreadable cardstyle: {e}")
            return None

        tcg_name = tcg if tcg is not None else template.tcg
        if not tcg_name:
            logger.warning(f"Skipping {path}: root-level cardstyle declares no tcg")
            return None

        style = path.stem
        return CardStyleInfo(
            tcg=tcg_name,
            name=style,
            display_name=template.name or f"{tcg_name.upper()} {style.title()}",
            description=template.description,
            version=template.version or ("embedded" if tier == TIER_BUILTIN else ""),
            source=tier,
            path=str(path),
            extends=template.extends,
        )

