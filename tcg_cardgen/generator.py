"""Per-card pipeline and batch driver.

Each card goes parse -> resolve cardstyle -> validate -> render -> save.
A failure aborts only the card it belongs to; the batch carries on and
reports a summary at the end.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Union

from .card import Card, CardParser
from .config import settings
from .errors import CardGenError
from .render import CardRenderer
from .render.compositor import save
from .templates import TemplateResolver, validate_card
from .utils import get_logger

logger = get_logger(__name__)

CARD_SUFFIX = ".md"


@dataclass
class CardResult:
    """Outcome of processing one card file."""

    source: Path
    card: Optional[Card] = None
    output: Optional[Path] = None
    placeholders: int = 0
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchSummary:
    results: list[CardResult] = field(default_factory=list)

    @property
    def succeeded(self) -> list[CardResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> list[CardResult]:
        return [r for r in self.results if not r.ok]

    @property
    def ok(self) -> bool:
        return not self.failed


def find_card_files(paths: Iterable[Union[str, Path]]) -> list[Path]:
    """
    Expand files and directories into card files.

    Directories are searched recursively for `*.md`. Files are taken as
    given, whatever their suffix. Order is stable and duplicates dropped.
    """
    found: list[Path] = []
    seen: set[Path] = set()
    for entry in paths:
        path = Path(entry)
        if path.is_dir():
            candidates = sorted(p for p in path.rglob(f"*{CARD_SUFFIX}") if p.is_file())
        else:
            candidates = [path]
        for candidate in candidates:
            key = candidate.resolve()
            if key not in seen:
                seen.add(key)
                found.append(candidate)
    return found


class CardGenerator:
    """
    Turns card Markdown files into PNG images.

    The resolver and renderer (with their template and image caches) are
    shared by every card the generator processes, including across worker
    threads.
    """

    def __init__(
        self,
        resolver: Optional[TemplateResolver] = None,
        parser: Optional[CardParser] = None,
        renderer: Optional[CardRenderer] = None,
        output_dir: Optional[Union[str, Path]] = None,
        validate_only: bool = False,
        max_workers: Optional[int] = None,
    ):
        self.resolver = resolver or TemplateResolver()
        self.parser = parser or CardParser()
        self.renderer = renderer
        self.output_dir = Path(output_dir or settings.output_dir_name)
        self.validate_only = validate_only
        self.max_workers = max(1, max_workers or settings.max_workers)

    def output_path(self, source: Path) -> Path:
        """`<stem>.png` in the output dir; a relative output dir sits next to the source."""
        directory = self.output_dir if self.output_dir.is_absolute() else source.parent / self.output_dir
        return directory / f"{source.stem}.png"

    def generate(self, path: Union[str, Path]) -> CardResult:
        """
        Run the full pipeline for one card file.

        Raises:
            CardGenError: Any parse, template, validation or layer failure
        """
        path = Path(path)
        card = self.parser.parse_file(path)
        logger.debug(f"Card TCG: {card.tcg}, cardstyle: {card.cardstyle}, title: {card.title}")

        template = self.resolver.resolve(card.tcg, card.cardstyle)
        validate_card(card, template)

        if self.validate_only:
            logger.info(f"✓ {path} is valid")
            return CardResult(source=path, card=card)

        if self.renderer is None:
            self.renderer = CardRenderer()
        rendered = self.renderer.render(card, template)
        output = save(rendered, self.output_path(path), template.dimensions.dpi)

        placeholders = len(rendered.placeholders)
        if placeholders:
            logger.warning(f"{path}: {placeholders} image layer(s) rendered as placeholders")
        logger.info(f"Generated: {path} -> {output}")
        return CardResult(source=path, card=card, output=output, placeholders=placeholders)

    def process(self, path: Union[str, Path]) -> CardResult:
        """Like `generate`, but records the failure instead of raising."""
        path = Path(path)
        try:
            return self.generate(path)
        except CardGenError as e:
            logger.error(f"{path}: {e}")
            return CardResult(source=path, error=e)
        except Exception as e:
            logger.exception(f"{path}: unexpected error: {e}")
            return CardResult(source=path, error=e)

    def process_paths(self, paths: Iterable[Union[str, Path]]) -> BatchSummary:
        """
        Process every card under `paths`.

        Results keep input order. With more than one worker, cards render
        concurrently on a thread pool.
        """
        files = find_card_files(paths)
        if not files:
            logger.warning("No card files found")
            return BatchSummary()

        if self.renderer is None and not self.validate_only:
            self.renderer = CardRenderer()

        if self.max_workers <= 1 or len(files) == 1:
            results = [self.process(path) for path in files]
        else:
            by_path: dict[Path, CardResult] = {}
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = {executor.submit(self.process, path): path for path in files}
                for future in as_completed(futures):
                    by_path[futures[future]] = future.result()
            results = [by_path[path] for path in files]

        summary = BatchSummary(results=results)
        logger.info(
            f"Processed {len(results)} card(s): {len(summary.succeeded)} succeeded, "
            f"{len(summary.failed)} failed"
        )
        return summary
