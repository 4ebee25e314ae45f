"""Rendering: variable context, text layout, image fitting and compositing."""

from .compositor import CardRenderer, LayerOutcome, LayerStatus, RenderResult, save
from .context import build_context
from .expressions import evaluate_condition, substitute
from .fonts import FontBook
from .image_fit import fit_image, fitted_box, resolve_fit_mode
from .image_loader import ImageLoader
from .markdown import Line, LineKind, Run, parse_inline, parse_markdown
from .text_layout import TextLayoutEngine, wrap_runs

__all__ = [
    "CardRenderer",
    "FontBook",
    "ImageLoader",
    "LayerOutcome",
    "LayerStatus",
    "Line",
    "LineKind",
    "RenderResult",
    "Run",
    "TextLayoutEngine",
    "build_context",
    "evaluate_condition",
    "fit_image",
    "fitted_box",
    "parse_inline",
    "parse_markdown",
    "resolve_fit_mode",
    "save",
    "substitute",
    "wrap_runs",
]
