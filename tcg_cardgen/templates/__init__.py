"""Cardstyle templates: model, resolution and validation."""

from .models import (
    Align,
    CardStyleInfo,
    Dimensions,
    FitMode,
    Font,
    Layer,
    LayerOverride,
    LayerType,
    Region,
    Template,
)
from .resolver import TemplateResolver, merge_templates
from .validation import has_field, validate_card

__all__ = [
    "Align",
    "CardStyleInfo",
    "Dimensions",
    "FitMode",
    "Font",
    "Layer",
    "LayerOverride",
    "LayerType",
    "Region",
    "Template",
    "TemplateResolver",
    "has_field",
    "merge_templates",
    "validate_card",
]
