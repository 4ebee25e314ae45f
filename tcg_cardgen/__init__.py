"""tcg-cardgen - trading card image generator."""

__version__ = "0.1.0"
