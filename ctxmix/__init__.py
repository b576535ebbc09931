"""Context-mixing compression components and wiki dump helpers."""

__version__ = "0.1.0"