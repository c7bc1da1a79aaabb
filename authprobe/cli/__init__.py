"""Command-line interface."""
from .main import build_parser, main, parse_options

__all__ = ["build_parser", "main", "parse_options"]
