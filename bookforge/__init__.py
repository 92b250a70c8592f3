"""Load, organise and scaffold Markdown books laid out by a SUMMARY.md file."""

__version__ = "0.1.0"

__all__ = ["sections", "summary", "book", "pipeline", "project"]