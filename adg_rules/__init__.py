"""adg-rules: merge upstream filter lists into category-specific outputs."""

__version__ = "0.1.0"
