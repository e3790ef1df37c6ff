"""catalogview - change detection and materialization for AI model catalogs."""

__version__ = "0.1.0"
