"""QuickEvent: menu bar calendar, quick notes and an OpenAI prompt for macOS."""

__version__ = "0.1.0"
