"""Lumosity Stats Harvester.

Batched headless-browser pipeline that logs into Lumosity accounts, captures
the app's API responses, and normalizes them into per-account reports with
date-aware monthly streak calendars.
"""

from .version import __version__, __author__, __email__
from .config import AppSettings, get_settings

__all__ = [
    "__version__",
    "__author__",
    "__email__",
    "AppSettings",
    "get_settings",
    # Key subpackages
    "models",
    "extractors",
    "transformers",
    "loaders",
    "pipelines",
    "io_clients",
    "utils",
]
