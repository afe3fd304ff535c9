"""Version information for lumosity-scraper."""

__version__ = "0.3.0"
__author__ = "Lumosity Stats Team"
__email__ = "stats-team@example.com"
