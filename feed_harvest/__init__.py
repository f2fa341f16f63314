"""
feed_harvest - declarative article harvesting from listing pages.

This package extracts article records (title, URL, date) from listing pages
described as YAML data, deduplicates them, keeps a bounded batch and recovers
missing dates from each article's own page.

Main entry point is the CLI via `feed-harvest run` command.

Example:
    $ feed-harvest run -s sources.yaml -o out/
"""

__all__ = ["__version__", "Pipeline", "Record", "SourceConfig", "load_sources"]
__version__ = "0.1.0"

from .core.types import Record, SourceConfig
from .runner import Pipeline
from .sources import load_sources
