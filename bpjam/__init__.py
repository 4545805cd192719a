"""Tools for buildpack authors: configs, dependency constraints, caching and inspection."""

__version__ = "2.0.0"