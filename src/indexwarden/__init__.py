"""indexwarden: freshness and consistency checks for a derived code index."""

__version__ = "0.1.0"
