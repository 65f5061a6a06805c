"""ggo: frecency-ranked fuzzy branch switching for git."""

__version__ = "0.4.0"
