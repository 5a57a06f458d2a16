"""autodidact - a self-improving research agent loop."""

__version__ = "0.1.0"
