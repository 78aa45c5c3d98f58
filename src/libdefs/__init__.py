"""Resolve and serve versioned library definitions from a definitions repository."""

__version__ = "0.4.0"
