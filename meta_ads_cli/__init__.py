"""Command-line client for the Meta Marketing (Graph) API."""

__version__ = "0.1.0"
