"""Command-line interface for Dispatchr."""
