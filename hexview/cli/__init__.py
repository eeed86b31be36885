"""Command-line interface for hexview."""
