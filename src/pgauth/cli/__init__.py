"""Command-line interface for pgauth."""
