"""Command-line interface for listproof."""
