"""Command-line interface for polyinit."""
