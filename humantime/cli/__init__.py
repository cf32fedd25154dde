"""Command line interface for Humantime."""
