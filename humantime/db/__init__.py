"""Storage layer for Humantime."""
