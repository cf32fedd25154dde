"""Utility functions for Humantime."""
