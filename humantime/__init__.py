"""
Humantime: natural-language time tracking from the command line.
"""

__version__ = "0.1.0"
