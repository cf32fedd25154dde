"""
Main entry point for Humantime when run as a module.

Allows running with: python -m humantime
"""

from humantime.cli.main import app

if __name__ == "__main__":
    app()
