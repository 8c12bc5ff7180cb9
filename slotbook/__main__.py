"""
Entry point for ``python -m slotbook``.
"""

from .cli.app import app

if __name__ == "__main__":
    app()
