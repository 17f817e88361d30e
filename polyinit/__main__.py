"""Entry point for ``python -m polyinit``."""

from polyinit.cli.commands import app

if __name__ == "__main__":
    app()
