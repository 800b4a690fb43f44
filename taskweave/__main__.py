"""Entry point for ``python -m taskweave``."""

from taskweave.cli.commands import app

if __name__ == "__main__":
    app()
