"""Entry point for running llm-grid as a module."""

from llm_grid.cli.commands import app

if __name__ == "__main__":
    app()
