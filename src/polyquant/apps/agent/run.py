"""CLI entry point for the edge-trading agent.

All command logic lives in the cli subpackage.
"""

from polyquant.apps.agent.cli import app

__all__ = ["app", "main"]


def main() -> None:
    """Run the agent CLI application."""
    app()


if __name__ == "__main__":
    main()
