"""Main entry point for the mediashelf package."""

from mediashelf.cli import app


def main():
    """Run the command-line interface."""
    app()


if __name__ == "__main__":
    main()
