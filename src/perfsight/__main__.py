"""
PerfSight CLI Entry Point

Allows running the package as a module: python -m perfsight
"""

import sys


def main():
    """Main entry point for the CLI."""
    try:
        from perfsight.cli import app
    except ImportError as e:
        print(f"Error: Missing dependencies for CLI. {e}")
        print("Install with: pip install typer rich")
        sys.exit(1)
    app()


if __name__ == "__main__":
    main()
