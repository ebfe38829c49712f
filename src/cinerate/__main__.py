"""Main entry point for the review service CLI.

Usage:
    python -m cinerate --help
    cinerate --help  # If installed via pip/uv
"""

from cinerate.cli import main

if __name__ == "__main__":
    main()
