"""
Entry point for running the CLI as a module.

Usage:
    python -m bundlr
"""

from bundlr.cli import main

if __name__ == "__main__":
    main()
