"""
Entry point for running the API as a module.

Usage:
    python -m greenlight_api serve
"""

from greenlight_api.cli import main

if __name__ == "__main__":
    main()
