"""
repo-bootstrap - Main Entry Point

Run from the root of the control repository checkout:

    python main.py [--manifest config.json] [--yes] [--no-trigger]
"""

import sys

from bootstrapper.cli import main

if __name__ == "__main__":
    sys.exit(main())
