"""Entry point for running doccheck as a module.

Usage:
    python -m doccheck src/
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
