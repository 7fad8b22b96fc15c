"""Entry point for ``python -m satsim``."""

import sys

from satsim.cli import main

if __name__ == "__main__":
    sys.exit(main())
