"""Package entry point.

This module enables running the project with:

    python -m pacforge build ...
"""

from __future__ import annotations

import sys

from pacforge.cli import main

if __name__ == "__main__":
    sys.exit(main())
