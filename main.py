#!/usr/bin/env python3
"""Tabletop — entry point.

Run with:
    python main.py run "Board Game"
    python -m tabletop run "Board Game"
"""

import sys

from tabletop.__main__ import main


if __name__ == "__main__":
    sys.exit(main())
