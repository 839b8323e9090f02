"""
inspection_reports/__main__.py
==============================

Allows ``python -m inspection_reports``; see :mod:`inspection_reports.cli`.
"""

import sys

from inspection_reports.cli import main

if __name__ == "__main__":
    sys.exit(main())
