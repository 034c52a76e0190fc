#!/usr/bin/env python3
"""Main entry point for the bank ledger menu"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
