"""
ovalmodel CLI entry point.

Usage:
    python -m ovalmodel.cli summary <file>...
    python -m ovalmodel.cli validate <file>...
    python -m ovalmodel.cli export <file>... -o <out>
    python -m ovalmodel.cli bind <definitions> <variables>
"""

import sys
from .main import main

if __name__ == "__main__":
    sys.exit(main())
