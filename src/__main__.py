#!/usr/bin/env python3
"""
__main__.py - Module entry point for python -m execution

    python -m textmark_trace <command> [args]
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
