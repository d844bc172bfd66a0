#!/usr/bin/env python3
"""
PathDedup Entry Point

Runs PathDedup from a source checkout without installing the package.

Usage:
    python3 pathdedup.py [options]

This is equivalent to:
    python3 -m pathdedup.cli.main [options]
"""

import sys

if __name__ == "__main__":
    from pathdedup.cli.main import main
    sys.exit(main())
