#!/usr/bin/env python3
"""Convenience runner for the Routista shape-to-route tool.

Usage:
    python run.py shape.png --lat 51.5 --lon -0.1 --radius 1500
"""
import sys

from routista.main import main

if __name__ == "__main__":
    sys.exit(main())
