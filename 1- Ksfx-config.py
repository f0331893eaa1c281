#!/usr/bin/env python3
"""
Ksfx Configuration Tool

Interactive CLI tool for choosing sound pack folders and keyboard shortcuts.
"""

import sys
import os

# Add current directory to path for imports (scripts live in the root)
sys.path.insert(0, os.path.dirname(__file__))

try:
    from Ksfx.config_tool import main
except ImportError as e:
    print("Error: Required packages not installed. Run: pip install -e .")
    print(f"Missing: {e}")
    sys.exit(1)


if __name__ == "__main__":
    sys.exit(main())
