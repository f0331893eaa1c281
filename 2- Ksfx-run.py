#!/usr/bin/env python3
"""
Ksfx Runtime

Plays a sound effect on every key press. Usage: 2- Ksfx-run.py [CONFIG]
"""

import sys
import os

# Add current directory to path for imports (scripts live in the root)
sys.path.insert(0, os.path.dirname(__file__))

try:
    from Ksfx.runtime import main
except ImportError as e:
    print("Error: Required packages not installed. Run: pip install -e .")
    print(f"Missing: {e}")
    sys.exit(1)


if __name__ == "__main__":
    sys.exit(main())
