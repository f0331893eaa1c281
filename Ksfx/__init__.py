"""
Ksfx - Keyboard sound effects from the command line.

This package provides tools for:
- Playing a sound effect on every key press, pitched by typing cadence
- Switching between sound packs (folders of clips) with keyboard shortcuts
- Configuring sound packs and shortcuts interactively
"""

__version__ = "1.0.0"
__description__ = "Keyboard sound effects with cadence-driven pitch"
