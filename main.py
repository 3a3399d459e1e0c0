#!/usr/bin/env python3
"""
main.py - Quick-start entry point.

    python main.py convert photo.png --palette tiles.csv --preview output/layout.png

Or use the module directly:

    python -m tile_mosaic.cli stats output/layout.json
"""

from tile_mosaic.cli import app

if __name__ == "__main__":
    app()
