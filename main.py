#!/usr/bin/env python3
"""
main.py - Quick-start entry point.

    python main.py render -p tiles/ -s 16 -i photo.jpg -o mosaic.png

Or list what a tile folder contributes:

    python main.py palette -p tiles/ -s 16
"""

from tessera.cli import app

if __name__ == "__main__":
    app()
