#!/usr/bin/env python3
"""Multimer entry point.

Run with:
    python main.py
    python -m multimer
"""

from multimer.__main__ import main


if __name__ == "__main__":
    main()
