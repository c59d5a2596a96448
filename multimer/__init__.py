"""Multimer: multiple independent countdown timers that survive restarts."""

__version__ = "0.1.0"
