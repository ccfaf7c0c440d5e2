"""Curses drawing and key dispatch."""
from krill.ui import input, screen  # noqa: F401
