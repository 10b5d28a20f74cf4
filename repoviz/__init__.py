"""Interactive repository file-tree visualizer."""

__version__ = "0.1.0"
