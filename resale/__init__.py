# This project was developed with assistance from AI tools.
"""HOA resale certificate workflow service."""

__version__ = "0.1.0"
