"""Version-gated build matrix and artifact publishing."""

__version__ = "0.3.0"
