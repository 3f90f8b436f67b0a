"""
.. include:: ../README.md
"""

__all__ = [
    "command",
    "config",
    "exceptions",
    "generator",
    "loader",
    "resource",
    "values",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
