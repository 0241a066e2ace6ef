"""
Core Models Package

Immutable, validated data models for the placeholder position table.

All models in this package are frozen dataclasses. The position table is
process-wide static configuration, so nothing built from it may be mutated
after load.
"""

from .position import ConfigurationError, PagePlacement, Position, strip_brackets, bracketed

__all__ = [
    "ConfigurationError",
    "PagePlacement",
    "Position",
    "strip_brackets",
    "bracketed",
]
