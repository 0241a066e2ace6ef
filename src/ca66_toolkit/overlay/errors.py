"""
Module: overlay.errors

Purpose:
    Exceptions shared across the overlay pipeline.

    - ConfigurationError: malformed position table (fatal at load time)
    - RenderError: the document could not be filled (fatal for the render)

    A placeholder with no value and text wider than its box are NOT errors;
    they are logged and recorded on the OverlayReport.
"""

from ca66_toolkit.core.models.position import ConfigurationError


class RenderError(Exception):
    """Error while loading, filling or serializing a template document."""
    pass


__all__ = ["ConfigurationError", "RenderError"]
