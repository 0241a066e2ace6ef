"""
Module: overlay.config

Purpose:
    Configuration dataclass for the overlay renderer and generator.
    Immutable configuration with validation on construction.

Key Classes:
    - OverlayConfig: Rendering behaviour (font, colours, cover padding)

Dependencies:
    - dataclasses (std)
    - pathlib (std)

Used By:
    - overlay.renderer: OverlayRenderer
    - overlay.generator: generate_filled_pdf, generate_agreement
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

RGB = Tuple[float, float, float]

WHITE: RGB = (1.0, 1.0, 1.0)
BLACK: RGB = (0.0, 0.0, 0.0)


def _check_rgb(label: str, color: RGB) -> None:
    if len(color) != 3 or any(c < 0 or c > 1 for c in color):
        raise ValueError(f"{label} must be three components in 0..1: {color!r}")


@dataclass(frozen=True)
class OverlayConfig:
    """
    Configuration for overlaying values onto a template (immutable).

    Fields left as None fall back to the position registry's defaults,
    so one registry file can carry the template's house style.

    Attributes:
        font_name: Base-14 font name override (None = registry default_font)
        font_file: TrueType file to embed instead of a base-14 font
        text_color: RGB text colour override (None = registry default_color)
        cover_color: RGB fill of the rectangle painted over the placeholder
        cover_padding: Points added around the text on every side of the cover
        flatten_forms: Flatten AcroForm widgets after filling them

    Example:
        >>> config = OverlayConfig(text_color=(0, 0, 0.5))
        >>> config.cover_padding
        2.0
    """

    font_name: Optional[str] = None
    font_file: Optional[Path] = None
    text_color: Optional[RGB] = None
    cover_color: RGB = WHITE
    cover_padding: float = 2.0
    flatten_forms: bool = True

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.cover_padding < 0:
            raise ValueError(f"cover_padding must be non-negative: {self.cover_padding}")
        if self.text_color is not None:
            _check_rgb("text_color", self.text_color)
        _check_rgb("cover_color", self.cover_color)
        if self.font_name is not None and not self.font_name.strip():
            raise ValueError("font_name must not be blank")
