"""
Module: position

Purpose:
    Provides the Position dataclass - one physical anchor on a template
    page where a placeholder's value is drawn - and PagePlacement, the
    per-page view of a Position used by the overlay renderer.

Key Functions:
    - Position.box(): (x0, y0, x1, y1) region in PDF points
    - Position.overlaps(other): Check for overlap with another position
    - Position.to_dict(): Serialize for JSON
    - Position.from_dict(data): Deserialize from JSON
    - strip_brackets() / bracketed(): Placeholder name normalization

Dependencies:
    - dataclasses (std)
    - numbers (std)

Used By:
    - overlay.registry.PositionRegistry
    - overlay.renderer.OverlayRenderer
    - overlay.calibration
    - overlay.visualizer

Coordinate System:
    x/y are PDF points measured from the BOTTOM-LEFT corner of the page.
    Anything reading coordinates from a top-left-origin tool (PyMuPDF
    words, image viewers) must convert before building a Position.
"""

from __future__ import annotations

from dataclasses import dataclass
from numbers import Real
from typing import Optional


class ConfigurationError(ValueError):
    """Malformed placeholder position configuration."""
    pass


def strip_brackets(name: str) -> str:
    """
    Remove surrounding square brackets from a placeholder name.

    Example:
        >>> strip_brackets("[LICENSEE]")
        'LICENSEE'
        >>> strip_brackets("LICENSEE")
        'LICENSEE'
    """
    return name.strip().strip("[]")


def bracketed(name: str) -> str:
    """
    Canonical bracketed form of a placeholder name.

    Example:
        >>> bracketed("START-DATE")
        '[START-DATE]'
    """
    return f"[{strip_brackets(name)}]"


def _is_number(value: object) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


@dataclass(frozen=True, slots=True)
class Position:
    """
    One draw anchor for a placeholder value.

    Attributes:
        page: 1-based page number
        x: Left edge of the text baseline in points (from page left)
        y: Text baseline in points (from page BOTTOM)
        size: Font size in points
        max_width: Declared width of the box in points (None = unconstrained)
        description: Human-readable note for template authors

    Invariants:
        - page >= 1
        - x >= 0, y >= 0
        - size > 0
        - max_width is None or max_width > 0

    Example:
        >>> pos = Position(page=1, x=345, y=685, size=10, max_width=80)
        >>> pos.box()
        (345, 685, 425, 695)
    """

    page: int
    x: float
    y: float
    size: float
    max_width: Optional[float] = None
    description: str = ""

    def __post_init__(self) -> None:
        """Validate position on construction."""
        if not isinstance(self.page, int) or isinstance(self.page, bool):
            raise ConfigurationError(f"page must be an integer: {self.page!r}")
        if self.page < 1:
            raise ConfigurationError(f"page must be >= 1: {self.page}")
        for label, value in (("x", self.x), ("y", self.y), ("size", self.size)):
            if not _is_number(value):
                raise ConfigurationError(f"{label} must be a number: {value!r}")
        if self.x < 0:
            raise ConfigurationError(f"x must be >= 0: {self.x}")
        if self.y < 0:
            raise ConfigurationError(f"y must be >= 0: {self.y}")
        if self.size <= 0:
            raise ConfigurationError(f"size must be > 0: {self.size}")
        if self.max_width is not None:
            if not _is_number(self.max_width):
                raise ConfigurationError(f"maxWidth must be a number: {self.max_width!r}")
            if self.max_width <= 0:
                raise ConfigurationError(f"maxWidth must be > 0: {self.max_width}")

    # ─────────────────────────────────────────────────────────────────────────
    # Geometry
    # ─────────────────────────────────────────────────────────────────────────

    def box(self) -> tuple[float, float, float, float]:
        """
        Declared region as (x0, y0, x1, y1) in bottom-left PDF points.

        Width is max_width (zero when unconstrained), height is the font size.
        """
        width = self.max_width or 0
        return (self.x, self.y, self.x + width, self.y + self.size)

    def overlaps(self, other: Position, clearance: float = 0.0) -> bool:
        """
        Check if this position's box overlaps another on the same page.

        With a clearance, boxes closer than that gap also count as
        overlapping. Boxes exactly clearance apart do NOT overlap.
        """
        if self.page != other.page:
            return False
        ax0, ay0, ax1, ay1 = self.box()
        bx0, by0, bx1, by1 = other.box()
        return (
            ax0 < bx1 + clearance
            and bx0 < ax1 + clearance
            and ay0 < by1 + clearance
            and by0 < ay1 + clearance
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Serialization
    # ─────────────────────────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        """
        Serialize to the JSON configuration form.

        Returns:
            Dict with page, x, y, size and optionally maxWidth, description
        """
        d = {"page": self.page, "x": self.x, "y": self.y, "size": self.size}
        if self.max_width is not None:
            d["maxWidth"] = self.max_width
        if self.description:
            d["description"] = self.description
        return d

    @classmethod
    def from_dict(cls, data: dict, *, default_size: Optional[float] = None) -> Position:
        """
        Deserialize from the JSON configuration form.

        Args:
            data: Dict with page, x, y and optionally size, maxWidth, description
            default_size: Font size used when the entry declares none

        Returns:
            Position instance

        Raises:
            ConfigurationError: If required keys are missing or values invalid
        """
        if not isinstance(data, dict):
            raise ConfigurationError(f"position entry must be an object: {data!r}")
        for key in ("page", "x", "y"):
            if key not in data:
                raise ConfigurationError(f"position entry missing '{key}': {data!r}")
        size = data.get("size", default_size)
        if size is None:
            raise ConfigurationError(f"position entry missing 'size' and no default set: {data!r}")
        return cls(
            page=data["page"],
            x=data["x"],
            y=data["y"],
            size=size,
            max_width=data.get("maxWidth"),
            description=data.get("description", ""),
        )

    def __repr__(self) -> str:
        """Concise representation for debugging."""
        return f"Position(p{self.page}, {self.x}, {self.y}, {self.size}pt, w={self.max_width})"


@dataclass(frozen=True, slots=True)
class PagePlacement:
    """
    A Position as seen while processing one page.

    Attributes:
        derived_name: Per-occurrence name, e.g. "[LICENSEE]_2"
        original_name: Placeholder name used for value lookup, e.g. "[LICENSEE]"
        position: The position itself (position.page is the page being processed)
    """

    derived_name: str
    original_name: str
    position: Position

    @property
    def page(self) -> int:
        return self.position.page
