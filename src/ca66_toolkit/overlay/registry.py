"""
Module: overlay.registry

Purpose:
    Static placeholder table for the PDF template. Maps each named
    placeholder to one or more page-relative draw positions and answers
    the two queries the renderer needs: all positions of a placeholder,
    and all placements on a given page.

Key Functions:
    - default_registry(): Registry for the shipped CA-66 template
    - PositionRegistry.from_json(path): Load a custom table

Key Classes:
    - PositionRegistry: Immutable placeholder -> positions table

Dependencies:
    - json (std)
    - core.models.position: Position, PagePlacement

Used By:
    - overlay.renderer: Per-page placement lookup
    - overlay.visualizer: Debug previews
    - cli: positions command

Configuration Format:
    {
      "page_width": 612, "page_height": 792,
      "default_font": "Helvetica", "default_font_size": 11,
      "default_color": [0, 0, 0], "cover_clearance": 2,
      "placeholders": {"[NAME]": {position} | [{position}, ...]},
      "aliases": {"OTHER-NAME": "[NAME]"}
    }
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from numbers import Real
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ca66_toolkit.core.models.position import (
    ConfigurationError,
    PagePlacement,
    Position,
    bracketed,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "data" / "ca66_positions.json"

# US Letter in points
DEFAULT_PAGE_WIDTH = 612
DEFAULT_PAGE_HEIGHT = 792
DEFAULT_FONT = "Helvetica"
DEFAULT_FONT_SIZE = 11
DEFAULT_COLOR = (0.0, 0.0, 0.0)
# Minimum gap between boxes on a page; covers extend this far past their box
DEFAULT_COVER_CLEARANCE = 2.0

PositionEntry = Union[Position, Sequence[Position]]


def _is_number(value: object) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


class PositionRegistry:
    """
    Immutable placeholder -> position(s) table.

    Placeholder names are stored in bracketed form ("[LICENSEE]") and may
    be queried with or without brackets. A placeholder with several
    positions yields one PagePlacement per occurrence, each with a derived
    name ("[LICENSEE]_1", "[LICENSEE]_2", ...) that still resolves back to
    the original name for value lookup.

    Attributes:
        page_width: Template page width in points
        page_height: Template page height in points
        default_font: Font name used when the renderer is not overridden
        default_font_size: Size applied to entries that declare none
        default_color: RGB text colour, components in 0..1
        cover_clearance: Minimum gap in points between boxes on one page

    Example:
        >>> registry = PositionRegistry({
        ...     "[EMAIL]": Position(page=4, x=350, y=386, size=11, max_width=250),
        ... })
        >>> len(registry.get_positions("EMAIL"))
        1
        >>> registry.get_positions("UNKNOWN")
        ()
    """

    def __init__(
        self,
        placeholders: Mapping[str, PositionEntry],
        *,
        aliases: Optional[Mapping[str, str]] = None,
        page_width: float = DEFAULT_PAGE_WIDTH,
        page_height: float = DEFAULT_PAGE_HEIGHT,
        default_font: str = DEFAULT_FONT,
        default_font_size: float = DEFAULT_FONT_SIZE,
        default_color: Sequence[float] = DEFAULT_COLOR,
        cover_clearance: float = DEFAULT_COVER_CLEARANCE,
    ) -> None:
        if not isinstance(placeholders, Mapping):
            raise ConfigurationError(f"placeholders must be a mapping: {placeholders!r}")
        table: Dict[str, Tuple[Position, ...]] = {}
        for name, entry in placeholders.items():
            if not isinstance(name, str):
                raise ConfigurationError(f"Placeholder name must be a string: {name!r}")
            key = bracketed(name)
            if key in table:
                raise ConfigurationError(f"Duplicate placeholder: {key}")
            if isinstance(entry, Position):
                positions = (entry,)
            elif isinstance(entry, Sequence) and not isinstance(entry, str):
                positions = tuple(entry)
            else:
                raise ConfigurationError(f"Placeholder {key} needs a Position or a list of them: {entry!r}")
            if not positions:
                raise ConfigurationError(f"Placeholder {key} has no positions")
            for pos in positions:
                if not isinstance(pos, Position):
                    raise ConfigurationError(f"Placeholder {key} has a non-Position entry: {pos!r}")
            table[key] = positions

        if aliases is None:
            aliases = {}
        if not isinstance(aliases, Mapping):
            raise ConfigurationError(f"aliases must be a mapping of name -> placeholder: {aliases!r}")
        alias_table: Dict[str, str] = {}
        for alias, target in aliases.items():
            if not isinstance(alias, str) or not isinstance(target, str):
                raise ConfigurationError(f"Alias entries must be strings: {alias!r} -> {target!r}")
            alias_key = bracketed(alias)
            target_key = bracketed(target)
            if alias_key in table:
                raise ConfigurationError(f"Alias {alias_key} shadows a configured placeholder")
            if target_key not in table:
                raise ConfigurationError(f"Alias {alias_key} points at unknown placeholder {target_key}")
            alias_table[alias_key] = target_key

        for label, value in (
            ("page_width", page_width),
            ("page_height", page_height),
            ("default_font_size", default_font_size),
        ):
            if not _is_number(value) or value <= 0:
                raise ConfigurationError(f"{label} must be a number > 0: {value!r}")
        if not _is_number(cover_clearance) or cover_clearance < 0:
            raise ConfigurationError(f"cover_clearance must be a number >= 0: {cover_clearance!r}")
        if not isinstance(default_font, str) or not default_font.strip():
            raise ConfigurationError(f"default_font must be a non-empty string: {default_font!r}")
        if (
            isinstance(default_color, str)
            or not isinstance(default_color, Sequence)
            or len(default_color) != 3
            or not all(_is_number(c) and 0 <= c <= 1 for c in default_color)
        ):
            raise ConfigurationError(f"default_color must be three components in 0..1: {default_color!r}")

        self._table = MappingProxyType(table)
        self._aliases = MappingProxyType(alias_table)
        self.page_width = page_width
        self.page_height = page_height
        self.default_font = default_font
        self.default_font_size = default_font_size
        self.default_color = tuple(float(c) for c in default_color)
        self.cover_clearance = cover_clearance

        # Partition once; queries never touch the source table again
        by_page: Dict[int, List[PagePlacement]] = {}
        for placement in self._iter_placements():
            by_page.setdefault(placement.page, []).append(placement)
        self._by_page = MappingProxyType({page: tuple(items) for page, items in by_page.items()})

        overlaps = self.find_overlaps()
        if overlaps:
            pairs = ", ".join(f"{a} / {b}" for a, b in overlaps)
            raise ConfigurationError(f"Overlapping placeholder regions: {pairs}")

        for placement in self._iter_placements():
            x0, y0, x1, y1 = placement.position.box()
            if x1 > page_width or y1 > page_height:
                logger.warning(
                    f"{placement.derived_name} extends past the page "
                    f"({x1:.0f}x{y1:.0f} > {page_width}x{page_height})"
                )

    # ─────────────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────────────

    def get_positions(self, name: str) -> Tuple[Position, ...]:
        """
        All positions configured for a placeholder.

        Accepts the name with or without brackets, or any registered alias.
        Unknown names return an empty tuple; this never raises.
        """
        key = self.canonical_name(name)
        if key is None:
            return ()
        return self._table[key]

    def get_positions_for_page(self, page_number: int) -> List[PagePlacement]:
        """
        Placements whose position lies on the given 1-based page.

        Every returned placement has position.page == page_number. Across
        all pages the union is the full position set with no duplicates.
        """
        return list(self._by_page.get(page_number, ()))

    def canonical_name(self, name: str) -> Optional[str]:
        """Resolve a name or alias to its bracketed table key, or None."""
        key = bracketed(name)
        if key in self._table:
            return key
        return self._aliases.get(key)

    def all_placements(self) -> List[PagePlacement]:
        """Every placement in the table, in configuration order."""
        return list(self._iter_placements())

    def find_overlaps(self) -> List[Tuple[str, str]]:
        """
        Pairs of derived names whose boxes sit closer than cover_clearance
        on one page. A cover rectangle reaches that far past its box, so a
        closer neighbour would have its text painted over.

        Returns:
            List of (derived_name_a, derived_name_b) tuples, empty when clean
        """
        overlaps: List[Tuple[str, str]] = []
        for placements in self._by_page.values():
            for i, first in enumerate(placements):
                for second in placements[i + 1:]:
                    if first.position.overlaps(second.position, clearance=self.cover_clearance):
                        overlaps.append((first.derived_name, second.derived_name))
        return overlaps

    @property
    def placeholder_names(self) -> Tuple[str, ...]:
        return tuple(self._table)

    @property
    def aliases(self) -> Mapping[str, str]:
        return self._aliases

    @property
    def pages(self) -> Tuple[int, ...]:
        """Sorted page numbers that carry at least one position."""
        return tuple(sorted(self._by_page))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.canonical_name(name) is not None

    def __len__(self) -> int:
        return len(self._table)

    def __iter__(self):
        return iter(self._table)

    def _iter_placements(self) -> Iterable[PagePlacement]:
        for name, positions in self._table.items():
            if len(positions) == 1:
                yield PagePlacement(name, name, positions[0])
                continue
            for index, pos in enumerate(positions, start=1):
                yield PagePlacement(f"{name}_{index}", name, pos)

    # ─────────────────────────────────────────────────────────────────────────
    # Serialization
    # ─────────────────────────────────────────────────────────────────────────

    @classmethod
    def from_dict(cls, data: Mapping) -> PositionRegistry:
        """
        Build a registry from the JSON configuration form.

        Raises:
            ConfigurationError: If any entry is malformed
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError("Registry configuration must be an object")
        raw = data.get("placeholders")
        if not isinstance(raw, Mapping):
            raise ConfigurationError("Registry configuration needs a 'placeholders' object")

        default_size = data.get("default_font_size", DEFAULT_FONT_SIZE)
        placeholders: Dict[str, Tuple[Position, ...]] = {}
        for name, entry in raw.items():
            entries = entry if isinstance(entry, list) else [entry]
            try:
                placeholders[name] = tuple(
                    Position.from_dict(item, default_size=default_size) for item in entries
                )
            except ConfigurationError as e:
                raise ConfigurationError(f"{name}: {e}") from e

        return cls(
            placeholders,
            aliases=data.get("aliases") or {},
            page_width=data.get("page_width", DEFAULT_PAGE_WIDTH),
            page_height=data.get("page_height", DEFAULT_PAGE_HEIGHT),
            default_font=data.get("default_font", DEFAULT_FONT),
            default_font_size=default_size,
            default_color=data.get("default_color", DEFAULT_COLOR),
            cover_clearance=data.get("cover_clearance", DEFAULT_COVER_CLEARANCE),
        )

    @classmethod
    def from_json(cls, path: Path) -> PositionRegistry:
        """
        Load a registry from a JSON file.

        Raises:
            ConfigurationError: If the file cannot be read or parsed
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except OSError as e:
            raise ConfigurationError(f"Cannot read position config {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Position config {path} is not valid JSON: {e}") from e
        registry = cls.from_dict(data)
        logger.debug(f"Loaded {len(registry)} placeholders from {path}")
        return registry

    def to_dict(self) -> dict:
        """Serialize back to the JSON configuration form."""
        placeholders = {}
        for name, positions in self._table.items():
            if len(positions) == 1:
                placeholders[name] = positions[0].to_dict()
            else:
                placeholders[name] = [pos.to_dict() for pos in positions]
        return {
            "page_width": self.page_width,
            "page_height": self.page_height,
            "default_font": self.default_font,
            "default_font_size": self.default_font_size,
            "default_color": list(self.default_color),
            "cover_clearance": self.cover_clearance,
            "placeholders": placeholders,
            "aliases": dict(self._aliases),
        }

    def __repr__(self) -> str:
        return f"PositionRegistry({len(self)} placeholders, pages={list(self.pages)})"


@lru_cache(maxsize=1)
def default_registry() -> PositionRegistry:
    """Registry for the shipped CA-66 template (loaded once, read-only)."""
    return PositionRegistry.from_json(DEFAULT_CONFIG_PATH)
