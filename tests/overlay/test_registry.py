"""
Tests for the placeholder position registry.

Covers page partitioning, derived names for multi-position placeholders,
alias resolution, configuration validation and the shipped table.
"""

import json

import pytest

from ca66_toolkit.core.models.position import ConfigurationError, Position
from ca66_toolkit.overlay.registry import (
    DEFAULT_CONFIG_PATH,
    PositionRegistry,
    default_registry,
)


@pytest.fixture
def small_registry():
    return PositionRegistry(
        {
            "[LICENSEE]": [
                Position(page=3, x=130, y=575, size=11, max_width=300),
                Position(page=4, x=130, y=575, size=11, max_width=300),
                Position(page=5, x=130, y=575, size=11, max_width=300),
            ],
            "[EMAIL]": Position(page=4, x=350, y=386, size=11, max_width=250),
        },
        aliases={"EMAIL-ADDRESS": "[EMAIL]"},
    )


class TestPositionQueries:
    """Lookup of positions by name and by page."""

    def test_get_positions_when_bare_name_then_matches_bracketed(self, small_registry):
        assert small_registry.get_positions("EMAIL") == small_registry.get_positions("[EMAIL]")
        assert len(small_registry.get_positions("EMAIL")) == 1

    def test_get_positions_when_unknown_then_empty(self, small_registry):
        """Unknown names never raise."""
        assert small_registry.get_positions("[NOT-CONFIGURED]") == ()

    def test_get_positions_when_alias_then_resolves_target(self, small_registry):
        assert small_registry.get_positions("EMAIL-ADDRESS") == small_registry.get_positions("EMAIL")
        assert small_registry.canonical_name("EMAIL-ADDRESS") == "[EMAIL]"

    def test_get_positions_for_page_when_multi_position_then_derived_names(self, small_registry):
        names = [p.derived_name for p in small_registry.get_positions_for_page(4)]
        assert names == ["[LICENSEE]_2", "[EMAIL]"]

    def test_get_positions_for_page_when_multi_position_then_original_name_kept(self, small_registry):
        placements = [
            p for page in (3, 4, 5) for p in small_registry.get_positions_for_page(page)
            if p.original_name == "[LICENSEE]"
        ]
        assert [p.derived_name for p in placements] == ["[LICENSEE]_1", "[LICENSEE]_2", "[LICENSEE]_3"]

    def test_get_positions_for_page_when_empty_page_then_empty_list(self, small_registry):
        assert small_registry.get_positions_for_page(1) == []
        assert small_registry.get_positions_for_page(99) == []

    def test_get_positions_for_page_when_called_then_only_that_page(self, small_registry):
        for page in (3, 4, 5):
            assert all(p.position.page == page for p in small_registry.get_positions_for_page(page))

    def test_contains_when_name_or_alias_then_true(self, small_registry):
        assert "LICENSEE" in small_registry
        assert "[EMAIL-ADDRESS]" in small_registry
        assert "PHONE" not in small_registry

    def test_pages_when_built_then_sorted(self, small_registry):
        assert small_registry.pages == (3, 4, 5)


class TestRegistryValidation:
    """Configuration errors surface at construction."""

    def test_init_when_boxes_overlap_then_raises_error(self):
        with pytest.raises(ConfigurationError, match="Overlapping"):
            PositionRegistry({
                "[A]": Position(page=1, x=100, y=100, size=10, max_width=50),
                "[B]": Position(page=1, x=120, y=104, size=10, max_width=50),
            })

    def test_init_when_same_box_on_other_page_then_no_error(self):
        registry = PositionRegistry({
            "[A]": Position(page=1, x=100, y=100, size=10, max_width=50),
            "[B]": Position(page=2, x=100, y=100, size=10, max_width=50),
        })
        assert registry.find_overlaps() == []

    def test_init_when_duplicate_after_bracketing_then_raises_error(self):
        with pytest.raises(ConfigurationError, match="Duplicate"):
            PositionRegistry({
                "[A]": Position(page=1, x=10, y=10, size=10),
                "A": Position(page=2, x=10, y=10, size=10),
            })

    def test_init_when_alias_target_unknown_then_raises_error(self):
        with pytest.raises(ConfigurationError, match="unknown placeholder"):
            PositionRegistry(
                {"[A]": Position(page=1, x=10, y=10, size=10)},
                aliases={"B": "[MISSING]"},
            )

    def test_init_when_alias_shadows_placeholder_then_raises_error(self):
        with pytest.raises(ConfigurationError, match="shadows"):
            PositionRegistry(
                {
                    "[A]": Position(page=1, x=10, y=10, size=10),
                    "[B]": Position(page=2, x=10, y=10, size=10),
                },
                aliases={"A": "[B]"},
            )

    def test_init_when_empty_position_list_then_raises_error(self):
        with pytest.raises(ConfigurationError, match="no positions"):
            PositionRegistry({"[A]": []})

    def test_init_when_color_out_of_range_then_raises_error(self):
        with pytest.raises(ConfigurationError, match="default_color"):
            PositionRegistry(
                {"[A]": Position(page=1, x=10, y=10, size=10)},
                default_color=(0, 0, 255),
            )

    def test_from_dict_when_negative_size_then_names_placeholder(self):
        data = {"placeholders": {"[A]": {"page": 1, "x": 10, "y": 10, "size": -1}}}
        with pytest.raises(ConfigurationError, match=r"\[A\].*size must be > 0"):
            PositionRegistry.from_dict(data)

    def test_from_dict_when_page_missing_then_raises_error(self):
        data = {"placeholders": {"[A]": {"x": 10, "y": 10, "size": 10}}}
        with pytest.raises(ConfigurationError, match="missing 'page'"):
            PositionRegistry.from_dict(data)

    def test_from_dict_when_size_omitted_then_uses_default_font_size(self):
        data = {
            "default_font_size": 9,
            "placeholders": {"[A]": {"page": 1, "x": 10, "y": 10}},
        }
        registry = PositionRegistry.from_dict(data)
        assert registry.get_positions("A")[0].size == 9

    def test_from_dict_when_no_placeholders_key_then_raises_error(self):
        with pytest.raises(ConfigurationError, match="placeholders"):
            PositionRegistry.from_dict({"aliases": {}})

    def test_from_json_when_file_missing_then_raises_error(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot read"):
            PositionRegistry.from_json(tmp_path / "missing.json")

    def test_from_json_when_invalid_json_then_raises_error(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="not valid JSON"):
            PositionRegistry.from_json(path)

    @pytest.mark.parametrize(
        "field, value, message",
        [
            ("default_font_size", "11", "default_font_size"),
            ("page_width", "612", "page_width"),
            ("page_height", 0, "page_height"),
            ("default_color", "black", "default_color"),
            ("default_color", [0, 0], "default_color"),
            ("default_font", 12, "default_font"),
            ("aliases", ["[A]"], "aliases"),
            ("aliases", {"B": 1}, "Alias entries"),
            ("cover_clearance", -1, "cover_clearance"),
        ],
    )
    def test_from_dict_when_top_level_field_wrong_type_then_raises_error(self, field, value, message):
        data = {
            "placeholders": {"[A]": {"page": 1, "x": 10, "y": 10, "size": 10}},
            field: value,
        }
        with pytest.raises(ConfigurationError, match=message):
            PositionRegistry.from_dict(data)

    def test_from_dict_when_entry_not_object_then_raises_error(self):
        with pytest.raises(ConfigurationError, match=r"\[A\]"):
            PositionRegistry.from_dict({"placeholders": {"[A]": "page 1"}})


class TestCoverClearance:
    """Boxes on one page must stay a cover's padding apart."""

    def test_init_when_boxes_touch_then_raises_error(self):
        with pytest.raises(ConfigurationError, match="Overlapping"):
            PositionRegistry({
                "[A]": Position(page=1, x=100, y=100, size=10, max_width=40),
                "[B]": Position(page=1, x=140, y=100, size=10, max_width=60),
            })

    def test_init_when_gap_equals_clearance_then_no_error(self):
        registry = PositionRegistry({
            "[A]": Position(page=1, x=100, y=100, size=10, max_width=40),
            "[B]": Position(page=1, x=142, y=100, size=10, max_width=60),
        })
        assert registry.find_overlaps() == []

    def test_init_when_stacked_closer_than_clearance_then_raises_error(self):
        """A 1pt vertical gap is inside the 2pt cover padding."""
        with pytest.raises(ConfigurationError, match="Overlapping"):
            PositionRegistry({
                "[A]": Position(page=1, x=100, y=100, size=10, max_width=40),
                "[B]": Position(page=1, x=100, y=111, size=10, max_width=40),
            })

    def test_init_when_clearance_zero_then_touching_allowed(self):
        registry = PositionRegistry(
            {
                "[A]": Position(page=1, x=100, y=100, size=10, max_width=40),
                "[B]": Position(page=1, x=140, y=100, size=10, max_width=60),
            },
            cover_clearance=0,
        )
        assert registry.find_overlaps() == []

    def test_from_dict_when_clearance_given_then_kept_in_to_dict(self):
        data = {
            "cover_clearance": 0.5,
            "placeholders": {"[A]": {"page": 1, "x": 10, "y": 10, "size": 10}},
        }
        registry = PositionRegistry.from_dict(data)
        assert registry.cover_clearance == 0.5
        assert registry.to_dict()["cover_clearance"] == 0.5


class TestDefaultRegistry:
    """The shipped CA-66 table."""

    def test_default_registry_when_loaded_then_no_overlaps(self):
        assert default_registry().find_overlaps() == []

    def test_default_registry_when_loaded_then_cached(self):
        assert default_registry() is default_registry()

    def test_default_registry_when_partitioned_then_union_is_full_set(self):
        """Every position appears on exactly one page list."""
        registry = default_registry()
        from_pages = [
            placement
            for page in registry.pages
            for placement in registry.get_positions_for_page(page)
        ]
        assert len(from_pages) == len(registry.all_placements()) == 18
        assert {p.derived_name for p in from_pages} == {
            p.derived_name for p in registry.all_placements()
        }

    def test_default_registry_when_licensee_then_three_pages(self):
        positions = default_registry().get_positions("LICENSEE")
        assert [p.page for p in positions] == [3, 4, 5]

    def test_default_registry_when_start_date_then_two_positions_on_page_one(self):
        positions = default_registry().get_positions("[START-DATE]")
        assert len(positions) == 2
        assert {p.page for p in positions} == {1}

    def test_default_registry_when_serialized_then_matches_file(self):
        """Configured numbers come back exactly as declared."""
        data = json.loads(DEFAULT_CONFIG_PATH.read_text(encoding="utf-8"))
        serialized = default_registry().to_dict()
        assert serialized["placeholders"] == data["placeholders"]
        assert serialized["aliases"] == {f"[{k}]": v for k, v in data["aliases"].items()}

    def test_default_registry_when_round_tripped_then_equivalent(self):
        registry = default_registry()
        rebuilt = PositionRegistry.from_dict(registry.to_dict())
        assert rebuilt.all_placements() == registry.all_placements()
