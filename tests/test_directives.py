"""
Tests for the directive registry.
"""

import pytest

from cspbuilder import (
    ALL_DIRECTIVES,
    DOCUMENT_DIRECTIVES,
    FETCH_DIRECTIVES,
    NAVIGATION_DIRECTIVES,
    OTHER_DIRECTIVES,
    Directive,
    all_directives,
    expand,
    lookup_name,
    lookup_selector,
)
from cspbuilder.directives import is_single


class TestRegistry:
    """Test name/bit lookups."""

    def test_registry_has_nineteen_directives_in_order(self):
        names = [name for name, _ in all_directives()]
        assert len(names) == 19
        assert names[0] == "child-src"
        assert names[9] == "script-src"
        assert names[-1] == "upgrade-insecure-requests"

    def test_bits_are_distinct_powers_of_two(self):
        bits = [int(bit) for _, bit in all_directives()]
        assert len(set(bits)) == len(bits)
        for bit in bits:
            assert bit & (bit - 1) == 0

    def test_bit_values_are_stable(self):
        """Persisted selector constants must keep their values."""
        assert Directive.CHILD_SRC == 1
        assert Directive.SCRIPT_SRC == 512
        assert Directive.STYLE_SRC == 4096
        assert Directive.NAVIGATE_TO == 1048576
        assert Directive.BLOCK_ALL_MIXED_CONTENT == 2097152
        assert Directive.UPGRADE_INSECURE_REQUESTS == 4194304

    def test_lookup_selector(self):
        assert lookup_selector("img-src") is Directive.IMG_SRC
        assert lookup_selector("frame-ancestors") is Directive.FRAME_ANCESTORS
        assert lookup_selector("worker-src") is None

    def test_lookup_name_single_bit_only(self):
        assert lookup_name(Directive.FONT_SRC) == "font-src"
        assert lookup_name(8) == "font-src"
        assert lookup_name(Directive.FONT_SRC | Directive.IMG_SRC) is None
        assert lookup_name(1024) is None

    def test_directive_name_property(self):
        assert Directive.BASE_URI.directive_name == "base-uri"
        with pytest.raises(ValueError):
            (Directive.BASE_URI | Directive.SANDBOX).directive_name


class TestExpand:
    """Test expansion of selector masks."""

    def test_expand_in_registry_order(self):
        assert expand(Directive.STYLE_SRC | Directive.CHILD_SRC) == [
            Directive.CHILD_SRC,
            Directive.STYLE_SRC,
        ]

    def test_reserved_bits_select_nothing(self):
        assert expand(1024 | 2048 | 8192 | 16384) == []
        assert expand(Directive.IMG_SRC | 1024) == [Directive.IMG_SRC]

    def test_is_single(self):
        assert is_single(Directive.IMG_SRC)
        assert is_single(Directive.IMG_SRC | 1024)
        assert not is_single(Directive.IMG_SRC | Directive.FONT_SRC)
        assert not is_single(0)

    def test_groups_partition_all_directives(self):
        groups = [FETCH_DIRECTIVES, DOCUMENT_DIRECTIVES, NAVIGATION_DIRECTIVES, OTHER_DIRECTIVES]
        sizes = [len(expand(group)) for group in groups]
        assert sizes == [11, 3, 3, 2]
        assert len(expand(ALL_DIRECTIVES)) == 19
        for i, first in enumerate(groups):
            for second in groups[i + 1:]:
                assert int(first) & int(second) == 0
