"""Tests for patch acceptance and application."""

import pytest

from flagport.core.migration.errors import OverlappingPatchError, PatchConflictError
from flagport.core.migration.models import Location, RewritePatch
from flagport.core.migration.patches import PatchSet, apply_patches

SOURCE = b"const a = check('x');\nconst b = check('y');\n"


def patch(start, end, replacement, file_path="a.js"):
    return RewritePatch(
        location=Location(file_path, start, end),
        original_text=SOURCE[start:end].decode("utf-8"),
        replacement_text=replacement,
    )


class TestLocation:
    def test_ranges_overlap(self):
        assert Location("a.js", 0, 5).overlaps(Location("a.js", 4, 8))
        assert not Location("a.js", 0, 5).overlaps(Location("a.js", 5, 8))
        assert not Location("a.js", 0, 5).overlaps(Location("b.js", 0, 5))

    def test_insertion_points(self):
        assert not Location("a.js", 5, 5).overlaps(Location("a.js", 0, 5))
        assert not Location("a.js", 5, 5).overlaps(Location("a.js", 5, 5))
        assert Location("a.js", 3, 3).overlaps(Location("a.js", 0, 5))

    def test_describe_is_one_based(self):
        assert Location("a.js", 0, 1, start_line=3, start_column=4).describe() == "a.js:3:5"


class TestPatchSet:
    def test_accept_disjoint(self):
        ps = PatchSet("a.js")
        ps.accept([patch(10, 20, "x")])
        ps.accept([patch(32, 42, "y")])
        assert len(ps) == 2

    def test_all_or_nothing(self):
        ps = PatchSet("a.js")
        ps.accept([patch(10, 20, "x")])
        with pytest.raises(OverlappingPatchError):
            ps.accept([patch(32, 42, "y"), patch(15, 18, "z")])
        assert [p.replacement_text for p in ps] == ["x"]

    def test_siblings_must_not_overlap(self):
        with pytest.raises(OverlappingPatchError):
            PatchSet("a.js").accept([patch(0, 10, "x"), patch(5, 12, "y")])

    def test_wrong_file(self):
        with pytest.raises(ValueError):
            PatchSet("b.js").accept([patch(0, 1, "x")])

    def test_covers(self):
        ps = PatchSet("a.js")
        ps.accept([patch(10, 20, "x"), patch(22, 22, "ins")])
        assert ps.covers(10, 15)
        assert not ps.covers(5, 15)
        assert not ps.covers(22, 22)


class TestApplyPatches:
    def test_back_to_front(self):
        result = apply_patches(SOURCE, [patch(10, 20, "flag('x')"), patch(32, 42, "flag('y')")])
        assert result == b"const a = flag('x');\nconst b = flag('y');\n"

    def test_insertions_keep_acceptance_order(self):
        result = apply_patches(SOURCE, [patch(0, 0, "// one\n"), patch(0, 0, "// two\n")])
        assert result.startswith(b"// one\n// two\nconst a")

    def test_stale_original_text(self):
        stale = RewritePatch(Location("a.js", 0, 5), "let  ", "var")
        with pytest.raises(PatchConflictError):
            apply_patches(SOURCE, [stale])

    def test_empty_patch_list(self):
        assert apply_patches(SOURCE, []) == SOURCE
