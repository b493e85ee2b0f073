"""Tests for modforge.graph — recursive definition walk across a module tree.

Covers:
  - relative path composition (nested, redirected, platform overrides)
  - deduplication by (owning module root, name)
  - parent-before-child ordering
  - redirect loops back into the tree
"""

from __future__ import annotations

import os

from modforge.descriptor import load_module
from modforge.graph import join_relative, relative_module_path, walk_definitions, walk_modules


def _by_name(definitions):
    return {d.name: d for d in definitions}


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


class TestJoinRelative:
    def test_empty_prefix(self):
        assert join_relative("", "A") == "A"

    def test_normalises_separators_and_trims(self):
        assert join_relative("\\Sub\\", "/Source//Game/") == "Sub\\Source\\Game"

    def test_folds_parent_segments(self):
        assert join_relative("Outer", "..\\Other") == "Other"

    def test_keeps_leading_parent_segments(self):
        assert join_relative("", "../cache/pkg") == "..\\cache\\pkg"

    def test_all_empty(self):
        assert join_relative("", "", ".") == ""


class TestRelativeModulePath:
    def test_child(self, tmp_path):
        assert relative_module_path(tmp_path, tmp_path / "Sub") == "Sub"

    def test_sibling_tree(self, tmp_path):
        assert relative_module_path(tmp_path / "M", tmp_path / "cache" / "pkg") == (
            "..\\cache\\pkg"
        )


# ---------------------------------------------------------------------------
# walk_definitions: end-to-end scenarios
# ---------------------------------------------------------------------------


class TestWalkDefinitions:
    def test_root_and_direct_submodule(self, tmp_path, write_module, write_definition):
        m = tmp_path / "M"
        root = load_module(write_module(m, "Root"))
        write_definition(m, "A")
        write_module(m / "Sub", "SubMod")
        write_definition(m / "Sub", "B")

        result = walk_definitions(root)

        assert [d.name for d in result] == ["A", "B"]
        a, b = result
        assert a.relative_path == "A"
        assert a.module_path == str(m.resolve())
        assert a.absolute_path == os.path.join(str(m.resolve()), "A")
        assert b.relative_path == "Sub\\B"
        assert b.module_path == str((m / "Sub").resolve())
        assert b.absolute_path == os.path.join(str((m / "Sub").resolve()), "B")

    def test_redirected_submodule_path_follows_real_location(
        self, tmp_path, write_module, write_definition
    ):
        real = tmp_path / "cache" / "real-pkg"
        write_module(real, "RealPkg")
        write_definition(real, "C")
        m = tmp_path / "M"
        root = load_module(write_module(m, "Root"))
        (m / "Pkg").mkdir()
        (m / "Pkg" / ".redirect").write_text(str(real) + "\n", encoding="utf-8")

        c = _by_name(walk_definitions(root))["C"]

        assert c.relative_path == "..\\cache\\real-pkg\\C"
        assert c.module_path == str(real.resolve())
        assert "Pkg\\" not in c.relative_path

    def test_nested_prefixes_compose(self, tmp_path, write_module, write_definition):
        m = tmp_path / "M"
        root = load_module(write_module(m, "Root"))
        write_module(m / "Outer", "Outer")
        write_module(m / "Outer" / "Inner", "Inner")
        write_definition(m / "Outer" / "Inner", "D", path="Source/D")

        d = _by_name(walk_definitions(root))["D"]

        assert d.relative_path == "Outer\\Inner\\Source\\D"
        assert d.absolute_path == os.path.normpath(
            os.path.join(str((m / "Outer" / "Inner").resolve()), "Source", "D")
        )

    def test_diamond_yields_each_definition_once(
        self, tmp_path, write_module, write_definition
    ):
        shared = tmp_path / "shared"
        write_module(shared, "Shared")
        write_definition(shared, "S1")
        write_definition(shared, "S2")
        m = tmp_path / "M"
        root = load_module(write_module(m, "Root"))
        for alias in ("Left", "Right"):
            (m / alias).mkdir(parents=True)
            (m / alias / ".redirect").write_text(str(shared), encoding="utf-8")

        result = walk_definitions(root)

        assert sorted(d.name for d in result) == ["S1", "S2"]

    def test_same_name_in_different_modules_is_kept(
        self, tmp_path, write_module, write_definition
    ):
        m = tmp_path / "M"
        root = load_module(write_module(m, "Root"))
        write_definition(m, "Core")
        write_module(m / "Lib", "Lib")
        write_definition(m / "Lib", "Core")

        result = walk_definitions(root)

        assert [d.relative_path for d in result] == ["Core", "Lib\\Core"]

    def test_first_occurrence_wins(self, tmp_path, write_module, write_definition):
        shared = tmp_path / "shared"
        write_module(shared, "Shared")
        write_definition(shared, "S")
        m = tmp_path / "M"
        root = load_module(write_module(m, "Root"))
        write_module(m / "A", "A")
        (m / "A" / "Dep").mkdir()
        (m / "A" / "Dep" / ".redirect").write_text(str(shared), encoding="utf-8")
        (m / "B").mkdir()
        (m / "B" / ".redirect").write_text(str(shared), encoding="utf-8")

        result = walk_definitions(root)

        assert len(result) == 1
        assert result[0].module_path == str(shared.resolve())
        assert result[0].relative_path == "..\\shared\\S"

    def test_platform_override_modules_included(
        self, tmp_path, write_module, write_definition
    ):
        m = tmp_path / "M"
        root = load_module(write_module(m, "Root"))
        write_module(m / "Native" / "Linux", "NativeLinux")
        write_definition(m / "Native" / "Linux", "NativeGlue")

        assert walk_definitions(root) == []
        glue = _by_name(walk_definitions(root, "Linux"))["NativeGlue"]
        assert glue.relative_path == "Native\\Linux\\NativeGlue"

    def test_fresh_definitions_every_walk(self, tmp_path, write_module, write_definition):
        m = tmp_path / "M"
        root = load_module(write_module(m, "Root"))
        write_module(m / "Sub", "Sub")
        write_definition(m / "Sub", "B")

        first = walk_definitions(root)
        second = walk_definitions(root)

        assert first[0] is not second[0]
        assert first[0].relative_path == second[0].relative_path == "Sub\\B"

    def test_redirect_back_to_ancestor_is_not_followed(
        self, tmp_path, write_module, write_definition
    ):
        m = tmp_path / "M"
        root = load_module(write_module(m, "Root"))
        write_definition(m, "A")
        (m / "Loop").mkdir()
        (m / "Loop" / ".redirect").write_text("..", encoding="utf-8")

        result = walk_definitions(root)

        assert [d.relative_path for d in result] == ["A"]


# ---------------------------------------------------------------------------
# walk_modules
# ---------------------------------------------------------------------------


class TestWalkModules:
    def test_parent_before_children(self, tmp_path, write_module):
        m = tmp_path / "M"
        root = load_module(write_module(m, "Root"))
        write_module(m / "A", "A")
        write_module(m / "A" / "Deep", "Deep")
        write_module(m / "B", "B")

        visited = [(mod.name, prefix) for mod, prefix in walk_modules(root)]

        assert visited == [
            ("Root", ""),
            ("A", "A"),
            ("Deep", "A\\Deep"),
            ("B", "B"),
        ]
