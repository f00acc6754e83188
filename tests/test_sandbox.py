import os
from pathlib import Path

import pytest

from termbridge.sandbox import (
    DirectoryNotFound,
    OutsideSandbox,
    ProjectNotFound,
    Workspace,
    project_root,
    require_directory,
    resolve,
    resolve_project,
)

HOSTILE = [
    "..",
    "../",
    "../../etc",
    "/etc/passwd",
    "//etc//passwd",
    "a/../../b",
    "a/b/../../../x",
    "../" * 20 + "etc/passwd",
    "./../workspace-sibling",
    "..\\..\\windows",
    "a\\..\\..\\b",
    "/../../..",
    "\\..\\..",
    "a/./b/./../../..",
    "a\x00b",
    "../\x00",
]


def _contained(path: Path, root: Path) -> bool:
    return path == root or str(path).startswith(str(root) + os.sep)


class TestResolve:
    def test_empty_and_dot_are_root(self, root):
        assert resolve(root, "") == root
        assert resolve(root, None) == root
        assert resolve(root, ".") == root
        assert resolve(root, "/") == root

    def test_relative_child(self, root):
        assert resolve(root, "src/app") == root / "src" / "app"

    def test_leading_slash_is_relative_to_root(self, root):
        assert resolve(root, "/etc/passwd") == root / "etc" / "passwd"

    def test_dotdot_inside_root_is_collapsed(self, root):
        assert resolve(root, "a/b/../c") == root / "a" / "c"
        assert resolve(root, "a/..") == root

    @pytest.mark.parametrize("candidate", HOSTILE)
    def test_never_escapes(self, root, candidate):
        try:
            resolved = resolve(root, candidate)
        except OutsideSandbox:
            return
        assert _contained(resolved, root)

    @pytest.mark.parametrize("candidate", ["..", "../../etc", "a/../../b", "../" * 20 + "etc"])
    def test_parent_traversal_rejected(self, root, candidate):
        with pytest.raises(OutsideSandbox):
            resolve(root, candidate)

    @pytest.mark.parametrize("candidate", ["a\x00b", "\x00", "/etc\x00/passwd"])
    def test_null_byte_rejected(self, root, candidate):
        with pytest.raises(OutsideSandbox):
            resolve(root, candidate)
        with pytest.raises(OutsideSandbox):
            resolve(root, candidate, follow_symlinks=False)

    def test_sibling_with_common_prefix_rejected(self, root):
        sibling = root.parent / (root.name + "-evil")
        sibling.mkdir()
        with pytest.raises(OutsideSandbox):
            resolve(root, f"../{sibling.name}")

    def test_round_trip(self, root):
        p = root / "a" / "b" / "c.txt"
        p.parent.mkdir(parents=True)
        p.write_text("x")
        assert resolve(root, os.path.relpath(p, root)) == p

    def test_symlink_escape_rejected(self, root, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        os.symlink(outside, root / "link")
        with pytest.raises(OutsideSandbox):
            resolve(root, "link")
        with pytest.raises(OutsideSandbox):
            resolve(root, "link/secret.txt")

    def test_symlink_within_root_allowed(self, root):
        (root / "real").mkdir()
        os.symlink(root / "real", root / "alias")
        assert resolve(root, "alias") == root / "real"

    def test_lexical_mode_does_not_follow_links(self, root, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        os.symlink(outside, root / "link")
        assert resolve(root, "link", follow_symlinks=False) == root / "link"


class TestProjects:
    def test_project_root_strips_to_base_name(self, root):
        assert project_root(root, "../../proj") == root / "proj"
        assert project_root(root, "a/b/proj/") == root / "proj"
        assert project_root(root, "a\\b\\proj") == root / "proj"

    def test_project_root_defaults(self, root):
        assert project_root(root, None) == root / "default"
        assert project_root(root, "") == root / "default"

    @pytest.mark.parametrize("name", ["..", ".", "/", "a/..", "pr\x00oj"])
    def test_degenerate_project_names_rejected(self, root, name):
        with pytest.raises(OutsideSandbox):
            project_root(root, name)

    def test_missing_project(self, root):
        with pytest.raises(ProjectNotFound) as exc_info:
            resolve_project(root, "nope", ".")
        assert "nope" in str(exc_info.value)

    def test_contained_to_project(self, root):
        (root / "proj" / "src").mkdir(parents=True)
        (root / "other").mkdir()
        assert resolve_project(root, "proj", "") == root / "proj"
        assert resolve_project(root, "proj", "/src") == root / "proj" / "src"
        with pytest.raises(OutsideSandbox):
            resolve_project(root, "proj", "../other")

    def test_project_symlink_out_of_workspace(self, root, tmp_path):
        outside = tmp_path / "elsewhere"
        outside.mkdir()
        os.symlink(outside, root / "proj")
        with pytest.raises(OutsideSandbox):
            resolve_project(root, "proj", ".")


class TestWorkspace:
    def test_creates_missing_root(self, tmp_path):
        target = tmp_path / "new" / "ws"
        ws = Workspace(target)
        assert target.is_dir()
        assert ws.root == Path(os.path.realpath(target))

    def test_project_scoped_resolution(self, root):
        (root / "default").mkdir()
        ws = Workspace(root, project_scoped=True)
        assert ws.resolve("x") == root / "default" / "x"
        assert ws.base_for() == root / "default"
        with pytest.raises(ProjectNotFound):
            ws.resolve("x", "missing")

    def test_require_directory(self, root):
        (root / "file.txt").write_text("")
        assert require_directory(root, ".") == root
        with pytest.raises(DirectoryNotFound) as exc_info:
            require_directory(root / "nope", "nope")
        assert str(exc_info.value) == "Path 'nope' not found."
        with pytest.raises(DirectoryNotFound):
            require_directory(root / "file.txt", "file.txt")
