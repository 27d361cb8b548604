"""Tests for sonargraph_bridge/paths.py"""

import os

import pytest

from sonargraph_bridge.paths import identifying_path, is_underneath, join_normalized, to_universal


def test_to_universal_replaces_backslashes():
    assert to_universal(r"core\src\main\java") == "core/src/main/java"


def test_identifying_path_collapses_dots(tmp_path):
    (tmp_path / "app" / "src").mkdir(parents=True)
    assert identifying_path(tmp_path / "app" / "." / "src") == identifying_path(tmp_path / "app" / "src")


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
def test_identifying_path_resolves_symlinks(tmp_path):
    target = tmp_path / "real"
    target.mkdir()
    link = tmp_path / "link"
    try:
        link.symlink_to(target, target_is_directory=True)
    except OSError:
        pytest.skip("cannot create symlinks here")
    assert identifying_path(link) == identifying_path(target)


@pytest.mark.parametrize("path, base, expected", [
    ("/work/app/src", "/work/app",   True),
    ("/work/app",     "/work/app",   True),
    ("/work/app",     "/work/app/",  True),
    ("/work/apps/src", "/work/app",  False),
    ("/work",         "/work/app",   False),
])
def test_is_underneath(path, base, expected):
    assert is_underneath(path, base) is expected


def test_join_normalized_skips_empty_parts(tmp_path):
    base = to_universal(str(tmp_path))
    assert join_normalized(base, "", "src/Foo.java") == f"{base}/src/Foo.java"


def test_join_normalized_collapses_parent_references(tmp_path):
    base = to_universal(str(tmp_path))
    assert join_normalized(base, "core/../web", "Page.java") == f"{base}/web/Page.java"
