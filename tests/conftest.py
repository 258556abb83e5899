"""Pytest fixtures for doccheck tests."""

import json
import textwrap
from pathlib import Path

import pytest

from doccheck.config import CheckConfig, load_config, parse_config
from doccheck.languages import profile_for
from doccheck.models import SourceFile


@pytest.fixture(scope="session")
def default_config():
    """The embedded rule table, loaded once per session."""
    return load_config()


@pytest.fixture
def make_source():
    """
    Factory for in-memory source files.

    The text is dedented and a leading newline removed, so fixtures can be
    written as indented triple-quoted strings.

    Example:
        def test_scan(make_source):
            source = make_source('''
                export function f() {}
            ''', path="src/f.ts")
    """

    def _make(text: str, path: str = "src/app.ts") -> SourceFile:
        profile = profile_for(path)
        assert profile is not None, f"no language profile for {path}"
        return SourceFile.from_text(path, textwrap.dedent(text).lstrip("\n"), profile)

    return _make


@pytest.fixture
def write_tree(tmp_path):
    """
    Factory that writes files under tmp_path and returns the root.

    Example:
        def test_run(write_tree):
            root = write_tree({"src/a.ts": "export function a() {}\\n"})
    """

    def _write(files: dict[str, str | bytes]) -> Path:
        for relative, content in files.items():
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
        return tmp_path

    return _write


@pytest.fixture
def make_config():
    """
    Factory for a CheckConfig from a rules dict.

    Example:
        def test_rules(make_config):
            config = make_config({"Function": {"required": {"@description": "non-empty"}}})
    """

    def _make(rules: dict, **table) -> CheckConfig:
        return parse_config(json.dumps({"rules": rules, **table}), "<test>")

    return _make
