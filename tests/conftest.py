"""Shared test fixtures — reduces boilerplate across test modules.

Provides:
- ``set_test_config`` — autouse fixture that patches delegate settings
- ``write_module`` — create ``<dir>/Build/Module.xml``
- ``write_definition`` — create ``<dir>/Build/Projects/<name>.definition``
- ``write_tool`` — install an executable tool script in a module root
"""

import os
import sys
import textwrap
from pathlib import Path

import pytest


# ---------------------------------------------------------------------------
# Marker registration
# ---------------------------------------------------------------------------


def pytest_configure(config):
    """Register custom markers.

    Tests that spawn real child processes through a shebang script are
    decorated with ``@pytest.mark.subprocess`` and skipped on Windows.
    """
    config.addinivalue_line(
        "markers",
        "subprocess: tests that spawn a real delegate process (POSIX only)",
    )


def pytest_collection_modifyitems(items):
    if os.name != "nt":
        return
    skip = pytest.mark.skip(reason="shebang delegates need a POSIX host")
    for item in items:
        if "subprocess" in item.keywords:
            item.add_marker(skip)


# ---------------------------------------------------------------------------
# Environment patching
# ---------------------------------------------------------------------------

_SETTINGS_PATCHES: dict[str, object] = {
    "modforge.config.settings.RUN_IN_PROCESS": False,
    "modforge.config.settings.DELEGATE_EXECUTABLE": "modforge",
    "modforge.config.settings.DELEGATE_MAX_ATTEMPTS": 3,
    "modforge.config.settings.DELEGATE_RETRY_DELAY_S": 0.0,
}


@pytest.fixture(autouse=True)
def set_test_config(monkeypatch):
    """Deterministic delegate settings with no retry sleeps."""
    for target, value in _SETTINGS_PATCHES.items():
        monkeypatch.setattr(target, value)


# ---------------------------------------------------------------------------
# Module tree builders
# ---------------------------------------------------------------------------


def _module_xml(name: str, **fields: str) -> str:
    elements = "".join(f"  <{tag}>{value}</{tag}>\n" for tag, value in fields.items())
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        "<ModuleInfo>\n"
        f"  <Name>{name}</Name>\n"
        f"{elements}"
        "</ModuleInfo>\n"
    )


@pytest.fixture
def write_module():
    """Return ``write(directory, name, **fields) -> descriptor path``.

    Extra keyword arguments become descriptor elements, e.g.
    ``SupportedPlatforms="Windows,Linux"``.
    """

    def _write(directory: Path, name: str, **fields: str) -> Path:
        build = directory / "Build"
        build.mkdir(parents=True, exist_ok=True)
        descriptor = build / "Module.xml"
        descriptor.write_text(_module_xml(name, **fields), encoding="utf-8")
        return descriptor

    return _write


@pytest.fixture
def write_definition():
    """Return ``write(directory, name, path=None, type=None) -> file path``."""

    def _write(
        directory: Path, name: str, path: str | None = None, type: str | None = None
    ) -> Path:
        projects = directory / "Build" / "Projects"
        projects.mkdir(parents=True, exist_ok=True)
        attrs = f'Name="{name}"'
        if path is not None:
            attrs += f' Path="{path}"'
        if type is not None:
            attrs += f' Type="{type}"'
        file = projects / f"{name}.definition"
        file.write_text(
            f'<?xml version="1.0" encoding="utf-8"?>\n<Project {attrs} />\n',
            encoding="utf-8",
        )
        return file

    return _write


@pytest.fixture
def write_tool():
    """Return ``write(directory, body, name="modforge") -> script path``.

    *body* is Python source run by the current interpreter.  The file is
    written without the executable bit; the delegate is expected to set it.
    """

    def _write(directory: Path, body: str, name: str = "modforge") -> Path:
        script = directory / name
        script.write_text(
            f"#!{sys.executable}\n" + textwrap.dedent(body),
            encoding="utf-8",
        )
        script.chmod(0o644)
        return script

    return _write
