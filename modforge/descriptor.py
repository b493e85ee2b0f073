"""Module descriptor store — load and save ``Build/Module.xml``.

The descriptor is an XML document whose root element is ``ModuleInfo``
(``Module`` is accepted on load).  Each child element maps to one
:class:`~modforge.models.Module` field.  Unknown elements are ignored so
that descriptors written by newer tool versions still load.

The module root is never written to the descriptor.  It is derived on
load as the parent of the directory that holds the file, i.e. the
descriptor always lives at ``<root>/Build/Module.xml``.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path

from pydantic import ValidationError

from modforge.errors import DescriptorError
from modforge.models import Module, PackageRef

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

BUILD_DIR: str = "Build"
DESCRIPTOR_FILENAME: str = "Module.xml"

_ROOT_TAG: str = "ModuleInfo"
_ACCEPTED_ROOT_TAGS: frozenset[str] = frozenset({"ModuleInfo", "Module"})
_XSI_NIL: str = "{http://www.w3.org/2001/XMLSchema-instance}nil"

# (element, field, kind) in the order elements are written.
_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("Name", "name", "text"),
    ("DefaultAction", "default_action", "text"),
    ("DefaultWindowsPlatforms", "default_windows_platforms", "text"),
    ("DefaultMacOSPlatforms", "default_macos_platforms", "text"),
    ("DefaultLinuxPlatforms", "default_linux_platforms", "text"),
    ("GenerateNuGetRepositories", "generate_nuget_repositories", "bool"),
    ("SupportedPlatforms", "supported_platforms", "text"),
    ("DisableSynchronisation", "disable_synchronisation", "bool"),
    ("ModuleAssemblies", "module_assemblies", "strings"),
    ("DefaultStartupProject", "default_startup_project", "text"),
    ("Packages", "packages", "packages"),
)
_FIELDS_BY_TAG: dict[str, tuple[str, str]] = {tag: (f, k) for tag, f, k in _FIELDS}

_PACKAGE_ATTRS: tuple[tuple[str, str], ...] = (
    ("Uri", "uri"),
    ("GitRef", "git_ref"),
    ("Folder", "folder"),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _local(tag: str) -> str:
    """Strip an XML namespace from *tag*."""
    return tag.rsplit("}", 1)[-1]


def _parse_bool(raw: str, tag: str, path: str) -> bool:
    value = raw.strip().lower()
    if value in ("true", "1"):
        return True
    if value in ("false", "0"):
        return False
    raise DescriptorError(path, f"<{tag}> must be 'true' or 'false', got {raw!r}")


def _read_element(elem: ET.Element, kind: str, path: str):
    if elem.get(_XSI_NIL, "").lower() == "true":
        return None
    if kind == "text":
        return elem.text or ""
    if kind == "bool":
        return _parse_bool(elem.text or "", _local(elem.tag), path)
    if kind == "strings":
        return [child.text or "" for child in elem]
    if kind == "packages":
        packages = []
        for child in elem:
            if _local(child.tag) != "Package":
                continue
            attrs = {field: child.get(attr) for attr, field in _PACKAGE_ATTRS}
            if not attrs["uri"]:
                raise DescriptorError(path, "<Package> is missing the Uri attribute")
            packages.append(PackageRef(**attrs))
        return packages
    raise ValueError(f"Unknown descriptor field kind: {kind}")


def find_descriptor(directory: str | Path) -> Path | None:
    """Return ``<directory>/Build/Module.xml`` if the module shape exists."""
    build = Path(directory) / BUILD_DIR
    if not build.is_dir():
        return None
    descriptor = build / DESCRIPTOR_FILENAME
    if not descriptor.is_file():
        return None
    return descriptor


# ---------------------------------------------------------------------------
# Load / save
# ---------------------------------------------------------------------------


def load_module(path: str | Path) -> Module:
    """Load the module described by the descriptor file at *path*.

    Raises
    ------
    DescriptorError
        If the file is missing, unreadable, not well-formed XML, has an
        unexpected root element, or holds an invalid field value.
    """
    descriptor = Path(path)
    path_str = str(descriptor)

    try:
        tree = ET.parse(descriptor)
    except FileNotFoundError as exc:
        raise DescriptorError(path_str, "file not found") from exc
    except ET.ParseError as exc:
        raise DescriptorError(path_str, f"not well-formed XML ({exc})") from exc
    except OSError as exc:
        raise DescriptorError(path_str, f"unreadable ({exc.strerror or exc})") from exc

    root = tree.getroot()
    if _local(root.tag) not in _ACCEPTED_ROOT_TAGS:
        raise DescriptorError(
            path_str, f"unexpected root element <{_local(root.tag)}>"
        )

    values: dict = {}
    for elem in root:
        mapping = _FIELDS_BY_TAG.get(_local(elem.tag))
        if mapping is None:
            continue
        field, kind = mapping
        value = _read_element(elem, kind, path_str)
        if value is None:
            continue
        values[field] = value

    try:
        module = Module(**values)
    except ValidationError as exc:
        raise DescriptorError(path_str, str(exc)) from exc

    module.bind_root(descriptor.resolve().parent.parent)
    logger.debug("Loaded module %r from %s", module.name, descriptor)
    return module


def save_module(module: Module, path: str | Path | None = None) -> Path:
    """Write *module* to *path* (default ``<root>/Build/Module.xml``).

    The root directory is never written.  ``None`` fields are omitted.

    Raises
    ------
    DescriptorError
        On any I/O failure.
    """
    if path is None:
        target = module.require_root() / BUILD_DIR / DESCRIPTOR_FILENAME
    else:
        target = Path(path)

    root = ET.Element(_ROOT_TAG)
    for tag, field, kind in _FIELDS:
        value = getattr(module, field)
        if value is None:
            continue
        elem = ET.SubElement(root, tag)
        if kind == "text":
            elem.text = value
        elif kind == "bool":
            elem.text = "true" if value else "false"
        elif kind == "strings":
            for item in value:
                ET.SubElement(elem, "string").text = item
        elif kind == "packages":
            for package in value:
                child = ET.SubElement(elem, "Package")
                for attr, pkg_field in _PACKAGE_ATTRS:
                    attr_value = getattr(package, pkg_field)
                    if attr_value is not None:
                        child.set(attr, attr_value)

    tree = ET.ElementTree(root)
    ET.indent(tree)
    try:
        tree.write(target, encoding="utf-8", xml_declaration=True)
    except OSError as exc:
        raise DescriptorError(str(target), f"cannot write ({exc.strerror or exc})") from exc

    logger.debug("Saved module %r to %s", module.name, target)
    return target
