"""Project definitions — load ``Build/Projects/*.definition`` files.

A definition file is an XML document whose root element names the project:

    <Project Name="Engine" Path="Engine" Type="Library">
      ...
    </Project>

Only the name, relative path and type are read here; the rest of the
document belongs to project generation.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path

from modforge.descriptor import BUILD_DIR
from modforge.errors import DefinitionError
from modforge.models import Definition, Module

logger = logging.getLogger(__name__)

PROJECTS_DIR: str = "Projects"
DEFINITION_SUFFIX: str = ".definition"

_PROJECT_TAGS: frozenset[str] = frozenset({"Project", "ExternalProject", "ContentProject"})


def load_definition(path: str | Path) -> Definition:
    """Parse a single ``.definition`` file.

    ``Path`` defaults to ``Name`` when absent.

    Raises
    ------
    DefinitionError
        If the file is unreadable, malformed, or lacks a ``Name``.
    """
    file = Path(path)
    try:
        root = ET.parse(file).getroot()
    except ET.ParseError as exc:
        raise DefinitionError(str(file), f"not well-formed XML ({exc})") from exc
    except OSError as exc:
        raise DefinitionError(str(file), f"unreadable ({exc.strerror or exc})") from exc

    tag = root.tag.rsplit("}", 1)[-1]
    if tag not in _PROJECT_TAGS:
        raise DefinitionError(str(file), f"unexpected root element <{tag}>")

    name = (root.get("Name") or "").strip()
    if not name:
        raise DefinitionError(str(file), "missing Name attribute")

    return Definition(
        name=name,
        relative_path=(root.get("Path") or name).strip(),
        type=root.get("Type"),
        definition_path=str(file),
    )


def projects_dir(module: Module) -> Path:
    return module.require_root() / BUILD_DIR / PROJECTS_DIR


def load_definitions(module: Module) -> list[Definition]:
    """Load every definition directly inside the module's Projects folder.

    A module without a ``Build/Projects`` directory simply has no
    projects.  Order follows directory enumeration.
    """
    directory = projects_dir(module)
    if not directory.is_dir():
        return []

    definitions = [
        load_definition(entry)
        for entry in directory.iterdir()
        if entry.suffix == DEFINITION_SUFFIX and entry.is_file()
    ]
    logger.debug(
        "Module %r: %d definition(s) in %s", module.name, len(definitions), directory
    )
    return definitions
