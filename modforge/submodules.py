"""Submodule discovery — find nested modules under a module's root.

Discovery visits each immediate child directory of the module root in two
phases:

1. **Default.**  The child is passed through :func:`resolve_redirect`
   first, so a ``.redirect`` marker left by package resolution points
   discovery at the real directory.  If that directory has the
   ``Build/Module.xml`` shape it is loaded as a submodule.
2. **Platform overrides** (only when a platform is given).  For each
   child (never the redirect target) a ``<child>/<platform>`` directory
   with the module shape is loaded as an *additional* submodule.

Directories without the module shape are skipped silently in both phases.
A descriptor that exists but fails to parse is an error and propagates.
"""

from __future__ import annotations

import logging
from pathlib import Path

from modforge.descriptor import find_descriptor, load_module
from modforge.models import Module

logger = logging.getLogger(__name__)

REDIRECT_FILENAME: str = ".redirect"


def resolve_redirect(directory: Path) -> Path:
    """Follow a ``.redirect`` marker in *directory*, if there is one.

    The marker holds a single path (surrounding whitespace ignored).
    Relative targets are resolved against *directory*.
    """
    marker = directory / REDIRECT_FILENAME
    if not marker.is_file():
        return directory

    target = marker.read_text(encoding="utf-8").strip()
    resolved = (directory / target).resolve() if target else directory
    logger.debug("Redirect %s -> %s", directory, resolved)
    return resolved


def _child_directories(root: Path) -> list[Path]:
    return sorted(entry for entry in root.iterdir() if entry.is_dir())


def _load_if_module(directory: Path) -> Module | None:
    descriptor = find_descriptor(directory)
    if descriptor is None:
        logger.debug("Skipping %s: no Build/Module.xml", directory)
        return None
    return load_module(descriptor)


def discover_submodules(module: Module, platform: str | None = None) -> list[Module]:
    """Return the modules nested directly under *module*.

    Parameters
    ----------
    module:
        A module with a bound root directory.
    platform:
        When given, also load ``<child>/<platform>`` override modules.

    Raises
    ------
    ModuleRootUnset
        If *module* has no root directory.
    DescriptorError
        If a present descriptor cannot be loaded.
    """
    root = module.require_root()
    children = _child_directories(root)
    submodules: list[Module] = []

    for child in children:
        found = _load_if_module(resolve_redirect(child))
        if found is not None:
            submodules.append(found)

    if platform is not None:
        for child in children:
            override = child / platform
            if not override.is_dir():
                continue
            found = _load_if_module(override)
            if found is not None:
                logger.debug(
                    "Platform override %r found for %s", platform, child.name
                )
                submodules.append(found)

    logger.debug(
        "Module %r: %d submodule(s) discovered (platform=%s)",
        module.name, len(submodules), platform,
    )
    return submodules
