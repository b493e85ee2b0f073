"""Recursive module graph walk — every definition across a module tree.

The walk is a pre-order traversal: a module's own definitions come
before those of its submodules, and submodules are visited in discovery
order.  Definition relative paths are rewritten to be relative to the
module the walk started from, using ``\\`` as the separator (the form
consumed by generated project files).

The same physical module may be reached more than once (two redirects to
one package, a diamond of dependencies).  Definitions are deduplicated by
``(owning module root, name)``, keeping the first one seen.
"""

from __future__ import annotations

import logging
import os
import posixpath
from collections.abc import Iterator
from pathlib import Path

from modforge.definitions import load_definitions
from modforge.models import Definition, Module
from modforge.submodules import discover_submodules

logger = logging.getLogger(__name__)

SEPARATOR: str = "\\"


def join_relative(*parts: str) -> str:
    """Join path fragments into a ``\\``-separated relative path.

    Accepts either separator, drops empty and ``.`` segments, folds
    ``a\\..`` pairs, and trims leading/trailing separators.
    """
    joined = "/".join(p.replace("\\", "/") for p in parts if p)
    if not joined.strip("/"):
        return ""
    normalised = posixpath.normpath(joined.strip("/"))
    if normalised == ".":
        return ""
    return normalised.replace("/", SEPARATOR)


def relative_module_path(parent: Path, child: Path) -> str:
    """Filesystem-relative path from *parent*'s root to *child*'s root.

    Redirected submodules can live outside the parent tree, in which case
    the result climbs out with ``..`` segments.  Roots on different
    drives have no relative form; the child's absolute path is used.
    """
    try:
        rel = os.path.relpath(child, parent)
    except ValueError:
        return str(child)
    return join_relative(rel)


def walk_modules(
    module: Module, platform: str | None = None, prefix: str = ""
) -> Iterator[tuple[Module, str]]:
    """Yield ``(module, prefix)`` for *module* and every nested submodule.

    *prefix* is the module's path relative to the start of the walk.
    A submodule whose root is already on the current path (a redirect
    pointing back up the tree) is not descended into again.
    """
    yield from _walk(module, platform, prefix, ())


def _walk(
    module: Module, platform: str | None, prefix: str, ancestors: tuple[Path, ...]
) -> Iterator[tuple[Module, str]]:
    root = module.require_root()
    yield module, prefix

    lineage = ancestors + (root,)
    for submodule in discover_submodules(module, platform):
        sub_root = submodule.require_root()
        if sub_root in lineage:
            logger.warning(
                "Module %r at %s refers back to an enclosing module; not descending",
                submodule.name, sub_root,
            )
            continue
        sub_prefix = join_relative(prefix, relative_module_path(root, sub_root))
        yield from _walk(submodule, platform, sub_prefix, lineage)


def walk_definitions(module: Module, platform: str | None = None) -> list[Definition]:
    """Return the deduplicated definitions of *module* and all its submodules.

    Each returned definition has ``relative_path`` relative to *module*,
    ``absolute_path`` on disk and ``module_path`` set to its owning
    module's root.
    """
    unique: dict[tuple[str | None, str], Definition] = {}
    total = 0

    for owner, prefix in walk_modules(module, platform):
        owner_root = owner.require_root()
        for definition in load_definitions(owner):
            total += 1
            local = definition.relative_path
            definition.absolute_path = os.path.normpath(
                os.path.join(owner_root, join_relative(local).replace(SEPARATOR, os.sep))
            )
            definition.relative_path = join_relative(prefix, local)
            definition.module_path = str(owner_root)
            unique.setdefault(definition.key, definition)

    if total != len(unique):
        logger.debug(
            "Walk from %r: %d definition(s), %d after removing duplicates",
            module.name, total, len(unique),
        )
    return list(unique.values())
