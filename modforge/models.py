"""Module graph data model: Pydantic models for modules, packages and definitions.

``Module`` mirrors the fields of a ``Build/Module.xml`` descriptor.  Its
root directory is never part of the serialised descriptor; it is a private
attribute bound by :func:`modforge.descriptor.load_module` from the
descriptor's location.

``Definition`` instances are created fresh on every walk.  Their path
fields are rewritten exactly once by :mod:`modforge.graph`.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from modforge.errors import ModuleRootUnset


# ---------------------------------------------------------------------------
# Feature cache
# ---------------------------------------------------------------------------


class FeatureCache:
    """Feature identifiers reported by the tool copy installed in one module.

    Owned by a single :class:`Module` instance.  Two instances describing
    the same directory each populate their own cache.
    """

    __slots__ = ("_features",)

    def __init__(self) -> None:
        self._features: tuple[str, ...] | None = None

    @property
    def populated(self) -> bool:
        return self._features is not None

    @property
    def features(self) -> tuple[str, ...]:
        return self._features or ()

    def store(self, features: tuple[str, ...] | list[str]) -> None:
        self._features = tuple(features)

    def contains(self, feature: str) -> bool:
        return feature in self.features

    def clear(self) -> None:
        self._features = None

    def __repr__(self) -> str:
        return f"FeatureCache(features={self._features!r})"


# ---------------------------------------------------------------------------
# Package references
# ---------------------------------------------------------------------------


class PackageRef(BaseModel):
    """A package reference carried on a module (resolution happens elsewhere)."""

    model_config = ConfigDict(frozen=True)

    uri: str = Field(..., min_length=1, description="Package source URI")
    git_ref: str | None = Field(None, description="Branch, tag or commit to resolve")
    folder: str | None = Field(None, description="Folder the package is placed in")


# ---------------------------------------------------------------------------
# Module
# ---------------------------------------------------------------------------


class Module(BaseModel):
    """A node in the module tree, as described by its ``Module.xml``."""

    model_config = ConfigDict(validate_assignment=True)

    name: str | None = None
    default_action: str = "resync"
    default_windows_platforms: str | None = Field(
        None, description="Comma-separated default platforms on Windows hosts"
    )
    default_macos_platforms: str | None = Field(
        None, description="Comma-separated default platforms on macOS hosts"
    )
    default_linux_platforms: str | None = Field(
        None, description="Comma-separated default platforms on Linux hosts"
    )
    generate_nuget_repositories: bool = True
    supported_platforms: str | None = Field(
        None, description="Comma-separated platforms this module restricts itself to"
    )
    disable_synchronisation: bool | None = None
    module_assemblies: list[str] = Field(default_factory=list)
    default_startup_project: str | None = None
    packages: list[PackageRef] = Field(default_factory=list)

    _root: Path | None = PrivateAttr(default=None)
    _feature_cache: FeatureCache = PrivateAttr(default_factory=FeatureCache)

    # -- root directory ------------------------------------------------------

    @property
    def root(self) -> Path | None:
        """Absolute module root directory, or ``None`` if never bound."""
        return self._root

    def bind_root(self, root: str | Path) -> None:
        self._root = Path(root).resolve()

    def require_root(self) -> Path:
        """Return the root directory, raising ``ModuleRootUnset`` if absent."""
        if self._root is None:
            raise ModuleRootUnset(self.name)
        return self._root

    # -- delegate features ---------------------------------------------------

    @property
    def feature_cache(self) -> FeatureCache:
        return self._feature_cache

    def __repr__(self) -> str:
        return f"Module(name={self.name!r}, root={str(self._root) if self._root else None!r})"


# ---------------------------------------------------------------------------
# Definition
# ---------------------------------------------------------------------------


class Definition(BaseModel):
    """A single project definition discovered under a module."""

    name: str = Field(..., description="Project name")
    relative_path: str = Field(
        ...,
        description="Project directory relative to the owning module, "
        "later relative to the root of the walk",
    )
    absolute_path: str | None = Field(None, description="Absolute project directory")
    module_path: str | None = Field(None, description="Root of the owning module")
    type: str | None = Field(None, description="Project type, e.g. Library")
    definition_path: str = Field("", description="The .definition file it came from")

    @property
    def key(self) -> tuple[str | None, str]:
        """Identity across a walk: (owning module root, name)."""
        return (self.module_path, self.name)
