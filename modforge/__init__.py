"""Module graph resolution and cross-process delegation.

Public API
----------
Data model::

    Module, PackageRef, Definition, FeatureCache

Descriptor store::

    load_module, save_module, find_descriptor

Platforms::

    normalize_platform, default_platforms, host_platform, DEFAULT_PLATFORMS

Definitions & submodules::

    load_definition, load_definitions,
    discover_submodules, resolve_redirect

Graph walk::

    walk_definitions, walk_modules

Delegation::

    ProcessDelegate, InvokeResult,
    InvocationStrategy, InProcessStrategy, SubprocessStrategy,
    working_directory

Errors::

    ModforgeError, DescriptorError, DefinitionError,
    ModuleRootUnset, DelegateStartRace
"""

from modforge.definitions import load_definition, load_definitions
from modforge.delegate import (
    InProcessStrategy,
    InvocationStrategy,
    InvokeResult,
    ProcessDelegate,
    SubprocessStrategy,
    working_directory,
)
from modforge.descriptor import find_descriptor, load_module, save_module
from modforge.errors import (
    DefinitionError,
    DelegateStartRace,
    DescriptorError,
    ModforgeError,
    ModuleRootUnset,
)
from modforge.graph import walk_definitions, walk_modules
from modforge.models import Definition, FeatureCache, Module, PackageRef
from modforge.platforms import (
    DEFAULT_PLATFORMS,
    default_platforms,
    host_platform,
    normalize_platform,
)
from modforge.submodules import discover_submodules, resolve_redirect

__all__ = [
    "DEFAULT_PLATFORMS",
    "Definition",
    "DefinitionError",
    "DelegateStartRace",
    "DescriptorError",
    "FeatureCache",
    "InProcessStrategy",
    "InvocationStrategy",
    "InvokeResult",
    "ModforgeError",
    "Module",
    "ModuleRootUnset",
    "PackageRef",
    "ProcessDelegate",
    "SubprocessStrategy",
    "default_platforms",
    "discover_submodules",
    "find_descriptor",
    "host_platform",
    "load_definition",
    "load_definitions",
    "load_module",
    "normalize_platform",
    "resolve_redirect",
    "save_module",
    "walk_definitions",
    "walk_modules",
    "working_directory",
]
