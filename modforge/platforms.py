"""Platform name normalisation against a module's supported platforms."""

from __future__ import annotations

import logging
import sys

from modforge.models import Module

logger = logging.getLogger(__name__)

DEFAULT_PLATFORMS: tuple[str, ...] = (
    "Android",
    "iOS",
    "Linux",
    "MacOS",
    "Ouya",
    "PCL",
    "PSMobile",
    "Windows",
    "Windows8",
    "WindowsGL",
    "WindowsPhone",
    "WindowsPhone81",
)


def split_platforms(value: str | None) -> list[str]:
    """Split a comma-separated platform list, dropping blanks."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def normalize_platform(module: Module, platform: str) -> str | None:
    """Return the canonical spelling of *platform* for *module*.

    When the module declares ``supported_platforms`` only those names are
    accepted and an unknown platform yields ``None``; the caller must
    treat that as an invalid platform.  Otherwise the built-in
    ``DEFAULT_PLATFORMS`` are used for case correction and unknown names
    are returned unchanged.
    """
    declared = split_platforms(module.supported_platforms)
    restricted = bool(module.supported_platforms)
    candidates = declared if restricted else DEFAULT_PLATFORMS

    wanted = platform.casefold()
    for candidate in candidates:
        if candidate.casefold() == wanted:
            return candidate

    if restricted:
        logger.debug(
            "Platform %r is not supported by module %r (supported: %s)",
            platform, module.name, ", ".join(declared),
        )
        return None
    return platform


def host_platform() -> str:
    """Name of the platform the tool itself is running on."""
    if sys.platform.startswith("win") or sys.platform == "cygwin":
        return "Windows"
    if sys.platform == "darwin":
        return "MacOS"
    return "Linux"


def default_platforms(module: Module, host: str | None = None) -> list[str]:
    """Platforms to act on when the user names none.

    Reads the module's per-host default list for *host* (the running OS
    when omitted) and falls back to the host platform itself.
    """
    host = host or host_platform()
    configured = {
        "Windows": module.default_windows_platforms,
        "MacOS": module.default_macos_platforms,
        "Linux": module.default_linux_platforms,
    }.get(host)
    return split_platforms(configured) or [host]
